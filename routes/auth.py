import logging
from typing import Optional

import jwt
from fastapi import APIRouter, Depends, HTTPException, status, Header
from sqlalchemy.orm import Session

from core.db import get_db
from models.user import User
from schemas.auth import RegisterRequest, LoginRequest, TokenPair
from schemas.users import UserOut
from security.password import hash_password, verify_password
from security import jwt as jwt_utils

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

_UNAUTHORIZED_HEADERS = {"WWW-Authenticate": "Bearer"}


def _bearer_token(authorization: Optional[str]) -> str:
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Not authenticated", headers=_UNAUTHORIZED_HEADERS)
    return token.strip()


def get_current_user(
    db: Session = Depends(get_db), authorization: Optional[str] = Header(default=None, alias="Authorization")
) -> User:
    """Merchant or admin identified by the bearer access token."""
    try:
        payload = jwt_utils.decode_access(_bearer_token(authorization))
        user_id = int(payload["sub"])
    except (jwt.PyJWTError, KeyError, ValueError):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token", headers=_UNAUTHORIZED_HEADERS)
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "User not found", headers=_UNAUTHORIZED_HEADERS)
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_superadmin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_user


@router.post("/register", response_model=UserOut, status_code=201)
def register_merchant(data: RegisterRequest, db: Session = Depends(get_db)):
    email = data.email.lower()
    if db.query(User.id).filter(User.email == email).first() is not None:
        raise HTTPException(status_code=400, detail="Email already registered")
    merchant = User(
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        email=email,
        password_hash=hash_password(data.password),
        is_superadmin=False,
    )
    db.add(merchant)
    db.commit()
    db.refresh(merchant)
    logger.info("Merchant %s registered", merchant.id)
    return merchant


@router.post("/login", response_model=TokenPair)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == data.email.lower()).one_or_none()
    if user is None or not verify_password(data.password, user.password_hash):
        logger.info("Failed login for %s", data.email.lower())
        raise HTTPException(status_code=400, detail="Invalid credentials")
    role = "admin" if user.is_superadmin else "merchant"
    return TokenPair(access_token=jwt_utils.create_access_token(str(user.id), extra={"role": role}))


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user
