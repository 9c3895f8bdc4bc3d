from typing import Optional
from fastapi import Header, HTTPException, status, Request, Depends
from sqlalchemy.orm import Session

from core.db import get_db
from models.store import Store
from models.user import User
from routes.auth import get_current_user
from services.domains import find_store_by_custom_domain


def resolve_domain(request: Request, x_store_domain: Optional[str] = Header(default=None, alias="X-Store-Domain")) -> str:
    """Resolve store domain from X-Store-Domain header or Host header."""
    if x_store_domain:
        return x_store_domain.lower()
    host = request.headers.get("host") or request.headers.get("Host")
    if not host:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing store domain")
    return host.split(":")[0].lower()


def get_store_by_domain(domain: str = Depends(resolve_domain), db: Session = Depends(get_db)) -> Store:
    """Public storefront lookup through a linked custom domain."""
    store = find_store_by_custom_domain(db, domain)
    if not store or not store.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Store not found")
    return store


def get_public_store(slug: str, db: Session = Depends(get_db)) -> Store:
    store = db.query(Store).filter(Store.slug == slug.lower()).one_or_none()
    # Deactivated stores disappear from the public site
    if not store or not store.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Store not found")
    return store


def check_store_access(user: User, store: Store) -> bool:
    return user.is_superadmin or store.merchant_id == user.id


def get_owned_store(
    store_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Store:
    """Store from the path that the current merchant owns (admins may act on any)."""
    store = db.get(Store, store_id)
    if not store:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Store not found")
    if not check_store_access(user, store):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You do not have access to this store")
    return store
