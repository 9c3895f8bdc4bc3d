import logging
import secrets
from typing import Optional

import requests
from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from core.config import settings
from core.db import get_db
from models.user import User
from routes.auth import require_admin
from schemas.domain import DomainRequest
from services import domains as domain_service
from services.vercel import VercelError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["domains"])


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


@router.post("/connect-domain")
def connect_domain(data: DomainRequest, admin: User = Depends(require_admin)):
    """Add a domain to the hosting project and report its DNS status."""
    try:
        result = domain_service.add_domain(data.domain)
    except domain_service.DomainError as exc:
        return _error(str(exc), 400)
    except VercelError as exc:
        return _error(exc.message, exc.status_code)
    except requests.RequestException as exc:
        logger.exception("Hosting provider unreachable while adding %s", data.domain)
        return _error(str(exc) or "Unexpected error", 500)
    return {"success": True, **result}


@router.get("/connect-domain")
def domain_status(domain: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    try:
        result = domain_service.get_domain_status(domain)
    except domain_service.DomainError as exc:
        return _error(str(exc), 400)
    except VercelError as exc:
        return _error(exc.message, exc.status_code)
    except requests.RequestException as exc:
        logger.exception("Hosting provider unreachable while reading %s", domain)
        return _error(str(exc) or "Unexpected error", 500)
    domain_service.persist_domain_status_for_domain(db, result["domain"], {"ok": True, **result})
    return {"success": True, **result}


@router.delete("/connect-domain")
def disconnect_domain(data: DomainRequest, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    try:
        result = domain_service.remove_domain(data.domain)
    except domain_service.DomainError as exc:
        return _error(str(exc), 400)
    except VercelError as exc:
        return _error(exc.message, exc.status_code)
    except requests.RequestException as exc:
        logger.exception("Hosting provider unreachable while removing %s", data.domain)
        return _error(str(exc) or "Unexpected error", 500)
    domain_service.clear_domain_link_if_matches(db, result["domain"])
    return {"success": True, **result}


def _cron_authorized(vercel_cron: Optional[str], cron_secret: Optional[str]) -> bool:
    if vercel_cron:
        return True
    if not settings.CRON_SECRET:
        return True
    return bool(cron_secret) and secrets.compare_digest(cron_secret, settings.CRON_SECRET)


@router.api_route("/cron-refresh-domains", methods=["GET", "POST"])
def cron_refresh_domains(
    db: Session = Depends(get_db),
    x_vercel_cron: Optional[str] = Header(default=None, alias="x-vercel-cron"),
    x_cron_secret: Optional[str] = Header(default=None, alias="x-cron-secret"),
):
    if not _cron_authorized(x_vercel_cron, x_cron_secret):
        return _error("Unauthorized", 401)
    try:
        return domain_service.refresh_all_domains(db)
    except domain_service.SweepAlreadyRunning as exc:
        return JSONResponse({"ok": False, "error": str(exc)}, status_code=409)
