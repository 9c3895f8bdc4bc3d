"""Custom domain registration and ownership.

A store's custom domain lives in ``store_domains``. The unique index on the
normalized ``domain`` column keeps a domain attached to at most one store;
``link_domain_uniquely_to_store`` moves it in one transaction (last link wins).

Link states: unlinked -> pending (added, DNS not verified) -> verified, and
back to unlinked on removal. Provider failures leave the previous state alone.
"""
import logging
import re
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import requests
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from core.config import settings
from models.domain_audit import DomainAudit
from models.store import Store
from models.store_domain import StoreDomain
from models.sweep_lease import SweepLease
from services import vercel
from services.vercel import VercelError

logger = logging.getLogger(__name__)

APEX_A_RECORD = "76.76.21.21"
CNAME_TARGET = "cname.vercel-dns.com"
SWEEP_LEASE_NAME = "domain-refresh"

_SCHEME = re.compile(r"^[a-z][a-z0-9+.-]*://")
_WWW = re.compile(r"^(?:www\.)+")
# ASCII host names only; IDN input must arrive punycode-encoded
_DOMAIN = re.compile(r"^(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,}$")


class DomainError(ValueError):
    pass


class InvalidDomain(DomainError):
    pass


class DomainConflict(DomainError):
    pass


class SweepAlreadyRunning(RuntimeError):
    pass


def normalize_domain(value: Optional[str], strip_www: bool = True) -> str:
    """Lowercase host name without scheme, trailing slash or (by default) leading ``www.``."""
    d = str(value or "").strip().lower()
    while True:
        previous = d
        d = _SCHEME.sub("", d).rstrip("/").strip()
        if strip_www:
            d = _WWW.sub("", d)
        if d == previous:
            return d


def is_valid_domain(domain: str) -> bool:
    return bool(_DOMAIN.match(domain))


def dns_instructions(domain: str, verified: bool) -> str:
    if verified:
        return "Domain is verified and active."
    if len(domain.split(".")) == 2:
        return (
            f"Create an A record pointing to {APEX_A_RECORD}. "
            f"For www, add a CNAME to {CNAME_TARGET}, then retry."
        )
    return f"Create a CNAME pointing to {CNAME_TARGET} for this subdomain, then retry."


def _status_result(domain: str, data: Dict[str, Any]) -> Dict[str, Any]:
    verified = bool(data.get("verified"))
    return {
        "domain": domain,
        "verified": verified,
        "needsDNS": not verified,
        "instructions": dns_instructions(domain, verified),
        "verification": data.get("verification") or [],
    }


def _is_already_added(exc: VercelError) -> bool:
    # The domain is on this project already; anything "in use" belongs elsewhere
    code = exc.code or ""
    return code.startswith("domain_already") and code != "domain_already_in_use"


def _friendly_error(exc: VercelError) -> VercelError:
    if exc.code in ("domain_conflict", "domain_already_in_use"):
        return VercelError(
            409,
            "Domain is already in use by another project or team on Vercel. "
            "Remove it there first or transfer ownership.",
            exc.code,
        )
    if exc.status_code in (401, 403):
        return VercelError(exc.status_code, "Unauthorized: Check VERCEL_TOKEN and VERCEL_TEAM_ID (if using a Team).", exc.code)
    if exc.status_code == 404:
        return VercelError(404, "Project not found: Verify VERCEL_PROJECT_ID belongs to this project/account/team.", exc.code)
    return exc


def add_domain(name: str) -> Dict[str, Any]:
    """Register ``name`` on the hosting project and return its current status."""
    domain = normalize_domain(name, strip_www=False)
    if not domain:
        raise InvalidDomain("Missing domain")
    if not is_valid_domain(domain):
        raise InvalidDomain("Invalid domain format")

    try:
        vercel.add_project_domain(domain)
    except VercelError as exc:
        if not _is_already_added(exc):
            raise _friendly_error(exc) from exc
        logger.info("Domain %s already registered on the project", domain)

    try:
        vercel.verify_domain(domain)
    except (VercelError, requests.RequestException) as exc:
        # Verification is re-attempted by every status read
        logger.info("Verification trigger for %s failed: %s", domain, exc)

    return _status_result(domain, vercel.get_domain(domain))


def get_domain_status(name: str) -> Dict[str, Any]:
    domain = normalize_domain(name, strip_www=False)
    if not domain:
        raise InvalidDomain("Missing domain")
    return _status_result(domain, vercel.get_domain(domain))


def remove_domain(name: str) -> Dict[str, Any]:
    domain = normalize_domain(name, strip_www=False)
    if not domain:
        raise InvalidDomain("Missing domain")
    vercel.remove_project_domain(domain)
    logger.info("Domain %s removed from the project", domain)
    return {"domain": domain, "removed": True}


def find_store_by_custom_domain(db: Session, domain: str) -> Optional[Store]:
    d = normalize_domain(domain)
    if not d:
        return None
    link = db.query(StoreDomain).filter(StoreDomain.domain == d).one_or_none()
    return link.store if link else None


def list_stores_with_domain(db: Session, limit: int = 500) -> List[StoreDomain]:
    return db.query(StoreDomain).order_by(StoreDomain.id).limit(limit).all()


def link_domain_uniquely_to_store(
    db: Session, store_id: int, domain: str, verified: bool = False, provider_domain: Optional[str] = None
) -> StoreDomain:
    """Attach ``domain`` to ``store_id``, detaching it from any other store.

    ``provider_domain`` is the exact host registered with the provider when it
    differs from the normalized ``domain`` (e.g. a kept ``www.`` prefix).
    """
    d = normalize_domain(domain)
    if not d:
        raise InvalidDomain("Invalid domain")
    host = normalize_domain(provider_domain, strip_www=False) or None
    if host == d:
        host = None
    store = db.get(Store, store_id)
    if store is None:
        raise LookupError(f"Store {store_id} not found")

    previous_owners = (
        db.query(StoreDomain)
        .filter(StoreDomain.domain == d, StoreDomain.store_id != store_id)
        .all()
    )
    for row in previous_owners:
        db.add(DomainAudit(action="unlink", domain=d, store_id=row.store_id, ok=True, message=f"relinked to store {store_id}"))
        # Orphaned links are deleted by the relationship cascade
        row.store.domain_link = None
    # The unique index on domain must see the deletes before the upsert below
    db.flush()

    link = store.domain_link
    if link is None:
        link = StoreDomain(domain=d)
        store.domain_link = link
    elif link.domain != d:
        link.domain = d
        link.status = None
        link.last_checked_at = None
        link.provider_domain = None
    if provider_domain is not None:
        link.provider_domain = host
    link.verified = bool(verified)
    db.add(DomainAudit(action="link", domain=d, store_id=store_id, ok=True))

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Concurrent link of %s to store %s lost the race", d, store_id)
        raise DomainConflict(f"Domain {d} was linked to another store concurrently, retry") from exc
    db.refresh(link)
    logger.info("Domain %s linked to store %s (verified=%s)", d, store_id, link.verified)
    return link


def clear_store_custom_domain(db: Session, store_id: int) -> bool:
    store = db.get(Store, store_id)
    link = store.domain_link if store else None
    if link is None:
        return False
    domain = link.domain
    db.add(DomainAudit(action="unlink", domain=domain, store_id=store_id, ok=True))
    store.domain_link = None
    db.commit()
    logger.info("Domain %s unlinked from store %s", domain, store_id)
    return True


def clear_domain_link_if_matches(db: Session, domain: str) -> None:
    owner = find_store_by_custom_domain(db, domain)
    if owner:
        clear_store_custom_domain(db, owner.id)


def mark_domain_verified_for_store(db: Session, store_id: int, verified: bool = True) -> Optional[StoreDomain]:
    link = db.query(StoreDomain).filter(StoreDomain.store_id == store_id).one_or_none()
    if link is None:
        return None
    link.verified = bool(verified)
    db.commit()
    db.refresh(link)
    return link


def persist_domain_status_for_domain(db: Session, domain: str, status: Optional[Dict[str, Any]]) -> Optional[StoreDomain]:
    """Record the latest provider status on the store owning ``domain``; no-op without an owner."""
    d = normalize_domain(domain)
    link = db.query(StoreDomain).filter(StoreDomain.domain == d).one_or_none() if d else None
    if link is None:
        return None
    link.status = status or None
    link.last_checked_at = datetime.utcnow()
    if status and isinstance(status.get("verified"), bool):
        link.verified = status["verified"]
    db.commit()
    db.refresh(link)
    return link


def connect_store_domain(db: Session, store: Store, name: str) -> Dict[str, Any]:
    """Merchant flow: register on the provider, take ownership, store the status."""
    result = add_domain(name)
    link_domain_uniquely_to_store(
        db, store.id, result["domain"], verified=result["verified"], provider_domain=result["domain"]
    )
    persist_domain_status_for_domain(db, result["domain"], {"ok": True, **result})
    return result


def disconnect_store_domain(db: Session, store: Store) -> bool:
    link = store.domain_link
    if link is None:
        return False
    try:
        remove_domain(link.provider_host)
    except VercelError as exc:
        if exc.status_code != 404:
            raise
        logger.info("Domain %s was not registered on the project", link.provider_host)
    return clear_store_custom_domain(db, store.id)


def acquire_sweep_lease(db: Session, name: str = SWEEP_LEASE_NAME, ttl_seconds: Optional[int] = None) -> Optional[str]:
    """Claim the run token for ``name``; ``None`` while another holder's lease is live."""
    now = datetime.utcnow()
    token = uuid.uuid4().hex
    expires_at = now + timedelta(seconds=ttl_seconds or settings.SWEEP_LEASE_SECONDS)

    # Take over an expired lease with a conditional update
    taken = (
        db.query(SweepLease)
        .filter(SweepLease.name == name, SweepLease.expires_at <= now)
        .update({"token": token, "expires_at": expires_at}, synchronize_session=False)
    )
    if taken:
        db.commit()
        return token
    if db.query(SweepLease.name).filter(SweepLease.name == name).first() is not None:
        db.rollback()
        return None

    db.add(SweepLease(name=name, token=token, expires_at=expires_at))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return None
    return token


def release_sweep_lease(db: Session, token: str, name: str = SWEEP_LEASE_NAME) -> None:
    db.query(SweepLease).filter(SweepLease.name == name, SweepLease.token == token).delete(synchronize_session=False)
    db.commit()


def _refresh_link(db: Session, link: StoreDomain) -> Dict[str, Any]:
    domain = link.domain
    host = link.provider_host
    try:
        data = vercel.get_domain(host)
    except (VercelError, requests.RequestException) as exc:
        message = getattr(exc, "message", None) or str(exc) or "Failed"
        link.status = {"domain": host, "ok": False, "error": message}
        link.last_checked_at = datetime.utcnow()
        db.add(DomainAudit(action="cron_refresh", domain=domain, store_id=link.store_id, ok=False, message=message))
        db.commit()
        logger.warning("Domain refresh failed for %s (store %s): %s", host, link.store_id, message)
        return {"store_id": link.store_id, "domain": domain, "ok": False, "error": message}

    verified = bool(data.get("verified"))
    link.status = {**data, "domain": host, "ok": True}
    link.verified = verified
    link.last_checked_at = datetime.utcnow()
    db.add(DomainAudit(action="cron_refresh", domain=domain, store_id=link.store_id, ok=True))
    db.commit()
    return {"store_id": link.store_id, "domain": domain, "ok": True, "verified": verified}


def _record_save_failure(db: Session, store_id: int, domain: str, message: str) -> None:
    try:
        db.add(DomainAudit(action="cron_refresh", domain=domain, store_id=store_id, ok=False, message=message))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Could not audit the failed refresh of %s (store %s)", domain, store_id)


def refresh_all_domains(db: Session, limit: int = 1000) -> Dict[str, Any]:
    """Re-check every linked domain against the provider and record the outcome.

    One store's failure, from the provider or from saving its row, is recorded
    and the sweep carries on with the rest. Raises ``SweepAlreadyRunning`` if
    another run holds the lease.
    """
    token = acquire_sweep_lease(db)
    if token is None:
        raise SweepAlreadyRunning("A domain refresh is already running")

    results: List[Dict[str, Any]] = []
    try:
        # Plain values survive a rollback; ORM rows are reloaded per store
        pending = [(link.id, link.store_id, link.domain) for link in list_stores_with_domain(db, limit=limit)]
        for link_id, store_id, domain in pending:
            link = db.get(StoreDomain, link_id)
            if link is None:
                continue
            try:
                results.append(_refresh_link(db, link))
            except SQLAlchemyError:
                db.rollback()
                logger.exception("Could not save the refresh of %s (store %s)", domain, store_id)
                message = "Could not save domain status"
                _record_save_failure(db, store_id, domain, message)
                results.append({"store_id": store_id, "domain": domain, "ok": False, "error": message})
    finally:
        release_sweep_lease(db, token)

    logger.info(
        "Domain refresh finished: %d checked, %d failed",
        len(results),
        sum(1 for r in results if not r["ok"]),
    )
    return {"ok": True, "count": len(results), "results": results}
