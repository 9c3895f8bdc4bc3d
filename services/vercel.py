import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from core.config import settings

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 20


class VercelError(Exception):
    """Non-2xx answer from the hosting provider API."""

    def __init__(self, status_code: int, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code


class VercelNotConfigured(VercelError):
    def __init__(self):
        super().__init__(500, "Missing Vercel credentials on server")


def _headers() -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {settings.VERCEL_TOKEN}",
        "Content-Type": "application/json",
    }


def _params() -> Dict[str, str]:
    return {"teamId": settings.VERCEL_TEAM_ID} if settings.VERCEL_TEAM_ID else {}


def _require_credentials(project_id: str) -> None:
    if not project_id or not settings.VERCEL_TOKEN:
        raise VercelNotConfigured()


def _parse(resp: requests.Response) -> Any:
    if not resp.text:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text


def _raise_for_error(resp: requests.Response, data: Any, fallback: str) -> None:
    if resp.ok:
        return
    code = None
    message = fallback
    if isinstance(data, dict):
        err = data.get("error") or {}
        if isinstance(err, dict):
            code = err.get("code")
            message = err.get("message") or message
        code = code or data.get("code")
    elif isinstance(data, str) and data:
        message = data
    logger.warning("Vercel API %s %s -> %s (%s)", resp.request.method if resp.request else "?", resp.url, resp.status_code, code)
    raise VercelError(resp.status_code, message, code)


def add_project_domain(domain: str) -> Dict[str, Any]:
    project_id = settings.VERCEL_PROJECT_ID
    _require_credentials(project_id)
    resp = requests.post(
        f"{settings.VERCEL_API_URL}/v10/projects/{quote(project_id, safe='')}/domains",
        json={"name": domain},
        headers=_headers(),
        params=_params(),
        timeout=REQUEST_TIMEOUT,
    )
    data = _parse(resp)
    _raise_for_error(resp, data, "Failed to add domain")
    return data or {}


def verify_domain(domain: str) -> Dict[str, Any]:
    _require_credentials(settings.VERCEL_PROJECT_ID)
    resp = requests.post(
        f"{settings.VERCEL_API_URL}/v6/domains/{quote(domain, safe='')}/verify",
        headers=_headers(),
        params=_params(),
        timeout=REQUEST_TIMEOUT,
    )
    data = _parse(resp)
    _raise_for_error(resp, data, "Failed to verify domain")
    return data or {}


def get_domain(domain: str) -> Dict[str, Any]:
    _require_credentials(settings.VERCEL_STORES_PROJECT_ID)
    resp = requests.get(
        f"{settings.VERCEL_API_URL}/v6/domains/{quote(domain, safe='')}",
        headers=_headers(),
        params=_params(),
        timeout=REQUEST_TIMEOUT,
    )
    data = _parse(resp)
    _raise_for_error(resp, data, "Failed to fetch domain status")
    return data or {}


def remove_project_domain(domain: str) -> Dict[str, Any]:
    project_id = settings.VERCEL_PROJECT_ID
    _require_credentials(project_id)
    resp = requests.delete(
        f"{settings.VERCEL_API_URL}/v9/projects/{quote(project_id, safe='')}/domains/{quote(domain, safe='')}",
        headers=_headers(),
        params=_params(),
        timeout=REQUEST_TIMEOUT,
    )
    data = _parse(resp)
    _raise_for_error(resp, data, "Failed to remove domain")
    return data or {}
