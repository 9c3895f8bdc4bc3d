import logging

from core.celery import celery_app
from core.db import db_session
from services.domains import SweepAlreadyRunning, refresh_all_domains

logger = logging.getLogger(__name__)


@celery_app.task(name="tasks.domain_tasks.refresh_domains_task")
def refresh_domains_task(limit: int = 1000):
    """
    Re-check every linked custom domain against the hosting provider.
    Skips quietly when another sweep still holds the lease.
    """
    with db_session() as db:
        try:
            result = refresh_all_domains(db, limit=limit)
        except SweepAlreadyRunning:
            logger.info("Domain refresh skipped: another sweep is running")
            return {"ok": False, "skipped": True}
    return {"ok": True, "count": result["count"]}
