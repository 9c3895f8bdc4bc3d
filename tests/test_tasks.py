"""
Tests for the scheduled domain refresh task.
"""
from services.domains import SweepAlreadyRunning
from tasks import domain_tasks


class TestRefreshDomainsTask:

    def test_skips_when_sweep_running(self, monkeypatch):
        def _busy(db, limit=1000):
            raise SweepAlreadyRunning("busy")

        monkeypatch.setattr(domain_tasks, "refresh_all_domains", _busy)
        assert domain_tasks.refresh_domains_task.run() == {"ok": False, "skipped": True}

    def test_reports_count(self, monkeypatch):
        monkeypatch.setattr(
            domain_tasks,
            "refresh_all_domains",
            lambda db, limit=1000: {"ok": True, "count": 3, "results": []},
        )
        assert domain_tasks.refresh_domains_task.run() == {"ok": True, "count": 3}

    def test_scheduled_on_beat(self):
        schedule = domain_tasks.celery_app.conf.beat_schedule
        assert schedule["refresh-custom-domains"]["task"] == "tasks.domain_tasks.refresh_domains_task"
