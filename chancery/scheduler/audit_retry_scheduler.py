"""Audit Retry Scheduler - Re-sends audit events whose first write failed

Account state never waits on the audit trail; events that could not be
written are queued by the AuditWriter and flushed here on an interval.
"""
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config.settings import settings
from ..engine.audit_writer import AuditWriter
from ..utils.logger import get_logger, set_correlation_id
from ..utils.idgen import generate_correlation_id

logger = get_logger(__name__)


class AuditRetryScheduler:
    """APScheduler job that drains the AuditWriter retry queue"""

    def __init__(self, audit_writer: AuditWriter):
        self.audit_writer = audit_writer
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._is_running = False

    def start(self) -> None:
        """Start the scheduler (must be called with a running event loop)"""
        if self._is_running:
            logger.warning("Scheduler already running")
            return

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self.flush,
            trigger=IntervalTrigger(seconds=settings.audit_retry_interval_seconds),
            id="flush_audit_events",
            name="Retry failed audit writes",
            replace_existing=True
        )
        self.scheduler.start()
        self._is_running = True
        logger.info(
            "Audit retry scheduler started",
            extra={"interval_seconds": settings.audit_retry_interval_seconds}
        )

    def stop(self) -> None:
        """Stop the scheduler"""
        if self.scheduler:
            self.scheduler.shutdown(wait=False)
            self._is_running = False
            logger.info("Audit retry scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._is_running

    def flush(self) -> int:
        """One retry pass; never raises into the scheduler"""
        set_correlation_id(generate_correlation_id())
        pending = self.audit_writer.pending_count
        if not pending:
            return 0
        try:
            return self.audit_writer.flush_pending()
        except Exception as e:
            logger.error(f"Audit retry pass failed: {e}", exc_info=True)
            return 0


# Global scheduler instance
_scheduler: Optional[AuditRetryScheduler] = None


def start_scheduler(audit_writer: AuditWriter) -> None:
    """Start the global scheduler"""
    global _scheduler
    if _scheduler is None:
        _scheduler = AuditRetryScheduler(audit_writer)
    _scheduler.start()


def stop_scheduler() -> None:
    """Stop the global scheduler"""
    global _scheduler
    if _scheduler:
        _scheduler.stop()
        _scheduler = None
