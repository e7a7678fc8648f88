"""
Housekeeping job, run periodically by APScheduler:
- drop expired rate-limit windows
- drop expired sessions from the session cache
- purge organisation invites that expired unaccepted more than a day ago
"""
import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from kindred.core.auth import sweep_sessions
from kindred.core.config import HOUSEKEEPING_INTERVAL_MINUTES
from kindred.core.database import SessionLocal
from kindred.core.rate_limit import limiter
from kindred.services.org_invites import purge_expired_invites

logger = logging.getLogger(__name__)

JOB_ID = "housekeeping"

# Global scheduler instance
_scheduler: Optional[BackgroundScheduler] = None


def get_scheduler() -> BackgroundScheduler:
    """Get or create the global scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = BackgroundScheduler()
    return _scheduler


def run_housekeeping() -> dict:
    """Run one housekeeping pass. Returns counts of removed items."""
    swept = limiter.sweep()
    sessions = sweep_sessions()
    purged = 0
    db = SessionLocal()
    try:
        purged = purge_expired_invites(db)
    except Exception as e:
        logger.error(f"[Housekeeping] Failed to purge expired invites: {e}", exc_info=True)
        db.rollback()
    finally:
        db.close()

    if swept or sessions or purged:
        logger.info(f"[Housekeeping] Swept {swept} rate-limit windows, {sessions} sessions, purged {purged} expired invites")
    return {"rate_limit_windows": swept, "sessions": sessions, "expired_invites": purged}


def start_housekeeping(interval_minutes: int = HOUSEKEEPING_INTERVAL_MINUTES):
    """Start the scheduler and register the housekeeping job."""
    scheduler = get_scheduler()
    scheduler.add_job(
        run_housekeeping,
        trigger=IntervalTrigger(minutes=interval_minutes),
        id=JOB_ID,
        replace_existing=True,
        max_instances=1,  # Prevent overlapping runs
    )
    if not scheduler.running:
        scheduler.start()
        logger.info(f"[Housekeeping] Scheduler started, every {interval_minutes} min")


def stop_housekeeping():
    """Stop the scheduler."""
    global _scheduler
    if _scheduler and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("[Housekeeping] Scheduler stopped")
    _scheduler = None
