"""
Scheduler Service for Notification Housekeeping

Uses APScheduler to run the daily deadline reminder sweep and to purge
expired notifications.
"""

import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import SessionLocal
from app.core.timezone import local_timezone, local_today, utcnow
from app.modules.notifications.services import check_deadline_reminders, purge_expired_notifications

logger = logging.getLogger(__name__)


class ReminderScheduler:
    """Manages scheduled notification jobs."""

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory
        self.scheduler = BackgroundScheduler(timezone=local_timezone())

    def start(self):
        self.setup_schedules()
        self.scheduler.start()
        logger.info("Reminder scheduler started")

    def setup_schedules(self):
        """Set up all scheduled jobs."""
        # Daily deadline sweep in the user's local morning
        self.scheduler.add_job(
            self.run_deadline_reminders,
            trigger=CronTrigger(
                hour=settings.REMINDER_HOUR,
                minute=0,
                timezone=local_timezone()
            ),
            id='deadline_reminders',
            name=f'Budget and savings deadline reminders ({settings.REMINDER_HOUR}:00 {settings.TIMEZONE})',
            replace_existing=True
        )

        self.scheduler.add_job(
            self.run_purge,
            trigger=IntervalTrigger(minutes=settings.NOTIFICATION_PURGE_MINUTES),
            id='purge_expired_notifications',
            name=f'Purge expired notifications (every {settings.NOTIFICATION_PURGE_MINUTES} min)',
            replace_existing=True
        )

    def run_deadline_reminders(self) -> int:
        """Emit reminders for budgets and goals that end soon."""
        db: Session = self.session_factory()
        try:
            logger.info("Running scheduled deadline reminder sweep...")
            count = check_deadline_reminders(db, local_today())
            db.commit()
            logger.info(f"Deadline sweep done: {count} reminder(s) checked")
            return count
        except Exception as e:
            db.rollback()
            logger.error(f"Error in scheduled deadline reminders: {e}", exc_info=True)
            return 0
        finally:
            db.close()

    def run_purge(self) -> int:
        """Delete notifications past their expiry."""
        db: Session = self.session_factory()
        try:
            removed = purge_expired_notifications(db, utcnow())
            db.commit()
            if removed:
                logger.info(f"Purged {removed} expired notification(s)")
            return removed
        except Exception as e:
            db.rollback()
            logger.error(f"Error purging expired notifications: {e}", exc_info=True)
            return 0
        finally:
            db.close()

    def shutdown(self):
        """Shutdown the scheduler."""
        if self.scheduler.running:
            self.scheduler.shutdown()
        logger.info("Reminder scheduler stopped")


# Global scheduler instance
_scheduler: Optional[ReminderScheduler] = None


def get_scheduler() -> Optional[ReminderScheduler]:
    """Get the global scheduler instance."""
    return _scheduler


def start_scheduler():
    """Start the reminder scheduler."""
    global _scheduler
    if _scheduler is None:
        _scheduler = ReminderScheduler()
        _scheduler.start()
        logger.info("Reminder scheduler started and configured")
    else:
        logger.info("Reminder scheduler already running")


def stop_scheduler():
    """Stop the reminder scheduler."""
    global _scheduler
    if _scheduler:
        _scheduler.shutdown()
        _scheduler = None
