"""Background scheduler for overdue checks, reminders and backups.

Supports two modes:
  - **Standalone** (``python -m jessica_invoice.scheduler``): runs a
    ``BlockingScheduler`` as a separate worker process.
  - **Embedded** (``create_background_scheduler()``): returns a
    ``BackgroundScheduler`` that the API process starts in its
    ``lifespan`` handler.
"""

import signal
import sys
from datetime import datetime

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from .services.invoice_service import InvoiceService
from .services.reminder_service import pending_reminders
from .storage.data_manager import DataManager
from .utils.config import get_config
from .utils.logger import get_store_logger, get_scheduler_logger


# ------------------------------------------------------------------
# Job factories
# ------------------------------------------------------------------

def make_overdue_job(data_manager: DataManager = None):
    """Create the job that flags overdue invoices and logs reminders."""
    config = get_config()
    logger = get_store_logger()
    data_manager = data_manager or DataManager()

    def overdue_job():
        logger.info(f"Overdue check started at {datetime.now()}")
        try:
            service = InvoiceService(data_manager)
            changed = service.refresh_overdue()
            reminders = pending_reminders(service.invoices, config.env.reminder_days_before)

            for reminder in reminders:
                logger.info(f"  [{reminder.kind}] {reminder.body}")

            logger.info(
                f"Overdue check done: {len(changed)} newly overdue, "
                f"{len(reminders)} reminder(s)"
            )
        except Exception as e:
            logger.error(f"Overdue check failed: {str(e)}", exc_info=True)

    return overdue_job


def make_backup_job(data_manager: DataManager = None):
    """Create the nightly backup job."""
    logger = get_store_logger()
    data_manager = data_manager or DataManager()

    def backup_job():
        try:
            path = data_manager.create_backup()
            logger.info(f"Nightly backup written to {path}")
        except Exception as e:
            logger.error(f"Nightly backup failed: {str(e)}", exc_info=True)

    return backup_job


def _add_jobs(scheduler, overdue_job, backup_job):
    config = get_config()
    sc = config.scheduler

    scheduler.add_job(
        func=overdue_job,
        trigger=IntervalTrigger(minutes=sc.overdue_check_minutes),
        id="overdue_check",
        name="Overdue invoice check",
        max_instances=sc.max_instances,
        coalesce=sc.coalesce,
        misfire_grace_time=sc.misfire_grace_time,
        replace_existing=True
    )
    scheduler.add_job(
        func=backup_job,
        trigger=CronTrigger(hour=sc.nightly_backup_hour, minute=sc.nightly_backup_minute),
        id="nightly_backup",
        name="Nightly data backup",
        max_instances=sc.max_instances,
        coalesce=sc.coalesce,
        misfire_grace_time=sc.misfire_grace_time,
        replace_existing=True
    )


# ------------------------------------------------------------------
# Embedded (non-blocking) scheduler, used by the API process
# ------------------------------------------------------------------

def create_background_scheduler(data_manager: DataManager = None) -> BackgroundScheduler:
    """Create a ``BackgroundScheduler`` for embedding inside FastAPI.

    The scheduler is returned **not started**; the caller must invoke
    ``scheduler.start()`` when ready.
    """
    config = get_config()
    get_scheduler_logger()

    scheduler = BackgroundScheduler(timezone=config.scheduler.timezone)
    _add_jobs(scheduler, make_overdue_job(data_manager), make_backup_job(data_manager))

    get_store_logger().info(
        f"Background scheduler configured: overdue check every "
        f"{config.scheduler.overdue_check_minutes} min, backup at "
        f"{config.scheduler.nightly_backup_hour:02d}:{config.scheduler.nightly_backup_minute:02d}"
    )
    return scheduler


# ------------------------------------------------------------------
# Standalone (blocking) scheduler, for local development / workers
# ------------------------------------------------------------------

class InvoiceScheduler:
    """Standalone worker running the periodic invoice jobs."""

    def __init__(self):
        self.config = get_config()
        self.logger = get_store_logger()
        get_scheduler_logger()

        self.overdue_job = make_overdue_job()
        self.backup_job = make_backup_job()
        self.scheduler = BlockingScheduler(timezone=self.config.scheduler.timezone)

        signal.signal(signal.SIGINT, self._shutdown_handler)
        signal.signal(signal.SIGTERM, self._shutdown_handler)

    def _shutdown_handler(self, signum, frame):
        self.logger.info(f"Received shutdown signal ({signum}). Stopping scheduler...")
        self.scheduler.shutdown(wait=True)
        sys.exit(0)

    def start(self):
        """Start the blocking scheduler (runs forever)."""
        sc = self.config.scheduler

        self.logger.info("=" * 70)
        self.logger.info("Jessica Invoice Scheduler Starting (standalone)")
        self.logger.info("=" * 70)
        self.logger.info(f"Environment:      {self.config.env.environment}")
        self.logger.info(f"Timezone:         {sc.timezone}")
        self.logger.info(f"Overdue check:    every {sc.overdue_check_minutes} minutes")
        self.logger.info(f"Nightly backup:   {sc.nightly_backup_hour:02d}:{sc.nightly_backup_minute:02d}")
        self.logger.info("=" * 70)

        _add_jobs(self.scheduler, self.overdue_job, self.backup_job)

        self.logger.info("Running initial overdue check...")
        self.overdue_job()

        self.logger.info("Scheduler started. Press Ctrl+C to stop.")
        try:
            self.scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            self.logger.info("Scheduler stopped.")


def main():
    """Main entry point for standalone scheduler."""
    try:
        InvoiceScheduler().start()
    except Exception as e:
        get_store_logger().error(f"Scheduler failed to start: {str(e)}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
