"""Hourly appointment reminder sweep.

APScheduler-based async scheduler; fires at minute 0 of every hour. The sweep
itself is blocking and runs in the scheduler's default executor.
"""

import logging
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

logger = logging.getLogger(__name__)


class ReminderScheduler:
    """Runs `sweep` every hour; the job is scheduled on the app loop and executed in a worker thread."""

    def __init__(self, sweep: Callable[[], object], enabled: bool = True):
        """Initialize scheduler.

        Args:
            sweep: Callable that performs one reminder pass.
            enabled: Whether scheduler is enabled.
        """
        self.sweep = sweep
        self.enabled = enabled

        self._scheduler: Optional[AsyncIOScheduler] = None
        self._is_running = False

    @property
    def is_running(self) -> bool:
        return self._is_running

    def start(self) -> None:
        """Start the scheduler."""
        if not self.enabled:
            logger.info("ReminderScheduler is disabled, skipping start")
            return

        if self._is_running:
            logger.warning("ReminderScheduler already running")
            return

        scheduler = AsyncIOScheduler()
        self._scheduler = scheduler

        scheduler.add_job(
            self.run_once,
            CronTrigger(minute=0),
            id="appointment_reminders",
            replace_existing=True,
            name="Appointment Reminders",
        )

        scheduler.start()
        self._is_running = True
        logger.info("ReminderScheduler started (hourly at minute 0)")

    def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if self._scheduler and self._is_running:
            self._scheduler.shutdown(wait=False)
            self._is_running = False
            logger.info("ReminderScheduler stopped")

    def run_once(self) -> None:
        """One sweep. Plain function so the scheduler runs it in its thread pool, off the event loop."""
        logger.info("Checking for appointment reminders...")
        try:
            self.sweep()
        except Exception as e:
            logger.error(f"Error sending reminders: {e}", exc_info=True)
