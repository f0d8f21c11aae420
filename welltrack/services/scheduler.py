"""APScheduler jobs for automated health reports."""

import logging
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from welltrack.config import Settings, get_settings
from welltrack.services.report_generator import ReportGenerator

logger = logging.getLogger(__name__)


class ReportScheduler:
    """Scheduled report generation for all users."""

    def __init__(self, generator: Optional[ReportGenerator] = None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.generator = generator or ReportGenerator()
        self.scheduler = AsyncIOScheduler(timezone=self.settings.timezone)

    def trigger(self) -> CronTrigger:
        """Sunday for weekly reports, the 1st of the month for monthly ones."""
        hour, minute = map(int, self.settings.report_time.split(":"))
        if self.settings.report_cadence == "weekly":
            return CronTrigger(day_of_week="sun", hour=hour, minute=minute)
        return CronTrigger(day=1, hour=hour, minute=minute)

    def start(self) -> None:
        """Start the scheduler with the report job."""
        self.scheduler.add_job(
            self._generate_reports,
            self.trigger(),
            id=f"{self.settings.report_cadence}_reports",
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(
            "Report scheduler started (%s at %s)",
            self.settings.report_cadence,
            self.settings.report_time,
        )

    def stop(self) -> None:
        """Stop the scheduler."""
        self.scheduler.shutdown()
        logger.info("Report scheduler stopped")

    async def _generate_reports(self) -> None:
        cadence = self.settings.report_cadence
        logger.info("[%s] Generating %s health reports...", datetime.now(), cadence)
        result = await self.generator.generate_scheduled(cadence)
        logger.info(result.message)
