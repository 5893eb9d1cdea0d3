"""Scheduler service for automated sales synchronization."""

from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from saron.core.config import get_settings
from saron.core.logging import get_logger
from saron.domain.entities.sales import SyncResult
from saron.domain.services.sales_sync_service import SalesSyncService

logger = get_logger(__name__)

HOURLY_JOB_ID = "hourly_today_sync"
MONTHLY_JOB_ID = "monthly_sales_sync"
STARTUP_JOB_ID = "startup_today_sync"


class SalesSyncScheduler:
    """Cron jobs that keep the local sales tables fresh.

    - Business hours (08:05-19:35, Mon-Sat): today's sales at minutes 5 and 35
    - Day 1 at 00:05: the whole current month
    - Once shortly after startup: today's sales
    """

    def __init__(self, sync_service: SalesSyncService, timezone: Optional[str] = None):
        """
        Initialize the scheduler.

        Args:
            sync_service: Service the jobs delegate to
            timezone: IANA timezone of the cron expressions (from settings if not provided)
        """
        settings = get_settings()
        self.sync_service = sync_service
        self.timezone = timezone or settings.sync_timezone
        self.startup_delay = settings.startup_sync_delay_seconds
        self.scheduler = AsyncIOScheduler(timezone=self.timezone)

    def start(self, run_startup_sync: bool = True) -> None:
        """Register the jobs and start the scheduler on the running event loop."""
        # Job 1: today's sales during business hours, off the hour to avoid API peaks
        self.scheduler.add_job(
            func=self.run_today_sync,
            trigger=CronTrigger(
                day_of_week="mon-sat",
                hour="8-19",
                minute="5,35",
                timezone=self.timezone,
            ),
            kwargs={"trigger_source": "hourly"},
            id=HOURLY_JOB_ID,
            name="Hourly Today Sales Sync",
            replace_existing=True,
            max_instances=1,
        )
        logger.info("Hourly sync scheduled", schedule="08:05-19:35 Mon-Sat", timezone=self.timezone)

        # Job 2: full current month on the first day of each month
        self.scheduler.add_job(
            func=self.run_month_sync,
            trigger=CronTrigger(day=1, hour=0, minute=5, timezone=self.timezone),
            id=MONTHLY_JOB_ID,
            name="Monthly Sales Sync",
            replace_existing=True,
            max_instances=1,
        )
        logger.info("Monthly sync scheduled", schedule="day 1 at 00:05", timezone=self.timezone)

        # Job 3: catch up on today's sales right after startup
        if run_startup_sync:
            run_date = datetime.now(ZoneInfo(self.timezone)) + timedelta(seconds=self.startup_delay)
            self.scheduler.add_job(
                func=self.run_today_sync,
                trigger=DateTrigger(run_date=run_date),
                kwargs={"trigger_source": "startup"},
                id=STARTUP_JOB_ID,
                name="Startup Today Sales Sync",
                replace_existing=True,
            )

        self.scheduler.start()
        logger.info("Scheduler started successfully")

    def stop(self) -> None:
        """Stop the scheduler."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    def next_run_times(self) -> dict[str, Optional[str]]:
        """Next fire time of each job, as ISO strings."""
        return {
            job.id: job.next_run_time.isoformat() if job.next_run_time else None
            for job in self.scheduler.get_jobs()
        }

    async def run_today_sync(self, trigger_source: str = "manual") -> list[SyncResult]:
        """Sync today's sales for every store."""
        logger.info("Starting today sales sync", trigger=trigger_source)
        try:
            results = await self.sync_service.sync_today()
        except Exception as e:
            logger.error("Today sales sync failed", trigger=trigger_source, error=str(e), exc_info=True)
            return []

        self._log_summary(results, trigger_source)
        return results

    async def run_month_sync(self) -> list[SyncResult]:
        """Sync the current month for every store."""
        logger.info("Starting monthly sales sync")
        try:
            results = await self.sync_service.sync_current_month()
        except Exception as e:
            logger.error("Monthly sales sync failed", error=str(e), exc_info=True)
            return []

        self._log_summary(results, "monthly")
        return results

    @staticmethod
    def _log_summary(results: list[SyncResult], trigger_source: str) -> None:
        succeeded = [r for r in results if r.success]
        logger.info(
            "Sales sync finished",
            trigger=trigger_source,
            total_sales=sum(r.sales_count for r in results),
            stores_ok=f"{len(succeeded)}/{len(results)}",
        )
        for result in results:
            if result.success:
                logger.info("Store synced", trigger=trigger_source, store=result.store, sales=result.sales_count)
            else:
                logger.warning("Store sync failed", trigger=trigger_source, store=result.store, error=result.error)
