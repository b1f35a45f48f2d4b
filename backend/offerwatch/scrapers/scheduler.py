"""APScheduler-based scraping scheduler.

Runs every configured source at a fixed interval for as long as the
process lives. Jobs share one ScraperService, so each source keeps its
in-memory baseline between runs.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import structlog
from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from offerwatch.config import settings
from offerwatch.scrapers.scraper_service import ScraperService

logger = structlog.get_logger(__name__)


class ScraperScheduler:
    """Manages periodic scraping jobs using APScheduler.

    This scheduler:
    - Starts and stops background scraping jobs
    - Staggers the first runs so sources do not start at once
    - Handles errors gracefully without stopping the scheduler
    """

    def __init__(self, service: ScraperService):
        self.service = service
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.logger = logger.bind(service="scraper_scheduler")
        self._job_ids: Dict[str, str] = {}  # Map source_slug -> job_id

    def start(self) -> None:
        """Start the scheduler (requires a running event loop)."""
        if not self.scheduler.running:
            self.scheduler.start()
            self.logger.info("scheduler_started")
        else:
            self.logger.warning("scheduler_already_running")

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            self.logger.info("scheduler_stopped")
        else:
            self.logger.warning("scheduler_not_running")

    def load_source_jobs(
        self,
        sources: Optional[List[str]] = None,
        interval_minutes: Optional[int] = None,
        run_now: bool = True,
    ) -> int:
        """Schedule one job per source.

        Args:
            sources: Source slugs (defaults to SOURCES_TO_SCRAPE)
            interval_minutes: Run interval (defaults to REFRESH_MINUTES)
            run_now: Start the first source immediately, later ones staggered

        Returns:
            Number of jobs scheduled
        """
        interval_minutes = interval_minutes or settings.REFRESH_MINUTES
        jobs_added = 0
        for idx, source_slug in enumerate(sources or settings.get_sources()):
            offset_seconds = idx * settings.JOB_STAGGER_SECONDS
            if not run_now:
                offset_seconds += interval_minutes * 60
            if self.add_source_job(source_slug, interval_minutes, offset_seconds):
                jobs_added += 1

        self.logger.info("source_jobs_loaded", count=jobs_added)
        return jobs_added

    def add_source_job(
        self,
        source_slug: str,
        interval_minutes: int,
        offset_seconds: int = 0,
    ) -> Optional[Job]:
        """Add a periodic scraping job for a source.

        Args:
            source_slug: Source identifier (e.g., "olx")
            interval_minutes: How often to run the job
            offset_seconds: Delay before the first run

        Returns:
            APScheduler Job instance or None if already exists
        """
        if source_slug in self._job_ids:
            self.logger.warning("job_already_exists", source_slug=source_slug)
            return None

        now = datetime.now(timezone.utc)
        trigger = IntervalTrigger(minutes=interval_minutes, start_date=now, timezone="UTC")

        job = self.scheduler.add_job(
            func=self._run_source_wrapper,
            trigger=trigger,
            args=[source_slug],
            id=f"scrape_{source_slug}",
            name=f"Scrape {source_slug}",
            replace_existing=True,
            max_instances=1,  # Prevent concurrent runs of same source
            next_run_time=now + timedelta(seconds=offset_seconds),
        )

        self._job_ids[source_slug] = job.id

        self.logger.info(
            "source_job_added",
            source_slug=source_slug,
            interval_minutes=interval_minutes,
            offset_seconds=offset_seconds,
        )
        return job

    async def _run_source_wrapper(self, source_slug: str) -> None:
        """Job entry point; a failing run never stops the scheduler."""
        self.logger.info("starting_scrape_job", source_slug=source_slug)
        started = datetime.now(timezone.utc)
        try:
            result = await self.service.run_source(source_slug)
        except Exception as e:
            self.logger.error(
                "scrape_job_failed",
                source_slug=source_slug,
                error=str(e),
                exc_info=True,
            )
            return

        self.logger.info(
            "scrape_job_completed",
            source_slug=source_slug,
            ok=result.ok,
            new_records=len(result.new_records),
            duration_seconds=round((datetime.now(timezone.utc) - started).total_seconds(), 2),
        )

    def get_jobs_status(self) -> dict:
        """Get status of all scheduled jobs, keyed by source_slug."""
        jobs = {}
        for source_slug, job_id in self._job_ids.items():
            job = self.scheduler.get_job(job_id)
            if job:
                jobs[source_slug] = {
                    "job_id": job_id,
                    "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
                    "trigger": str(job.trigger),
                }
        return jobs

    def is_running(self) -> bool:
        return self.scheduler.running
