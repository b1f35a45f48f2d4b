"""Tests for ScraperScheduler."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from offerwatch.config import settings
from offerwatch.scrapers.scheduler import ScraperScheduler
from offerwatch.scrapers.scraper_service import RunResult


@pytest.fixture
def service():
    fake = MagicMock()
    fake.run_source = AsyncMock(side_effect=lambda source: RunResult(source=source))
    return fake


@pytest.fixture
def scheduler(service):
    scheduler = ScraperScheduler(service)
    yield scheduler
    if scheduler.is_running():
        scheduler.stop()


# ============================================================================
# TESTS: JOB MANAGEMENT
# ============================================================================

class TestSchedulerJobs:
    """Tests for adding and listing jobs."""

    async def test_one_job_per_source(self, scheduler, monkeypatch):
        monkeypatch.setattr(settings, "JOB_STAGGER_SECONDS", 30)
        assert scheduler.load_source_jobs(["olx", "gumtree"], interval_minutes=60) == 2

        status = scheduler.get_jobs_status()
        assert set(status) == {"olx", "gumtree"}
        assert status["olx"]["job_id"] == "scrape_olx"
        assert status["gumtree"]["next_run"] > status["olx"]["next_run"]

    async def test_duplicate_job_is_ignored(self, scheduler):
        assert scheduler.add_source_job("olx", interval_minutes=60) is not None
        assert scheduler.add_source_job("olx", interval_minutes=60) is None

    async def test_start_and_stop(self, scheduler):
        scheduler.start()
        assert scheduler.is_running()
        scheduler.stop()
        # Newer APScheduler releases finish shutting down on the next loop iteration
        await asyncio.sleep(0.05)
        assert not scheduler.is_running()


# ============================================================================
# TESTS: JOB EXECUTION
# ============================================================================

class TestSchedulerExecution:
    """Tests for the job wrapper."""

    async def test_wrapper_runs_source(self, scheduler, service):
        await scheduler._run_source_wrapper("olx")
        service.run_source.assert_awaited_once_with("olx")

    async def test_wrapper_swallows_job_failure(self, scheduler, service):
        service.run_source.side_effect = RuntimeError("browser crashed")
        await scheduler._run_source_wrapper("olx")
