"""Scheduler for billing jobs.

This module provides a scheduler that evaluates the cron expression of every
billing sweep and runs the sweeps that are due, each in its own database session.
"""

import asyncio
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Callable, Optional

from croniter import croniter
from sqlalchemy.ext.asyncio import AsyncSession

from credibill import schemas
from credibill.core.config import settings
from credibill.core.datetime_utils import utc_now_ms, utc_now_naive
from credibill.core.logging import LoggerConfigurator
from credibill.db.session import get_db_context
from credibill.platform.billing.sweep_handlers import JOBS, SweepJob

logger = LoggerConfigurator.configure_logger(__name__, prefix="[Scheduler] ")

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class BillingScheduler:
    """Scheduler for billing sweeps.

    Every check, jobs whose next cron run has passed are run one after another.
    A job's next run is computed from the time it last ran, so a slow tick delays
    but never repeats a job.
    """

    def __init__(
        self,
        jobs: Optional[dict[str, SweepJob]] = None,
        session_factory: Optional[SessionFactory] = None,
    ):
        """Initialize the scheduler.

        Args:
            jobs: Jobs by name, all billing sweeps if omitted
            session_factory: Opens one database session per job run
        """
        self.jobs = jobs if jobs is not None else JOBS
        self.session_factory = session_factory or get_db_context
        self.running = False
        self.task: Optional[asyncio.Task] = None
        self.check_interval = settings.SCHEDULER_CHECK_INTERVAL_SECONDS
        self.next_runs: dict[str, datetime] = {}

    def schedule_next_runs(self, base: datetime) -> None:
        """Compute the next run of every job after `base` (naive UTC)."""
        for name, job in self.jobs.items():
            self.next_runs[name] = croniter(job.cron, base).get_next(datetime)
            logger.debug(f"Job {name} ({job.cron}) next runs at {self.next_runs[name].isoformat()}")

    async def start(self):
        """Start the scheduler."""
        if self.running:
            logger.warning("Scheduler is already running")
            return

        self.schedule_next_runs(utc_now_naive())
        self.running = True
        self.task = asyncio.create_task(self._scheduler_loop())
        logger.info(f"Billing scheduler started with {len(self.jobs)} jobs")
        logger.debug(f"Scheduler check interval set to {self.check_interval} seconds")

    async def stop(self):
        """Stop the scheduler."""
        if not self.running:
            logger.warning("Scheduler is not running")
            return

        self.running = False
        if self.task:
            logger.debug("Cancelling scheduler task")
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                logger.debug("Scheduler task cancelled successfully")
            self.task = None
        logger.info("Billing scheduler stopped")

    async def _scheduler_loop(self):
        """Main scheduler loop that checks for due jobs."""
        logger.debug("Scheduler loop started")

        while self.running:
            try:
                await self.run_due_jobs(utc_now_naive())
            except Exception as e:
                logger.error(f"Error in scheduler loop: {e}", exc_info=True)

            await asyncio.sleep(self.check_interval)

    async def run_due_jobs(self, current_time: datetime) -> list[str]:
        """Run every job whose next run is at or before `current_time` (naive UTC).

        Returns:
            Names of the jobs that were run
        """
        ran = []
        for name, job in self.jobs.items():
            next_run = self.next_runs.get(name)
            if next_run is None or next_run > current_time:
                continue

            await self.run_job(name)
            ran.append(name)
            self.next_runs[name] = croniter(job.cron, current_time).get_next(datetime)

        return ran

    async def run_job(
        self, name: str, now: Optional[int] = None
    ) -> Optional[schemas.SweepResult]:
        """Run one job in a fresh session.

        Args:
            name: Job name
            now: Reference time in epoch milliseconds, the current time if omitted

        Returns:
            The sweep result, or None if the job raised

        Raises:
            KeyError: If no job has this name.
        """
        job = self.jobs[name]
        if now is None:
            now = utc_now_ms()

        start_time = utc_now_naive()
        try:
            async with self.session_factory() as db:
                result = await job.handler(db, now)
        except Exception as e:
            logger.with_context(job=name).error(f"Job {name} failed: {e}", exc_info=True)
            return None

        duration = (utc_now_naive() - start_time).total_seconds()
        logger.with_context(job=name).debug(f"Job {name} finished in {duration:.3f}s")
        return result


billing_scheduler = BillingScheduler()
