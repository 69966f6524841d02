"""
Periodic reminder sweep driven by APScheduler.

The scheduler owns a single interval job that runs the dispatcher's sweep.
Reminders themselves live in the database, so nothing needs restoring after
a restart: the first sweep picks up whatever became due meanwhile.
"""

import asyncio
from typing import Any, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.events import (
    EVENT_JOB_EXECUTED,
    EVENT_JOB_ERROR,
    EVENT_JOB_MISSED,
    JobExecutionEvent
)

from cycletrack.config import SWEEP_INTERVAL_MINUTES
from cycletrack.notifications.dispatcher import ReminderDispatcher, SweepResult
from cycletrack.utils.logger import get_logger, log_error

logger = get_logger(__name__)

SWEEP_JOB_ID = 'reminder_sweep'


class SweepScheduler:
    """
    Runs the reminder sweep every `interval_minutes`.

    Sweeps never overlap: the job allows a single instance and manual runs
    share the same lock.
    """

    def __init__(
        self,
        dispatcher: ReminderDispatcher,
        interval_minutes: int = SWEEP_INTERVAL_MINUTES
    ):
        """
        Args:
            dispatcher: Dispatcher whose sweep is run
            interval_minutes: Minutes between two sweeps
        """
        self.dispatcher = dispatcher
        self.interval_minutes = interval_minutes
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._is_running = False
        self._lock: Optional[asyncio.Lock] = None
        self.sweeps_completed = 0
        self.last_result: Optional[SweepResult] = None

    def initialize(self) -> None:
        """
        Create the scheduler with its executor and event listeners.
        """
        executors = {
            'default': AsyncIOExecutor()
        }

        job_defaults = {
            'coalesce': True,  # Merge missed runs into one
            'max_instances': 1,
            'misfire_grace_time': 30
        }

        self.scheduler = AsyncIOScheduler(
            executors=executors,
            job_defaults=job_defaults,
            timezone='UTC'
        )

        self.scheduler.add_listener(
            self._handle_job_event,
            EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MISSED
        )

        logger.info("Reminder sweep scheduler initialized")

    def _get_lock(self) -> asyncio.Lock:
        # Created lazily so it binds to the running loop
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def start(self, run_immediately: bool = True) -> None:
        """
        Start the periodic sweep.

        Args:
            run_immediately: Run one sweep right away instead of waiting a
                full interval
        """
        if self._is_running:
            logger.warning("Sweep scheduler already running")
            return

        if not self.scheduler:
            self.initialize()

        self.scheduler.add_job(
            self._run_sweep,
            'interval',
            minutes=self.interval_minutes,
            id=SWEEP_JOB_ID,
            replace_existing=True
        )
        self.scheduler.start()
        self._is_running = True
        logger.info(f"Sweep scheduler started, interval {self.interval_minutes} minutes")

        if run_immediately:
            await self.run_once()

    async def run_once(self) -> SweepResult:
        """Run one sweep now, waiting for a sweep in progress to finish first."""
        async with self._get_lock():
            result = await self.dispatcher.sweep()
            self.sweeps_completed += 1
            self.last_result = result

        if result.sent or result.failed or result.purged:
            logger.info(
                f"Sweep finished: sent={result.sent}, failed={result.failed}, purged={result.purged}"
            )
        return result

    async def _run_sweep(self) -> None:
        try:
            await self.run_once()
        except Exception as e:
            # Next interval retries; the job must stay scheduled
            log_error(logger, "Reminder sweep failed", e)

    async def stop(self) -> None:
        """
        Stop the sweep.

        The job is removed first so no new sweep starts, then an in-flight
        sweep is awaited before the scheduler shuts down.
        """
        if not self._is_running:
            return

        if self.scheduler.get_job(SWEEP_JOB_ID):
            self.scheduler.remove_job(SWEEP_JOB_ID)

        async with self._get_lock():
            self.scheduler.shutdown(wait=False)
            self._is_running = False

        logger.info("Sweep scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._is_running

    def get_stats(self) -> Dict[str, Any]:
        """
        Scheduler statistics.

        Returns:
            Dictionary with job state and the last sweep result
        """
        job = self.scheduler.get_job(SWEEP_JOB_ID) if self.scheduler else None
        return {
            'is_running': self._is_running,
            'interval_minutes': self.interval_minutes,
            'next_run_time': job.next_run_time if job else None,
            'sweeps_completed': self.sweeps_completed,
            'last_result': self.last_result,
        }

    def _handle_job_event(self, event: JobExecutionEvent) -> None:
        """
        Log job execution events.

        Args:
            event: Job execution event
        """
        if event.code == EVENT_JOB_EXECUTED:
            logger.debug(f"Job executed: {event.job_id}")
        elif event.code == EVENT_JOB_ERROR:
            logger.error(f"Job {event.job_id} failed: {event.exception}")
        elif event.code == EVENT_JOB_MISSED:
            logger.warning(f"Job missed: {event.job_id}")
