import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .config import SyncConfig
from .constants import (
    APP_LABEL,
    APP_NAME,
    FAILURE_NOTICE_SECONDS,
    SUCCESS_NOTICE_SECONDS,
)
from .notify import Notifier
from .pipeline import SyncResult, run_sync

logger = logging.getLogger(APP_NAME)

SyncFunc = Callable[[SyncConfig], Awaitable[SyncResult]]

TIMER_JOB_ID = "git-light-sync"


class SchedulerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


def format_notice(result: SyncResult) -> str:
    """Builds the user-facing notification text for a finished run."""
    if result.success:
        return f"[{APP_LABEL}] Sync finished successfully."
    if result.failing_command:
        return f"[{APP_LABEL}] Sync failed: Command '{result.failing_command}' failed."
    return f"[{APP_LABEL}] Sync failed: {result.reason}"


class SyncScheduler:
    """Runs the sync pipeline at startup, on a recurring timer, and on demand.

    The recurring timer is an APScheduler interval job. All triggers share a
    single run slot: a trigger that fires while a run is in progress is
    dropped (logged and counted in `skipped`), never queued and never run in
    parallel against the same working directory.

    Attributes:
        config (SyncConfig): The settings used by the next run.
        notifier (Notifier): Receives one notice per completed run plus log lines.
        state (SchedulerState): IDLE, RUNNING, or the terminal STOPPED.
        skipped (int): Number of triggers dropped by the skip policy.
    """

    def __init__(
        self,
        config: SyncConfig,
        notifier: Notifier | None = None,
        sync: SyncFunc = run_sync,
    ):
        self.config = config
        self.notifier = notifier or Notifier()
        self.state = SchedulerState.IDLE
        self.skipped = 0
        self._sync = sync
        self._started = False
        self._stopped = False
        self._jobs: AsyncIOScheduler | None = None
        self._ticks: set[asyncio.Task] = set()

    @property
    def has_timer(self) -> bool:
        return self._jobs is not None and self._jobs.get_job(TIMER_JOB_ID) is not None

    async def start(self) -> SyncResult | None:
        """Installs the recurring timer (if enabled) and runs one sync immediately.

        Returns:
            SyncResult | None: The result of the startup run.

        Raises:
            RuntimeError: If the scheduler was already started or stopped.
        """
        if self._stopped:
            raise RuntimeError("Cannot start a stopped scheduler.")
        if self._started:
            raise RuntimeError("Scheduler is already started.")
        self._started = True
        self._jobs = AsyncIOScheduler(event_loop=asyncio.get_running_loop())
        self._jobs.start()
        self.notifier.log(
            f"[{APP_LABEL}] Setting sync to {self.config.interval} seconds"
        )
        self._install_timer()
        return await self._run_once("startup")

    async def trigger_now(self) -> bool | None:
        """Runs the pipeline immediately through the shared run slot.

        Returns:
            bool | None: The run's success flag, or None if the trigger was
            dropped because a run is in progress or the scheduler is stopped.
        """
        result = await self._run_once("manual")
        return None if result is None else result.success

    def stop(self) -> None:
        """Cancels the recurring timer. A run already underway is not interrupted."""
        self._stopped = True
        if self._jobs is not None:
            self._jobs.shutdown(wait=False)
            self._jobs = None
        if self.state is not SchedulerState.RUNNING:
            self.state = SchedulerState.STOPPED
        logger.debug("Scheduler stopped.")

    def reconfigure(self, config: SyncConfig) -> None:
        """Swaps the settings for future runs, rescheduling if the interval changed.

        Args:
            config (SyncConfig): The new settings.
        """
        if self._stopped:
            logger.debug("Ignoring reconfigure on stopped scheduler.")
            return

        interval_changed = config.interval != self.config.interval
        self.config = config
        if self._started and interval_changed:
            self.notifier.log(
                f"[{APP_LABEL}] Setting sync to {config.interval} seconds"
            )
            self._install_timer()

    async def join(self) -> None:
        """Waits for the timer runs that are currently outstanding."""
        pending = list(self._ticks)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def _install_timer(self) -> None:
        """Adds, reschedules or removes the interval job to match the config."""
        assert self._jobs is not None
        job = self._jobs.get_job(TIMER_JOB_ID)
        if self.config.interval <= 0:
            if job is not None:
                job.remove()
            return

        trigger = IntervalTrigger(seconds=self.config.interval)
        if job is not None:
            self._jobs.reschedule_job(TIMER_JOB_ID, trigger=trigger)
        else:
            self._jobs.add_job(
                self._timer_tick,
                trigger,
                id=TIMER_JOB_ID,
                max_instances=1,
                coalesce=True,
            )

    async def _timer_tick(self) -> None:
        # Shutting down the job scheduler cancels its pending jobs; the run
        # itself is a separate, shielded task so it always completes.
        task = asyncio.create_task(self._run_once("timer"))
        self._ticks.add(task)
        task.add_done_callback(self._ticks.discard)
        await asyncio.shield(task)

    async def _run_once(self, trigger: str) -> SyncResult | None:
        if self.state is SchedulerState.STOPPED:
            self.notifier.log(
                f"[{APP_LABEL}] Scheduler stopped; {trigger} sync ignored."
            )
            return None
        if self.state is SchedulerState.RUNNING:
            self.skipped += 1
            self.notifier.log(
                f"[{APP_LABEL}] Sync already in progress; {trigger} sync skipped."
            )
            return None

        self.state = SchedulerState.RUNNING
        self.notifier.log(f"[{APP_LABEL}] Starting sync ({trigger}).")
        try:
            result = await self._sync(self.config)
        except Exception as e:
            logger.exception(f"Unexpected error during {trigger} sync")
            result = SyncResult(success=False, reason=f"Unexpected error: {e}")
        finally:
            self.state = (
                SchedulerState.STOPPED if self._stopped else SchedulerState.IDLE
            )

        self._report(result)
        return result

    def _report(self, result: SyncResult) -> None:
        notice = format_notice(result)
        if result.success:
            self.notifier.notify_success(notice, SUCCESS_NOTICE_SECONDS)
            self.notifier.log(notice)
            return

        self.notifier.notify_failure(notice, FAILURE_NOTICE_SECONDS)
        self.notifier.log(
            f"{notice}\nstdout: {result.stdout}\nstderr: {result.stderr}",
            logging.ERROR,
        )
