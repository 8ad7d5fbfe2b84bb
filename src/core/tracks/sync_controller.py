"""Play count synchronization controller.

Drives repeated playback of a target track until its play count has been
reconciled with the source track. Each iteration waits for the playback
device to report that a play-through finished; there is no timer involved, so
tracks of any length and slow devices are handled the same way.

State machine::

    IDLE -> RUNNING -> COMPLETED
                    -> CANCELLED   (user request or device failure)

Cancellation and pause are cooperative: they are only observed between
iterations, so an in-flight play always finishes and is always counted.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from core.exceptions import (
    JobAlreadyRunningError,
    JobNotStartableError,
    NothingToReconcileError,
    PlaybackFailedError,
    SameTrackSelectedError,
)
from core.logger import LogFormat
from core.models.outcome import Outcome, OutcomeKind
from core.models.sync_models import SyncJob, SyncProgress, SyncState, SyncSummary
from core.tracks.sync_planning import plan_sync_job

if TYPE_CHECKING:
    from core.models.protocols import PlaybackDeviceProtocol
    from core.models.sync_models import SyncMode
    from core.models.track_models import TrackRecord

ProgressObserver = Callable[[SyncProgress], None]


def build_summary(job: SyncJob) -> SyncSummary:
    """Summarize a finished job.

    The resulting play count is an estimate (target's count at selection time
    plus confirmed plays); Music.app is not re-queried.
    """
    plays = job.completed_iterations
    estimate = job.estimated_play_count

    if job.failure is not None:
        message = f"Playback failed: {job.failure}. {plays} plays were added (best-effort estimate: {estimate} total plays)."
    elif job.state is SyncState.COMPLETED:
        message = (
            f"Done! '{job.target_track.display_title}' has now been played an estimated {estimate} times "
            f"({plays} plays added, best-effort estimate)."
        )
    elif plays > 0:
        message = f"Processing stopped. {plays} plays were added to the target track (best-effort estimate: {estimate} total plays)."
    else:
        message = "Processing stopped. No plays were added."

    return SyncSummary(
        job_id=job.job_id,
        state=job.state,
        plays_added=plays,
        estimated_play_count=estimate,
        goal_play_count=job.goal_play_count,
        message=message,
        failure=job.failure,
    )


class PlayCountSyncController:
    """Runs one sync job at a time against a playback device.

    Attributes:
        progress: Most recently published snapshot of the current or last job

    """

    def __init__(
        self,
        device: PlaybackDeviceProtocol,
        console_logger: logging.Logger | None = None,
        error_logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            device: Playback device that reports finished play-throughs
            console_logger: Logger for progress output
            error_logger: Logger for failures

        """
        self._device = device
        self.console_logger = console_logger if console_logger is not None else logging.getLogger(__name__)
        self.error_logger = error_logger if error_logger is not None else self.console_logger

        self._active_job: SyncJob | None = None
        self._cancel_requested = False
        self._paused = False
        self._resume_event = asyncio.Event()
        self._resume_event.set()
        self._observers: list[ProgressObserver] = []
        self.progress: SyncProgress | None = None

    @property
    def is_running(self) -> bool:
        return self._active_job is not None

    @property
    def is_paused(self) -> bool:
        return self._paused

    def subscribe(self, observer: ProgressObserver) -> None:
        """Register a callback that receives every published snapshot."""
        self._observers.append(observer)

    def unsubscribe(self, observer: ProgressObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def prepare(self, source: TrackRecord, target: TrackRecord, mode: SyncMode) -> Outcome[SyncJob]:
        """Validate the pair and create an idle job.

        No job is created when the tracks are the same or there is nothing to
        reconcile; the outcome carries the reason instead.
        """
        try:
            job = plan_sync_job(source, target, mode)
        except SameTrackSelectedError as e:
            self.error_logger.warning("Sync refused: same track selected (%s)", e.track_id)
            return Outcome.from_error(e)
        except NothingToReconcileError as e:
            self.console_logger.info("Nothing to reconcile: %s", e)
            return Outcome.from_error(e)

        self.console_logger.info(
            "Prepared %s job %s: %s plays of %s (goal: %s)",
            mode.value,
            job.job_id,
            LogFormat.number(job.required_iterations),
            LogFormat.entity(target.describe()),
            LogFormat.number(job.goal_play_count),
        )
        return Outcome.success(job)

    async def run(self, job: SyncJob) -> Outcome[SyncSummary]:
        """Drive an idle job to completion or cancellation.

        Returns:
            Success with the summary, ``PLAYBACK_FAILED`` with the partial
            summary, or a rejection when another job is running or the job
            is not idle

        """
        if self._active_job is not None:
            self.error_logger.warning("Rejected job %s: job %s is still running", job.job_id, self._active_job.job_id)
            return Outcome.from_error(JobAlreadyRunningError(self._active_job.job_id))
        if job.state is not SyncState.IDLE:
            return Outcome.from_error(JobNotStartableError(f"Job {job.job_id} is {job.state.value} and cannot be started again."))

        self._active_job = job
        self._cancel_requested = False
        self._paused = False
        self._resume_event.set()

        job.state = SyncState.RUNNING
        self._publish(job)
        self.console_logger.info("Starting job %s (%d plays)", job.job_id, job.required_iterations)

        try:
            await self._drive(job)
        except PlaybackFailedError as e:
            job.failure = str(e)
            self.error_logger.exception("Job %s stopped after %d plays: playback failed", job.job_id, job.completed_iterations)
        finally:
            finished = job.completed_iterations >= job.required_iterations and job.failure is None
            job.state = SyncState.COMPLETED if finished else SyncState.CANCELLED
            self._paused = False
            self._resume_event.set()
            try:
                await self._device.stop()
            finally:
                self._active_job = None
                self._publish(job)

        summary = build_summary(job)
        self.console_logger.info("Job %s %s: %s", job.job_id, job.state.value, summary.message)
        if job.failure is not None:
            return Outcome(OutcomeKind.PLAYBACK_FAILED, summary, summary.message)
        return Outcome.success(summary, summary.message)

    async def _drive(self, job: SyncJob) -> None:
        while job.completed_iterations < job.required_iterations:
            await self._resume_event.wait()
            if self._cancel_requested:
                self.console_logger.info("Job %s cancelled after %d plays", job.job_id, job.completed_iterations)
                return

            self.console_logger.debug(
                "Job %s: play %d/%d",
                job.job_id,
                job.completed_iterations + 1,
                job.required_iterations,
            )
            await self._device.play_track_once(job.target_track.id)
            job.completed_iterations += 1
            self._publish(job)

    def cancel(self) -> bool:
        """Request cancellation; takes effect before the next iteration.

        Returns:
            True if a running job will be cancelled

        """
        if self._active_job is None or self._cancel_requested:
            return False
        self._cancel_requested = True
        # wake a paused loop so it can observe the cancellation
        self._resume_event.set()
        self.console_logger.info("Cancellation requested for job %s", self._active_job.job_id)
        return True

    def pause(self) -> bool:
        """Hold the loop before the next iteration. Returns True if paused."""
        if self._active_job is None or self._paused or self._cancel_requested:
            return False
        self._paused = True
        self._resume_event.clear()
        self._publish(self._active_job)
        return True

    def resume(self) -> bool:
        """Release a paused loop. Returns True if resumed."""
        if self._active_job is None or not self._paused:
            return False
        self._paused = False
        self._resume_event.set()
        self._publish(self._active_job)
        return True

    def _publish(self, job: SyncJob) -> None:
        snapshot = job.snapshot(is_paused=self._paused)
        self.progress = snapshot
        for observer in list(self._observers):
            observer(snapshot)
