"""Pre-flight validation and iteration math for play count sync jobs."""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import NothingToReconcileError, SameTrackSelectedError
from core.models.sync_models import SyncJob, SyncMode

if TYPE_CHECKING:
    from core.models.track_models import TrackRecord


def required_iterations(source: TrackRecord, target: TrackRecord, mode: SyncMode) -> tuple[int, int]:
    """Compute the plays needed and the play count the target should end at.

    Returns:
        Tuple of (required_iterations, goal_play_count)

    """
    if mode is SyncMode.MATCH:
        return max(source.play_count - target.play_count, 0), source.play_count
    return source.play_count, target.play_count + source.play_count


def plan_sync_job(source: TrackRecord, target: TrackRecord, mode: SyncMode) -> SyncJob:
    """Validate a source/target pair and build an idle job.

    Raises:
        SameTrackSelectedError: If both sides are the same library track
        NothingToReconcileError: If the mode needs zero plays

    """
    if source.id == target.id:
        raise SameTrackSelectedError(source.id)

    iterations, goal = required_iterations(source, target, mode)
    if iterations == 0:
        if mode is SyncMode.MATCH:
            msg = (
                "The target track already has as many (or more) plays than the source track. "
                "No additional plays are needed."
            )
        else:
            msg = "The source track has 0 plays, so no additional plays will be added."
        raise NothingToReconcileError(msg)

    return SyncJob(
        source_track=source,
        target_track=target,
        mode=mode,
        required_iterations=iterations,
        goal_play_count=goal,
    )
