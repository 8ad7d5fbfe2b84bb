"""Duplicate detection over a catalog snapshot.

Groups tracks that share a normalized title and artist but live on at least
two different albums, then ranks the groups by how far apart their play
counts are. The engine is pure: it never talks to Music.app and produces the
same groups in the same order for the same input.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from core.exceptions import ScanSupersededError
from core.models.normalization import make_group_key
from core.models.track_models import MIN_GROUP_ALBUMS, MIN_GROUP_MEMBERS, DuplicateGroup

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from core.models.track_models import TrackRecord

ProgressCallback = Callable[[float], None]

logger = logging.getLogger(__name__)


def partition_by_group_key(
    catalog: Sequence[TrackRecord],
    progress_callback: ProgressCallback | None = None,
    *,
    should_cancel: Callable[[], bool] | None = None,
    progress_step: int = 1,
) -> dict[str, list[TrackRecord]]:
    """Partition matchable tracks by group key, keeping catalog order.

    Tracks without a usable title or artist are skipped entirely. The returned
    dict preserves the order in which each key was first seen.

    Args:
        catalog: Tracks in catalog order
        progress_callback: Receives ``index / total`` before each reported track
        should_cancel: Polled per track; a true result aborts the scan
        progress_step: Report progress every N tracks

    Raises:
        ScanSupersededError: If ``should_cancel`` returns True

    """
    total = len(catalog)
    step = max(progress_step, 1)
    partitions: dict[str, list[TrackRecord]] = {}

    for index, track in enumerate(catalog):
        if should_cancel is not None and should_cancel():
            raise ScanSupersededError
        if progress_callback is not None and index % step == 0:
            progress_callback(index / total)

        if not track.is_matchable:
            continue
        partitions.setdefault(make_group_key(track.title, track.artist), []).append(track)

    return partitions


def is_duplicate_candidate(members: Sequence[TrackRecord]) -> bool:
    """Check the group invariants: 2+ members spread over 2+ distinct albums."""
    if len(members) < MIN_GROUP_MEMBERS:
        return False
    return len({track.display_album for track in members}) >= MIN_GROUP_ALBUMS


def build_group(key: str, members_in_catalog_order: Sequence[TrackRecord]) -> DuplicateGroup:
    """Build a group; display names come from the first member in catalog order."""
    representative = members_in_catalog_order[0]
    # sorted() is stable, so equal play counts keep catalog order
    ordered = sorted(members_in_catalog_order, key=lambda track: track.play_count, reverse=True)
    return DuplicateGroup(
        key=key,
        title=representative.display_title,
        artist=representative.display_artist,
        members=tuple(ordered),
    )


def rank_groups(groups: Iterable[DuplicateGroup]) -> list[DuplicateGroup]:
    """Order groups by descending impact, stable on discovery order."""
    return sorted(groups, key=lambda group: group.impact, reverse=True)


def detect_duplicates(
    catalog: Sequence[TrackRecord],
    progress_callback: ProgressCallback | None = None,
    *,
    should_cancel: Callable[[], bool] | None = None,
    progress_step: int = 1,
) -> list[DuplicateGroup]:
    """Find duplicate groups in a catalog snapshot.

    Progress fractions are non-decreasing and the last notification is
    exactly ``1.0``; an empty catalog produces a single ``1.0``.

    Args:
        catalog: Tracks in catalog order
        progress_callback: Optional progress receiver
        should_cancel: Optional cancellation poll, checked once per track
        progress_step: Report progress every N tracks

    Returns:
        Duplicate groups, highest play count spread first

    Raises:
        ScanSupersededError: If ``should_cancel`` returns True mid-scan

    """
    partitions = partition_by_group_key(
        catalog,
        progress_callback,
        should_cancel=should_cancel,
        progress_step=progress_step,
    )

    groups = [build_group(key, members) for key, members in partitions.items() if is_duplicate_candidate(members)]
    ranked = rank_groups(groups)

    logger.debug(
        "Duplicate detection: %d tracks, %d partitions, %d groups",
        len(catalog),
        len(partitions),
        len(ranked),
    )

    if progress_callback is not None:
        progress_callback(1.0)
    return ranked
