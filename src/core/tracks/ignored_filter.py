"""Remove dismissed songs and groups from detection results."""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.tracks.duplicate_detection import is_duplicate_candidate, rank_groups

if TYPE_CHECKING:
    from collections.abc import Iterable

    from core.models.protocols import IgnoredItemsProtocol
    from core.models.track_models import DuplicateGroup


def filter_group(group: DuplicateGroup, ignored: IgnoredItemsProtocol) -> DuplicateGroup | None:
    """Drop ignored members from a group.

    Returns:
        The group (unchanged when nothing was dropped), a trimmed copy, or
        None when the group is ignored or no longer satisfies the group invariants

    """
    if ignored.is_group_ignored(group.key):
        return None

    kept = tuple(track for track in group.members if not ignored.is_song_ignored(track.id))
    if len(kept) == len(group.members):
        return group
    if not is_duplicate_candidate(kept):
        return None
    # members stay in play count order; display names belong to the group key
    return group.model_copy(update={"members": kept})


def apply_ignored_filter(groups: Iterable[DuplicateGroup], ignored: IgnoredItemsProtocol) -> list[DuplicateGroup]:
    """Filter every group and re-rank the survivors by impact."""
    survivors = [filtered for group in groups if (filtered := filter_group(group, ignored)) is not None]
    return rank_groups(survivors)
