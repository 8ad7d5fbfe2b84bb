"""Tests for the duplicate detection engine."""

from __future__ import annotations

import allure
import hypothesis.strategies as st
import pytest
from hypothesis import given, settings

from core.exceptions import ScanSupersededError
from core.models.normalization import make_group_key
from core.models.track_models import TrackRecord
from core.tracks.duplicate_detection import detect_duplicates, is_duplicate_candidate, partition_by_group_key
from tests.factories import make_track


def _tracks_strategy() -> st.SearchStrategy[list[TrackRecord]]:
    """Small vocabularies so duplicates actually happen."""
    names = st.sampled_from(["Song", "song ", "Other", "", None])
    artists = st.sampled_from(["Artist", " ARTIST", "Band", None])
    albums = st.sampled_from(["A", "B", "C", None])
    track = st.builds(
        lambda title, artist, album, plays: make_track(title, artist, album, plays),
        names,
        artists,
        albums,
        st.integers(min_value=0, max_value=50),
    )
    return st.lists(track, max_size=30)


@allure.epic("Play Count Matcher")
@allure.feature("Duplicate Detection")
@pytest.mark.unit
class TestDetectDuplicates:
    """Tests for detect_duplicates."""

    @allure.story("Grouping")
    @allure.title("Same song on two albums forms a group ordered by plays")
    def test_basic_group(self) -> None:
        low = make_track("Song", "Artist", "Album A", 5)
        high = make_track("song", "ARTIST ", "Album B", 20)
        other = make_track("Different", "Artist", "Album C", 1)

        groups = detect_duplicates([low, high, other])

        assert len(groups) == 1
        group = groups[0]
        assert group.key == "song|artist"
        assert group.members == (high, low)
        assert group.title == "Song"  # first member in catalog order
        assert group.artist == "Artist"
        assert group.impact == 15

    @allure.story("Grouping")
    def test_same_album_copies_are_not_duplicates(self) -> None:
        tracks = [make_track("Song", "Artist", "Album", 1), make_track("Song", "Artist", "Album", 9)]
        assert detect_duplicates(tracks) == []

    def test_missing_album_compares_as_unknown(self) -> None:
        tracks = [make_track(album=None), make_track(album="Unknown")]
        assert detect_duplicates(tracks) == []

        tracks = [make_track(album=None), make_track(album="Real Album")]
        assert len(detect_duplicates(tracks)) == 1

    def test_tracks_without_title_or_artist_are_skipped(self) -> None:
        tracks = [
            make_track(None, "Artist", "A"),
            make_track(None, "Artist", "B"),
            make_track("Song", None, "A"),
            make_track("Song", "", "B"),
        ]
        assert detect_duplicates(tracks) == []

    def test_ties_keep_catalog_order(self) -> None:
        first = make_track(album="A", play_count=3)
        second = make_track(album="B", play_count=3)
        group = detect_duplicates([first, second])[0]
        assert group.members == (first, second)
        assert group.source_candidate is first

    @allure.story("Ranking")
    def test_groups_ranked_by_impact_then_discovery(self) -> None:
        tracks = [
            make_track("Small", "X", "A", 1),
            make_track("Tie", "X", "A", 0),
            make_track("Big", "X", "A", 100),
            make_track("Small", "X", "B", 3),
            make_track("Big", "X", "B", 0),
            make_track("Tie", "X", "B", 2),
        ]
        groups = detect_duplicates(tracks)
        assert [group.title for group in groups] == ["Big", "Small", "Tie"]

    @allure.story("Progress")
    def test_progress_is_monotonic_and_ends_at_one(self) -> None:
        reported: list[float] = []
        tracks = [make_track(album=str(i)) for i in range(7)]

        detect_duplicates(tracks, reported.append)

        assert reported == sorted(reported)
        assert reported[0] == 0.0
        assert reported[-1] == 1.0
        assert all(0.0 <= fraction <= 1.0 for fraction in reported)
        assert len(reported) == 8

    def test_progress_step(self) -> None:
        reported: list[float] = []
        detect_duplicates([make_track() for _ in range(10)], reported.append, progress_step=4)
        assert reported == [0.0, 0.4, 0.8, 1.0]

    def test_empty_catalog_reports_single_completion(self) -> None:
        reported: list[float] = []
        assert detect_duplicates([], reported.append) == []
        assert reported == [1.0]

    @allure.story("Cancellation")
    def test_cancellation_raises_superseded(self) -> None:
        calls = 0

        def should_cancel() -> bool:
            nonlocal calls
            calls += 1
            return calls > 2

        with pytest.raises(ScanSupersededError):
            detect_duplicates([make_track() for _ in range(5)], should_cancel=should_cancel)

    @given(tracks=_tracks_strategy())
    @settings(max_examples=100)
    def test_groups_are_valid_and_disjoint(self, tracks: list[TrackRecord]) -> None:
        groups = detect_duplicates(tracks)

        seen: set[str] = set()
        for group in groups:
            ids = group.member_ids()
            assert not seen.intersection(ids)
            seen.update(ids)
            assert is_duplicate_candidate(group.members)
            assert all(make_group_key(t.title, t.artist) == group.key for t in group.members)
            counts = [t.play_count for t in group.members]
            assert counts == sorted(counts, reverse=True)

        impacts = [group.impact for group in groups]
        assert impacts == sorted(impacts, reverse=True)

    @given(tracks=_tracks_strategy())
    @settings(max_examples=50)
    def test_deterministic(self, tracks: list[TrackRecord]) -> None:
        assert detect_duplicates(tracks) == detect_duplicates(list(tracks))


@pytest.mark.unit
class TestPartition:
    """Tests for partition_by_group_key."""

    def test_preserves_first_seen_order(self) -> None:
        tracks = [make_track("B", "X"), make_track("A", "X"), make_track("B", "X")]
        partitions = partition_by_group_key(tracks)
        assert list(partitions) == ["b|x", "a|x"]
        assert len(partitions["b|x"]) == 2
