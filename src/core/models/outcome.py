"""Discriminated results returned by public service operations.

Every operation the services expose returns an :class:`Outcome` instead of
raising, so callers branch on ``kind`` rather than catching exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from core.exceptions import MusicMatcherError

T = TypeVar("T")


class OutcomeKind(StrEnum):
    """Result kinds of public operations."""

    SUCCESS = "success"
    SAME_TRACK_SELECTED = "same_track_selected"
    NOTHING_TO_RECONCILE = "nothing_to_reconcile"
    SCAN_SUPERSEDED = "scan_superseded"
    JOB_ALREADY_RUNNING = "job_already_running"
    JOB_NOT_STARTABLE = "job_not_startable"
    CATALOG_UNAVAILABLE = "catalog_unavailable"
    PLAYBACK_FAILED = "playback_failed"
    TRACK_NOT_FOUND = "track_not_found"


# Kinds that are informational notices rather than failures
NOTICE_KINDS = frozenset({OutcomeKind.NOTHING_TO_RECONCILE, OutcomeKind.SCAN_SUPERSEDED})


@dataclass(frozen=True, slots=True)
class Outcome(Generic[T]):
    """Success value or a named error kind with a user-facing message."""

    kind: OutcomeKind
    value: T | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @property
    def is_notice(self) -> bool:
        """True for kinds that are not failures of the system."""
        return self.kind in NOTICE_KINDS

    def unwrap(self) -> T:
        """Return the value of a successful outcome.

        Raises:
            ValueError: If the outcome is not a success.

        """
        if self.kind is not OutcomeKind.SUCCESS or self.value is None:
            msg = f"Outcome is {self.kind}: {self.message}"
            raise ValueError(msg)
        return self.value

    @classmethod
    def success(cls, value: T, message: str = "") -> Outcome[T]:
        return cls(OutcomeKind.SUCCESS, value, message)

    @classmethod
    def from_error(cls, error: MusicMatcherError, value: T | None = None) -> Outcome[T]:
        """Build a failed outcome from a domain error."""
        return cls(error.kind, value, str(error))
