"""Data models and protocols."""

from core.models.ignored_models import IgnoredGroup, IgnoredSong
from core.models.normalization import make_group_key, normalize_for_matching
from core.models.outcome import Outcome, OutcomeKind
from core.models.protocols import CatalogProviderProtocol, IgnoredItemsProtocol, PlaybackDeviceProtocol
from core.models.sync_models import SyncJob, SyncMode, SyncProgress, SyncState, SyncSummary
from core.models.track_models import AppConfig, CatalogSnapshot, DuplicateGroup, TrackRecord

__all__ = [
    "AppConfig",
    "CatalogProviderProtocol",
    "CatalogSnapshot",
    "DuplicateGroup",
    "IgnoredGroup",
    "IgnoredItemsProtocol",
    "IgnoredSong",
    "Outcome",
    "OutcomeKind",
    "PlaybackDeviceProtocol",
    "SyncJob",
    "SyncMode",
    "SyncProgress",
    "SyncState",
    "SyncSummary",
    "TrackRecord",
    "make_group_key",
    "normalize_for_matching",
]
