"""Data models and protocols."""

from core.models.config_models import AppConfig
from core.models.library_models import (
    LIBRARY_FOLDER_NAME,
    Folder,
    LibraryListing,
    Playlist,
    PlaylistEntry,
    Track,
)
from core.models.protocols import BridgeExecutorProtocol

__all__ = [
    "LIBRARY_FOLDER_NAME",
    "AppConfig",
    "BridgeExecutorProtocol",
    "Folder",
    "LibraryListing",
    "Playlist",
    "PlaylistEntry",
    "Track",
]
