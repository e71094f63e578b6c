"""Domain records for the mirrored Music.app library.

Everything here is discovered by synchronization; nothing is locally
authoritative. The library has exactly one level of nesting: folders hold
playlists, playlists never hold folders, and root playlists have no folder.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

LIBRARY_FOLDER_NAME = "Library"


class Track(BaseModel):
    """A song inside a playlist.

    Optional fields are ``None`` when Music.app reports its sentinel
    (empty genre, year or track number of zero).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    artist: str
    album: str
    duration: float = 0.0
    genre: str | None = None
    year: int | None = None
    track_number: int | None = None


class Playlist(BaseModel):
    """A user playlist, keyed by its persistent ID."""

    model_config = ConfigDict(frozen=True)

    persistent_id: str
    name: str
    earliest_added: datetime | None = None


class Folder(BaseModel):
    """A folder playlist and the playlists directly inside it."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    playlists: list[Playlist] = Field(default_factory=list)

    @property
    def is_library(self) -> bool:
        """Whether this is the reserved root pseudo-folder."""
        return self.name == LIBRARY_FOLDER_NAME


class PlaylistEntry(BaseModel):
    """One playlist row as reported by the batched listing command."""

    model_config = ConfigDict(frozen=True)

    name: str
    persistent_id: str
    date_text: str | None = None


class LibraryListing(BaseModel):
    """Raw result of listing every folder together with its playlists."""

    root: list[PlaylistEntry] = Field(default_factory=list)
    folders: dict[str, list[PlaylistEntry]] = Field(default_factory=dict)
