"""In-memory copy of the synchronized library.

The mirror is only ever updated by a full refresh or, after a confirmed
delete, by dropping the deleted playlist locally.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING

from core.logger import LogFormat
from core.models.library_models import LIBRARY_FOLDER_NAME, Folder, Playlist

if TYPE_CHECKING:
    from services.library_sync import LibrarySyncService


class SortOption(StrEnum):
    """Orderings offered for the playlists of one folder."""

    ALPHABETICAL = "a-z"
    REVERSE_ALPHABETICAL = "z-a"
    NEWEST_FIRST = "newest"
    OLDEST_FIRST = "oldest"
    ORIGINAL = "original"


class FolderFilter(StrEnum):
    """Which kinds of entries a filtered view shows."""

    ALL = "all"
    FOLDERS_ONLY = "folders"
    PLAYLISTS_ONLY = "playlists"


def _name_key(playlist: Playlist) -> str:
    return playlist.name.casefold()


def _sort_by_date(playlists: list[Playlist], *, newest_first: bool) -> list[Playlist]:
    # dated playlists first; undated ones keep their relative order at the end
    dated = [p for p in playlists if p.earliest_added is not None]
    undated = [p for p in playlists if p.earliest_added is None]
    dated.sort(key=lambda p: p.earliest_added, reverse=newest_first)  # type: ignore[arg-type, return-value]
    return dated + undated


class LibraryMirror:
    """Holds folders and root playlists as last seen in Music.app."""

    def __init__(self, sync_service: LibrarySyncService, console_logger: logging.Logger | None = None) -> None:
        self.sync_service = sync_service
        self.console_logger = console_logger or logging.getLogger(__name__)
        self.folders: list[Folder] = []
        self.root_playlists: list[Playlist] = []

    async def refresh(self) -> None:
        """Replace the mirror with a fresh synchronization."""
        self.folders, self.root_playlists = await self.sync_service.load_library()

    def folder(self, name: str) -> Folder | None:
        """Folder with exactly this name, if mirrored."""
        return next((folder for folder in self.folders if folder.name == name), None)

    def folder_names(self) -> list[str]:
        """Names of all mirrored folders, in library order."""
        return [folder.name for folder in self.folders]

    def playlists_in(self, folder_name: str | None) -> list[Playlist]:
        """Playlists of a folder; an empty name means root level."""
        if not folder_name:
            return list(self.root_playlists)
        folder = self.folder(folder_name)
        return list(folder.playlists) if folder else []

    def remove_playlist_locally(self, persistent_id: str, folder_name: str | None = None) -> None:
        """Drop a playlist from the mirror without asking Music.app."""
        if not folder_name:
            self.root_playlists = [p for p in self.root_playlists if p.persistent_id != persistent_id]
            return
        self.folders = [
            folder.model_copy(
                update={"playlists": [p for p in folder.playlists if p.persistent_id != persistent_id]},
            )
            if folder.name == folder_name
            else folder
            for folder in self.folders
        ]

    async def delete_playlist(self, persistent_id: str, folder_name: str | None = None) -> None:
        """Delete a playlist in Music.app, then drop it from the mirror.

        The mirror is left untouched when the delete fails.
        """
        await self.sync_service.delete_playlist(persistent_id)
        self.remove_playlist_locally(persistent_id, folder_name)
        self.console_logger.debug("Removed %s from the local library", persistent_id)

    def sorted_playlists(self, folder_name: str | None, option: SortOption) -> list[Playlist]:
        """Playlists of a folder in the requested order.

        Name orderings are case-insensitive. Date orderings put playlists
        with a known date first. Ties keep library order.
        """
        playlists = self.playlists_in(folder_name)
        match option:
            case SortOption.ALPHABETICAL:
                return sorted(playlists, key=_name_key)
            case SortOption.REVERSE_ALPHABETICAL:
                return sorted(playlists, key=_name_key, reverse=True)
            case SortOption.NEWEST_FIRST:
                return _sort_by_date(playlists, newest_first=True)
            case SortOption.OLDEST_FIRST:
                return _sort_by_date(playlists, newest_first=False)
            case _:
                return playlists

    def filtered(
        self,
        search_text: str = "",
        folder_filter: FolderFilter = FolderFilter.ALL,
    ) -> tuple[list[Folder], list[Playlist]]:
        """Folders and root playlists visible under a search and filter.

        A folder matches when its own name or any of its playlists' names
        contains the search text, ignoring case.
        """
        folders = [] if folder_filter is FolderFilter.PLAYLISTS_ONLY else list(self.folders)
        playlists = [] if folder_filter is FolderFilter.FOLDERS_ONLY else list(self.root_playlists)
        if not search_text:
            return folders, playlists

        needle = search_text.casefold()
        folders = [
            folder
            for folder in folders
            if needle in folder.name.casefold() or any(needle in p.name.casefold() for p in folder.playlists)
        ]
        playlists = [p for p in playlists if needle in p.name.casefold()]
        self.console_logger.debug(
            "Filter %s matched %s folders, %s playlists",
            LogFormat.entity(search_text),
            LogFormat.number(len(folders)),
            LogFormat.number(len(playlists)),
        )
        return folders, playlists

    def move_destinations(self, filter_text: str = "") -> list[str]:
        """Folder names a playlist can be moved into, sorted and filtered."""
        needle = filter_text.casefold()
        names = sorted(
            (name for name in self.folder_names() if name != LIBRARY_FOLDER_NAME),
            key=str.casefold,
        )
        return [name for name in names if needle in name.casefold()]
