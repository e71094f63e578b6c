"""Typed library operations on top of the bridge executor.

This is the boundary where protocol values become domain values: sentinel
fields (empty genre, zero year or track number) become ``None``, numeric
fields are parsed, and list operations degrade an unreadable or missing
response to an empty list.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from core.exceptions import ExecutionFailedError, InvalidResponseError
from core.logger import LogFormat, spinner
from core.models.library_models import (
    LIBRARY_FOLDER_NAME,
    Folder,
    LibraryListing,
    Playlist,
    PlaylistEntry,
    Track,
)
from services.apple.result_decoder import as_list, as_text, as_text_list

if TYPE_CHECKING:
    from core.models.protocols import BridgeExecutorProtocol
    from services.apple.result_decoder import DecodedValue
    from services.apple.script_builder import ScriptBuilder, ScriptCommand

PLAYLIST_DATE_FORMAT = "%A, %B %d, %Y at %I:%M:%S %p"
TRACK_FIELD_COUNT = 7
UNKNOWN_TRACK = "Unknown Track"
UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_ALBUM = "Unknown Album"
ROOT_SECTION = "root"
FOLDERS_SECTION = "folders"


def parse_playlist_date(text: str | None) -> datetime | None:
    """Parse ``Monday, January 1, 2024 at 10:00:00 AM``; anything else is ``None``."""
    if not text:
        return None
    normalized = " ".join(text.split())  # also folds narrow and no-break spaces
    try:
        return datetime.strptime(normalized, PLAYLIST_DATE_FORMAT)
    except ValueError:
        return None


def _optional_int(text: str | None) -> int | None:
    """Parse a numeric field where ``0`` or an empty value means absent."""
    if not text:
        return None
    try:
        value = int(float(text))
    except ValueError:
        return None
    return value or None


def _duration(text: str | None) -> float:
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        return 0.0


def _is_root_destination(folder_name: str | None) -> bool:
    return not folder_name or folder_name == LIBRARY_FOLDER_NAME


class LibrarySyncService:
    """Lists and changes playlists and folders in Music.app."""

    def __init__(
        self,
        executor: BridgeExecutorProtocol,
        builder: ScriptBuilder,
        console_logger: logging.Logger | None = None,
        error_logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            executor: Bridge executor (real or dry-run)
            builder: Command template renderer
            console_logger: Logger for progress messages
            error_logger: Logger for failures

        """
        self.executor = executor
        self.builder = builder
        self.console_logger = console_logger or logging.getLogger(__name__)
        self.error_logger = error_logger or logging.getLogger(__name__)

    async def _read_list(self, command: ScriptCommand) -> DecodedValue:
        """Run a listing command; a missing or unreadable answer is an empty list."""
        try:
            return await self.executor.run(command)
        except InvalidResponseError:
            self.console_logger.debug("%s returned no usable data, treating as empty", command.label)
            return None

    # Reads

    async def list_folder_names(self) -> list[str]:
        """Names of every folder playlist."""
        names = as_text_list(await self._read_list(self.builder.list_folder_names()))
        self.console_logger.debug("Found %s folders", LogFormat.number(len(names)))
        return names

    async def list_all_folders_with_playlists(self) -> LibraryListing:
        """Every root playlist and every folder's playlists, in a single call."""
        async with spinner("Loading library from Music.app..."):
            value = await self._read_list(self.builder.list_all_folders_with_playlists())

        listing = LibraryListing()
        for section in as_list(value):
            fields = as_list(section)
            tag = as_text(fields[0]) if fields else None
            body = as_list(fields[1]) if len(fields) > 1 else []
            if tag == ROOT_SECTION:
                listing.root.extend(self._entries(body))
            elif tag == FOLDERS_SECTION:
                for group in body:
                    group_fields = as_list(group)
                    folder_name = as_text(group_fields[0]) if group_fields else None
                    if folder_name is None:
                        continue
                    records = as_list(group_fields[1]) if len(group_fields) > 1 else []
                    listing.folders[folder_name] = self._entries(records)

        self.console_logger.info(
            "Library: %s root playlists, %s folders",
            LogFormat.number(len(listing.root)),
            LogFormat.number(len(listing.folders)),
        )
        return listing

    @staticmethod
    def _entries(records: list[DecodedValue]) -> list[PlaylistEntry]:
        entries: list[PlaylistEntry] = []
        for record in records:
            fields = as_list(record)
            if len(fields) < 2:
                continue
            name = as_text(fields[0])
            persistent_id = as_text(fields[1])
            if name is None or not persistent_id:
                continue
            date_text = as_text(fields[2]) if len(fields) > 2 else None
            entries.append(PlaylistEntry(name=name, persistent_id=persistent_id, date_text=date_text or None))
        return entries

    async def load_library(self) -> tuple[list[Folder], list[Playlist]]:
        """Listing converted to domain folders and root playlists."""
        listing = await self.list_all_folders_with_playlists()
        folders = [
            Folder(id=name, name=name, playlists=[self._playlist(entry) for entry in entries])
            for name, entries in listing.folders.items()
        ]
        root_playlists = [self._playlist(entry) for entry in listing.root]
        return folders, root_playlists

    @staticmethod
    def _playlist(entry: PlaylistEntry) -> Playlist:
        return Playlist(
            persistent_id=entry.persistent_id,
            name=entry.name,
            earliest_added=parse_playlist_date(entry.date_text),
        )

    async def list_playlists(self, folder_name: str) -> list[str]:
        """Names of the playlists directly inside ``folder_name``."""
        return as_text_list(await self._read_list(self.builder.list_playlists_in_folder(folder_name)))

    async def fetch_tracks(self, persistent_id: str) -> list[Track]:
        """Tracks of a playlist, in playlist order.

        Records with fewer than seven fields are skipped.
        """
        async with spinner("Fetching tracks from Music.app..."):
            value = await self._read_list(self.builder.fetch_tracks(persistent_id))

        tracks: list[Track] = []
        for index, record in enumerate(as_list(value)):
            fields = [as_text(field) for field in as_list(record)]
            if len(fields) < TRACK_FIELD_COUNT:
                self.console_logger.debug("Skipping malformed track record %d of %s", index, persistent_id)
                continue
            name, artist, album, duration, genre, year, number = fields[:TRACK_FIELD_COUNT]
            track_id = fields[TRACK_FIELD_COUNT] if len(fields) > TRACK_FIELD_COUNT else None
            tracks.append(
                Track(
                    id=track_id or f"{persistent_id}:{index}",
                    name=name or UNKNOWN_TRACK,
                    artist=artist or UNKNOWN_ARTIST,
                    album=album or UNKNOWN_ALBUM,
                    duration=_duration(duration),
                    genre=genre or None,
                    year=_optional_int(year),
                    track_number=_optional_int(number),
                ),
            )
        self.console_logger.info("Fetched %s tracks", LogFormat.number(len(tracks)))
        return tracks

    # Mutations

    async def create_playlist(self, name: str, folder_name: str | None = None) -> str | None:
        """Create a playlist at root level or inside a folder.

        ``None``, an empty name and ``"Library"`` all mean root level.

        Returns:
            The new playlist's persistent ID when Music.app reports it

        """
        destination = None if _is_root_destination(folder_name) else folder_name
        value = await self.executor.run(self.builder.create_playlist(name, destination))
        self.console_logger.info(
            "Created playlist %s%s",
            LogFormat.entity(name),
            f" in {LogFormat.entity(destination)}" if destination else "",
        )
        return as_text(value) or None

    async def create_folder(self, name: str) -> str | None:
        """Create a folder playlist; returns its persistent ID when reported."""
        value = await self.executor.run(self.builder.create_folder(name))
        self.console_logger.info("Created folder %s", LogFormat.entity(name))
        return as_text(value) or None

    async def rename_playlist(self, persistent_id: str, new_name: str) -> None:
        """Rename a playlist by persistent ID."""
        await self.executor.run(self.builder.rename_playlist(persistent_id, new_name))
        self.console_logger.info("Renamed %s to %s", persistent_id, LogFormat.entity(new_name))

    async def rename_playlist_named(self, name: str, new_name: str) -> None:
        """Rename a playlist by its current name."""
        await self.executor.run(self.builder.rename_playlist_named(name, new_name))
        self.console_logger.info("Renamed %s to %s", LogFormat.entity(name), LogFormat.entity(new_name))

    async def delete_playlist(self, persistent_id: str) -> None:
        """Delete a playlist by persistent ID.

        Raises:
            ObjectNotFoundError: If no playlist has that ID

        """
        await self.executor.run(self.builder.delete_playlist(persistent_id))
        self.console_logger.info("Deleted playlist %s", persistent_id)

    async def delete_playlist_named(self, name: str) -> None:
        """Delete a playlist by name."""
        await self.executor.run(self.builder.delete_playlist_named(name))
        self.console_logger.info("Deleted playlist %s", LogFormat.entity(name))

    async def move_playlist(self, persistent_id: str, folder_name: str) -> None:
        """Move a playlist into an existing folder.

        Raises:
            ExecutionFailedError: If the destination is the reserved Library folder
            ObjectNotFoundError: If the playlist or folder does not exist

        """
        self._check_move_destination(folder_name)
        await self.executor.run(self.builder.move_playlist(persistent_id, folder_name))
        self.console_logger.info("Moved %s into %s", persistent_id, LogFormat.entity(folder_name))

    async def move_playlist_named(self, name: str, folder_name: str) -> None:
        """Move a playlist, found by name, into an existing folder."""
        self._check_move_destination(folder_name)
        await self.executor.run(self.builder.move_playlist_named(name, folder_name))
        self.console_logger.info("Moved %s into %s", LogFormat.entity(name), LogFormat.entity(folder_name))

    @staticmethod
    def _check_move_destination(folder_name: str) -> None:
        if _is_root_destination(folder_name):
            msg = f"'{LIBRARY_FOLDER_NAME}' cannot be used as a move destination"
            raise ExecutionFailedError(msg)
