"""AppleScript command templates for Music.app.

Every command is rendered from a fixed template: a readiness preamble that
launches Music.app by bundle identifier when needed, followed by a single
``tell`` block bounded by ``with timeout of``. Interpolated names are always
embedded as escaped string literals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from core.apple_script_names import (
    CREATE_FOLDER,
    CREATE_PLAYLIST,
    DELETE_PLAYLIST,
    FETCH_TRACKS,
    LIST_FOLDER_NAMES,
    LIST_LIBRARY,
    LIST_PLAYLISTS_IN_FOLDER,
    MOVE_PLAYLIST,
    RENAME_PLAYLIST,
)
from services.apple.sanitizer import AppleScriptSanitizer

if TYPE_CHECKING:
    from collections.abc import Callable

    from core.models.config_models import AppConfig


class TimeoutCategory(StrEnum):
    """Timeout budget classes; values match ``AppleScriptTimeoutsConfig`` fields."""

    MUTATION = "mutation"
    DELETE = "delete"
    FOLDER_NAMES = "folder_names"
    FOLDER_LISTING = "folder_listing"
    LIBRARY_LISTING = "library_listing"
    TRACK_FETCH = "track_fetch"


@dataclass(frozen=True, slots=True)
class ScriptCommand:
    """A fully rendered command, ready for the executor."""

    label: str
    source: str
    category: TimeoutCategory
    timeout_seconds: int
    mutating: bool = False
    expects_output: bool = True
    summary: str = ""

    @property
    def display(self) -> str:
        """Label plus argument summary, for logs."""
        return f"{self.label} {self.summary}".rstrip()


_LIBRARY_BODY = """\
set rootRecords to {}
set folderGroups to {}
repeat with folderName in (name of every folder playlist)
    set end of folderGroups to {contents of folderName, {}}
end repeat
repeat with pl in (every user playlist whose special kind is none)
    if class of pl is not folder playlist then
        set plName to name of pl
        set plID to persistent ID of pl
        set dateText to ""
        try
            set addedDates to date added of every track of pl
            if (count of addedDates) > 0 then
                set earliest to item 1 of addedDates
                repeat with addedDate in addedDates
                    if addedDate < earliest then set earliest to contents of addedDate
                end repeat
                set dateText to earliest as text
            end if
        end try
        set parentName to ""
        try
            set parentName to name of parent of pl
        end try
        set plRecord to {plName, plID, dateText}
        if parentName is "" then
            set end of rootRecords to plRecord
        else
            repeat with i from 1 to count of folderGroups
                if item 1 of item i of folderGroups is parentName then
                    set end of item 2 of item i of folderGroups to plRecord
                    exit repeat
                end if
            end repeat
        end if
    end if
end repeat
return {{"root", rootRecords}, {"folders", folderGroups}}"""

_FOLDER_PLAYLISTS_BODY = """\
set folderID to persistent ID of folder playlist {folder}
set childNames to {{}}
repeat with pl in (every user playlist whose special kind is none)
    try
        if persistent ID of parent of pl is folderID then set end of childNames to name of pl
    end try
end repeat
return childNames"""

_FETCH_TRACKS_BODY = """\
set targetPlaylist to {playlist}
set trackRecords to {{}}
repeat with tr in (every track of targetPlaylist)
    set trackName to ""
    set trackArtist to ""
    set trackAlbum to ""
    set trackDuration to 0
    set trackGenre to ""
    set trackYear to 0
    set trackNumber to 0
    try
        set trackName to name of tr
        set trackArtist to artist of tr
        set trackAlbum to album of tr
    end try
    try
        set trackDuration to duration of tr
        if trackDuration is missing value then set trackDuration to 0
    end try
    try
        set trackGenre to genre of tr
        if trackGenre is missing value then set trackGenre to ""
    end try
    try
        set trackYear to year of tr
    end try
    try
        set trackNumber to track number of tr
    end try
    set end of trackRecords to {{trackName, trackArtist, trackAlbum, trackDuration, trackGenre, trackYear, trackNumber, persistent ID of tr}}
end repeat
return trackRecords"""


class ScriptBuilder:
    """Renders the fixed set of Music.app command templates.

    Building never fails for any string argument: names are escaped, never
    validated. The template skeletons themselves are validated once, here,
    with placeholder arguments.
    """

    def __init__(
        self,
        config: AppConfig,
        sanitizer: AppleScriptSanitizer | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the builder and validate every template skeleton.

        Args:
            config: Application configuration (app id, timeouts, readiness polling)
            sanitizer: String escaper and template validator
            logger: Optional logger

        Raises:
            AppleScriptSanitizationError: If a template skeleton is unsafe

        """
        self.logger = logger or logging.getLogger(__name__)
        self.sanitizer = sanitizer or AppleScriptSanitizer(self.logger)
        self.app_id = config.music_app_id
        self.timeouts = config.applescript_timeouts
        self.readiness = config.readiness
        self._validate_templates()

    def _validate_templates(self) -> None:
        placeholder = "placeholder"
        renderers: list[Callable[[], ScriptCommand]] = [
            self.list_folder_names,
            self.list_all_folders_with_playlists,
            lambda: self.list_playlists_in_folder(placeholder),
            lambda: self.create_playlist(placeholder),
            lambda: self.create_playlist(placeholder, placeholder),
            lambda: self.create_folder(placeholder),
            lambda: self.rename_playlist(placeholder, placeholder),
            lambda: self.rename_playlist_named(placeholder, placeholder),
            lambda: self.delete_playlist(placeholder),
            lambda: self.delete_playlist_named(placeholder),
            lambda: self.move_playlist(placeholder, placeholder),
            lambda: self.move_playlist_named(placeholder, placeholder),
            lambda: self.fetch_tracks(placeholder),
        ]
        for render in renderers:
            self.sanitizer.validate_script_code(render().source)
        self.logger.debug("Validated %d AppleScript templates", len(renderers))

    def timeout_for(self, category: TimeoutCategory) -> int:
        """Return the configured timeout for a category, in seconds."""
        return int(getattr(self.timeouts, category.value))

    def _preamble(self) -> str:
        app = f"application id {self.sanitizer.quote(self.app_id)}"
        return (
            "try\n"
            f"    if {app} is not running then\n"
            f"        launch {app}\n"
            "    end if\n"
            "end try\n"
            f"repeat {self.readiness.max_polls} times\n"
            f"    if {app} is running then exit repeat\n"
            f"    delay {self.readiness.poll_interval_seconds}\n"
            "end repeat\n"
        )

    def _render(self, body: str, timeout_seconds: int) -> str:
        # body is not re-indented: string literals may contain raw newlines
        return (
            f"{self._preamble()}"
            f"tell application id {self.sanitizer.quote(self.app_id)}\n"
            f"    with timeout of {timeout_seconds} seconds\n"
            f"{body}\n"
            "    end timeout\n"
            "end tell\n"
        )

    def _command(
        self,
        label: str,
        body: str,
        category: TimeoutCategory,
        *,
        mutating: bool = False,
        expects_output: bool = True,
        summary: str = "",
    ) -> ScriptCommand:
        timeout_seconds = self.timeout_for(category)
        return ScriptCommand(
            label=label,
            source=self._render(body, timeout_seconds),
            category=category,
            timeout_seconds=timeout_seconds,
            mutating=mutating,
            expects_output=expects_output,
            summary=summary,
        )

    def _by_id(self, persistent_id: str) -> str:
        return f"(first user playlist whose persistent ID is {self.sanitizer.quote(persistent_id)})"

    def _by_name(self, name: str) -> str:
        return f"(user playlist {self.sanitizer.quote(name)})"

    def _folder(self, name: str) -> str:
        return f"folder playlist {self.sanitizer.quote(name)}"

    # Read commands

    def list_folder_names(self) -> ScriptCommand:
        """Names of every folder playlist."""
        return self._command(LIST_FOLDER_NAMES, "return name of every folder playlist", TimeoutCategory.FOLDER_NAMES)

    def list_all_folders_with_playlists(self) -> ScriptCommand:
        """Root playlists and every folder's playlists, in one call."""
        return self._command(LIST_LIBRARY, _LIBRARY_BODY, TimeoutCategory.LIBRARY_LISTING)

    def list_playlists_in_folder(self, folder_name: str) -> ScriptCommand:
        """Names of the playlists directly inside one folder."""
        body = _FOLDER_PLAYLISTS_BODY.format(folder=self.sanitizer.quote(folder_name))
        return self._command(
            LIST_PLAYLISTS_IN_FOLDER,
            body,
            TimeoutCategory.FOLDER_LISTING,
            summary=repr(folder_name),
        )

    def fetch_tracks(self, persistent_id: str) -> ScriptCommand:
        """Tracks of a playlist as ``{name, artist, album, duration, genre, year, number, id}`` tuples."""
        body = _FETCH_TRACKS_BODY.format(playlist=self._by_id(persistent_id))
        return self._command(FETCH_TRACKS, body, TimeoutCategory.TRACK_FETCH, summary=persistent_id)

    # Mutating commands

    def create_playlist(self, name: str, folder_name: str | None = None) -> ScriptCommand:
        """Create a user playlist, optionally moving it into a folder."""
        lines = [f"set newPlaylist to make new user playlist with properties {{name:{self.sanitizer.quote(name)}}}"]
        if folder_name:
            lines.append(f"move newPlaylist to {self._folder(folder_name)}")
        lines.append("return persistent ID of newPlaylist")
        summary = repr(name) if not folder_name else f"{name!r} in {folder_name!r}"
        return self._command(
            CREATE_PLAYLIST,
            "\n".join(lines),
            TimeoutCategory.MUTATION,
            mutating=True,
            expects_output=False,
            summary=summary,
        )

    def create_folder(self, name: str) -> ScriptCommand:
        """Create a folder playlist."""
        body = (
            f"set newFolder to make new folder playlist with properties {{name:{self.sanitizer.quote(name)}}}\n"
            "return persistent ID of newFolder"
        )
        return self._command(
            CREATE_FOLDER,
            body,
            TimeoutCategory.MUTATION,
            mutating=True,
            expects_output=False,
            summary=repr(name),
        )

    def rename_playlist(self, persistent_id: str, new_name: str) -> ScriptCommand:
        """Rename the playlist with the given persistent ID."""
        return self._rename(self._by_id(persistent_id), new_name, persistent_id)

    def rename_playlist_named(self, name: str, new_name: str) -> ScriptCommand:
        """Rename the playlist currently called ``name``."""
        return self._rename(self._by_name(name), new_name, repr(name))

    def _rename(self, target: str, new_name: str, target_summary: str) -> ScriptCommand:
        return self._command(
            RENAME_PLAYLIST,
            f"set name of {target} to {self.sanitizer.quote(new_name)}",
            TimeoutCategory.MUTATION,
            mutating=True,
            expects_output=False,
            summary=f"{target_summary} -> {new_name!r}",
        )

    def delete_playlist(self, persistent_id: str) -> ScriptCommand:
        """Delete the playlist with the given persistent ID."""
        return self._delete(self._by_id(persistent_id), persistent_id)

    def delete_playlist_named(self, name: str) -> ScriptCommand:
        """Delete the playlist called ``name``."""
        return self._delete(self._by_name(name), repr(name))

    def _delete(self, target: str, target_summary: str) -> ScriptCommand:
        return self._command(
            DELETE_PLAYLIST,
            f"delete {target}",
            TimeoutCategory.DELETE,
            mutating=True,
            expects_output=False,
            summary=target_summary,
        )

    def move_playlist(self, persistent_id: str, folder_name: str) -> ScriptCommand:
        """Move the playlist with the given persistent ID into a folder."""
        return self._move(self._by_id(persistent_id), folder_name, persistent_id)

    def move_playlist_named(self, name: str, folder_name: str) -> ScriptCommand:
        """Move the playlist called ``name`` into a folder."""
        return self._move(self._by_name(name), folder_name, repr(name))

    def _move(self, target: str, folder_name: str, target_summary: str) -> ScriptCommand:
        return self._command(
            MOVE_PLAYLIST,
            f"move {target} to {self._folder(folder_name)}",
            TimeoutCategory.MUTATION,
            mutating=True,
            expects_output=False,
            summary=f"{target_summary} -> {folder_name!r}",
        )
