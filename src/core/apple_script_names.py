"""Canonical labels of the AppleScript command templates.

Single source of truth for command labels used in logs, dry-run records
and result formatting. Import these constants instead of hard-coding names.
"""

from __future__ import annotations

LIST_FOLDER_NAMES: str = "list_folder_names"
LIST_LIBRARY: str = "list_all_folders_with_playlists"
LIST_PLAYLISTS_IN_FOLDER: str = "list_playlists_in_folder"
CREATE_PLAYLIST: str = "create_playlist"
CREATE_FOLDER: str = "create_folder"
RENAME_PLAYLIST: str = "rename_playlist"
DELETE_PLAYLIST: str = "delete_playlist"
MOVE_PLAYLIST: str = "move_playlist"
FETCH_TRACKS: str = "fetch_tracks"

# Commands that change the library (skipped under dry run)
MUTATING_COMMANDS: frozenset[str] = frozenset(
    {CREATE_PLAYLIST, CREATE_FOLDER, RENAME_PLAYLIST, DELETE_PLAYLIST, MOVE_PLAYLIST},
)

# Commands whose result is a list of records (logged as counts)
LISTING_COMMANDS: tuple[str, ...] = (LIST_FOLDER_NAMES, LIST_LIBRARY, LIST_PLAYLISTS_IN_FOLDER, FETCH_TRACKS)
