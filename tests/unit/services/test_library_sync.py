"""Tests for typed library operations over the bridge executor."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.apple_script_names import (
    CREATE_PLAYLIST,
    DELETE_PLAYLIST,
    FETCH_TRACKS,
    LIST_FOLDER_NAMES,
    LIST_LIBRARY,
    LIST_PLAYLISTS_IN_FOLDER,
    MOVE_PLAYLIST,
)
from core.exceptions import ExecutionFailedError, InvalidResponseError, ObjectNotFoundError
from core.models.config_models import AppConfig
from services.apple.script_builder import ScriptBuilder, ScriptCommand
from services.library_sync import LibrarySyncService, parse_playlist_date


def _executor(responses: dict[str, Any]) -> MagicMock:
    """Executor answering by command label; exceptions are raised."""

    async def run(command: ScriptCommand) -> Any:
        response = responses.get(command.label)
        if isinstance(response, BaseException):
            raise response
        return response

    executor = MagicMock()
    executor.run = AsyncMock(side_effect=run)
    return executor


@pytest.fixture
def builder(app_config: AppConfig) -> ScriptBuilder:
    return ScriptBuilder(app_config)


def _service(
    responses: dict[str, Any],
    builder: ScriptBuilder,
    console_logger: logging.Logger,
    error_logger: logging.Logger,
) -> LibrarySyncService:
    return LibrarySyncService(_executor(responses), builder, console_logger, error_logger)


class TestParsePlaylistDate:
    def test_parses_fixed_format(self) -> None:
        assert parse_playlist_date("Monday, January 1, 2024 at 10:00:00 AM") == datetime(2024, 1, 1, 10, 0, 0)

    def test_normalizes_narrow_and_no_break_spaces(self) -> None:
        text = "Tuesday, March 5, 2024 at 9:15:30 PM"
        assert parse_playlist_date(text) == datetime(2024, 3, 5, 21, 15, 30)
        assert parse_playlist_date(text.replace(" at ", "\u00a0at\u202f")) == datetime(2024, 3, 5, 21, 15, 30)

    @pytest.mark.parametrize("text", [None, "", "yesterday", "2024-01-01"])
    def test_unparsable_is_none(self, text: str | None) -> None:
        assert parse_playlist_date(text) is None


class TestListFolderNames:
    @pytest.mark.asyncio
    async def test_returns_names(self, builder: ScriptBuilder, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> None:
        service = _service({LIST_FOLDER_NAMES: ["2023", "2024"]}, builder, mock_console_logger, mock_error_logger)
        assert await service.list_folder_names() == ["2023", "2024"]

    @pytest.mark.asyncio
    async def test_missing_response_is_empty(self, builder: ScriptBuilder, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> None:
        service = _service({LIST_FOLDER_NAMES: InvalidResponseError()}, builder, mock_console_logger, mock_error_logger)
        assert await service.list_folder_names() == []

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, builder: ScriptBuilder, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> None:
        service = _service({LIST_FOLDER_NAMES: ExecutionFailedError("boom")}, builder, mock_console_logger, mock_error_logger)
        with pytest.raises(ExecutionFailedError):
            await service.list_folder_names()


class TestLibraryListing:
    LISTING = [
        ["root", [["Jan - 24", "AAA", "Monday, January 1, 2024 at 10:00:00 AM"], ["Loose", "BBB", ""]]],
        ["folders", [["2024", [["Feb - 24", "CCC", ""]]], ["Empty"]]],
    ]

    @pytest.mark.asyncio
    async def test_parses_tagged_sections(self, builder: ScriptBuilder, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> None:
        service = _service({LIST_LIBRARY: self.LISTING}, builder, mock_console_logger, mock_error_logger)

        listing = await service.list_all_folders_with_playlists()

        assert [entry.name for entry in listing.root] == ["Jan - 24", "Loose"]
        assert listing.root[1].date_text is None
        assert list(listing.folders) == ["2024", "Empty"]
        assert listing.folders["2024"][0].persistent_id == "CCC"
        assert listing.folders["Empty"] == []

    @pytest.mark.asyncio
    async def test_root_only_library(self, builder: ScriptBuilder, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> None:
        listing_value = [["root", [["Solo", "AAA", ""]]], ["folders"]]
        service = _service({LIST_LIBRARY: listing_value}, builder, mock_console_logger, mock_error_logger)

        listing = await service.list_all_folders_with_playlists()

        assert [entry.name for entry in listing.root] == ["Solo"]
        assert listing.folders == {}

    @pytest.mark.asyncio
    async def test_empty_library(self, builder: ScriptBuilder, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> None:
        service = _service({LIST_LIBRARY: InvalidResponseError()}, builder, mock_console_logger, mock_error_logger)

        listing = await service.list_all_folders_with_playlists()

        assert listing.root == []
        assert listing.folders == {}

    @pytest.mark.asyncio
    async def test_load_library_builds_domain_models(
        self,
        builder: ScriptBuilder,
        mock_console_logger: logging.Logger,
        mock_error_logger: logging.Logger,
    ) -> None:
        service = _service({LIST_LIBRARY: self.LISTING}, builder, mock_console_logger, mock_error_logger)

        folders, root_playlists = await service.load_library()

        assert [folder.name for folder in folders] == ["2024", "Empty"]
        assert folders[0].id == "2024"
        assert root_playlists[0].earliest_added == datetime(2024, 1, 1, 10, 0, 0)
        assert root_playlists[1].earliest_added is None

    @pytest.mark.asyncio
    async def test_records_without_id_are_skipped(
        self,
        builder: ScriptBuilder,
        mock_console_logger: logging.Logger,
        mock_error_logger: logging.Logger,
    ) -> None:
        listing_value = [["root", [["NoId"], ["Good", "AAA", ""], ["Blank", "", ""]]], ["folders", []]]
        service = _service({LIST_LIBRARY: listing_value}, builder, mock_console_logger, mock_error_logger)

        listing = await service.list_all_folders_with_playlists()

        assert [entry.name for entry in listing.root] == ["Good"]


class TestListPlaylists:
    @pytest.mark.asyncio
    async def test_names_in_folder(self, builder: ScriptBuilder, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> None:
        service = _service({LIST_PLAYLISTS_IN_FOLDER: ["Jan - 24", "Feb - 24"]}, builder, mock_console_logger, mock_error_logger)
        assert await service.list_playlists("2024") == ["Jan - 24", "Feb - 24"]

    @pytest.mark.asyncio
    async def test_empty_folder(self, builder: ScriptBuilder, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> None:
        service = _service({LIST_PLAYLISTS_IN_FOLDER: InvalidResponseError()}, builder, mock_console_logger, mock_error_logger)
        assert await service.list_playlists("2024") == []


class TestFetchTracks:
    @pytest.mark.asyncio
    async def test_converts_sentinels(self, builder: ScriptBuilder, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> None:
        records = [
            ["Song", "Artist", "Album", "215.5", "Rock", "1999", "3", "T1"],
            ["Other", "Someone", "Record", "180", "", "0", "0", "T2"],
        ]
        service = _service({FETCH_TRACKS: records}, builder, mock_console_logger, mock_error_logger)

        tracks = await service.fetch_tracks("PID")

        assert tracks[0].id == "T1"
        assert tracks[0].duration == 215.5
        assert tracks[0].genre == "Rock"
        assert tracks[0].year == 1999
        assert tracks[0].track_number == 3
        assert tracks[1].genre is None
        assert tracks[1].year is None
        assert tracks[1].track_number is None

    @pytest.mark.asyncio
    async def test_missing_names_fall_back(self, builder: ScriptBuilder, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> None:
        records = [["", "", "", "oops", "", "", ""]]
        service = _service({FETCH_TRACKS: records}, builder, mock_console_logger, mock_error_logger)

        (track,) = await service.fetch_tracks("PID")

        assert (track.name, track.artist, track.album) == ("Unknown Track", "Unknown Artist", "Unknown Album")
        assert track.duration == 0.0
        assert track.id == "PID:0"

    @pytest.mark.asyncio
    async def test_short_records_are_skipped(self, builder: ScriptBuilder, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> None:
        records = [["Only", "Four", "Fields", "1"], ["Song", "Artist", "Album", "10", "Pop", "2020", "1", "T9"]]
        service = _service({FETCH_TRACKS: records}, builder, mock_console_logger, mock_error_logger)

        tracks = await service.fetch_tracks("PID")

        assert [track.id for track in tracks] == ["T9"]

    @pytest.mark.asyncio
    async def test_empty_playlist(self, builder: ScriptBuilder, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> None:
        service = _service({FETCH_TRACKS: InvalidResponseError()}, builder, mock_console_logger, mock_error_logger)
        assert await service.fetch_tracks("PID") == []


class TestMutations:
    @pytest.mark.asyncio
    async def test_create_in_library_means_root(self, builder: ScriptBuilder, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> None:
        service = _service({CREATE_PLAYLIST: "NEWID"}, builder, mock_console_logger, mock_error_logger)

        assert await service.create_playlist("Mix", "Library") == "NEWID"

        command = service.executor.run.call_args[0][0]
        assert "move newPlaylist" not in command.source

    @pytest.mark.asyncio
    async def test_create_without_output_succeeds(self, builder: ScriptBuilder, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> None:
        service = _service({}, builder, mock_console_logger, mock_error_logger)
        assert await service.create_playlist("Mix", "2024") is None

    @pytest.mark.asyncio
    async def test_delete_missing_playlist_raises_not_found(
        self,
        builder: ScriptBuilder,
        mock_console_logger: logging.Logger,
        mock_error_logger: logging.Logger,
    ) -> None:
        service = _service({DELETE_PLAYLIST: ObjectNotFoundError(code=-1728)}, builder, mock_console_logger, mock_error_logger)
        with pytest.raises(ObjectNotFoundError):
            await service.delete_playlist("GONE")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("destination", ["Library", ""])
    async def test_move_to_library_is_rejected_before_any_command(
        self,
        builder: ScriptBuilder,
        mock_console_logger: logging.Logger,
        mock_error_logger: logging.Logger,
        destination: str,
    ) -> None:
        service = _service({}, builder, mock_console_logger, mock_error_logger)

        with pytest.raises(ExecutionFailedError, match="Library"):
            await service.move_playlist("AAA", destination)
        with pytest.raises(ExecutionFailedError):
            await service.move_playlist_named("Jan - 24", destination)

        service.executor.run.assert_not_called()

    @pytest.mark.asyncio
    async def test_move_issues_command(self, builder: ScriptBuilder, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> None:
        service = _service({}, builder, mock_console_logger, mock_error_logger)

        await service.move_playlist("AAA", "2024")

        command = service.executor.run.call_args[0][0]
        assert command.label == MOVE_PLAYLIST
        assert 'folder playlist "2024"' in command.source

    @pytest.mark.asyncio
    async def test_rename_by_name(self, builder: ScriptBuilder, mock_console_logger: logging.Logger, mock_error_logger: logging.Logger) -> None:
        service = _service({}, builder, mock_console_logger, mock_error_logger)

        await service.rename_playlist_named('Old "One"', "New")

        command = service.executor.run.call_args[0][0]
        assert 'user playlist "Old \\"One\\""' in command.source
