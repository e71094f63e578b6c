"""Move ``<Month> - <YY>`` root playlists into their year folders.

A root playlist named like ``Jan - 24`` belongs in the folder ``2024``. The
run is a best-effort batch: every item is classified, moves are issued one by
one, and each failure is recorded while the rest of the batch continues.
Nothing is retried or rolled back. Running it again only touches what is
still left at root level.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from core.exceptions import MusicBridgeError, PermissionDeniedError, TargetAppNotRunningError
from core.logger import LogFormat

if TYPE_CHECKING:
    from collections.abc import Iterable

    from core.models.config_models import ReorganizationConfig
    from core.models.library_models import Playlist
    from services.library_sync import LibrarySyncService

MONTH_YEAR_PATTERN = re.compile(r"^[A-Za-z]+\s*-\s*(\d{2})$")

REASON_YEAR_OUT_OF_RANGE = "year out of range"
REASON_FOLDER_NOT_FOUND = "folder not found"
REASON_MOVE_FAILED = "move failed"

# errors after which every later move would fail the same way
_BATCH_FATAL_ERRORS = (PermissionDeniedError, TargetAppNotRunningError)


@dataclass(frozen=True, slots=True)
class PlanEntry:
    """What will happen to one matching root playlist."""

    playlist: Playlist
    destination: str | None = None
    skip_reason: str | None = None

    @property
    def is_move(self) -> bool:
        """Whether this entry issues a move."""
        return self.destination is not None


@dataclass(slots=True)
class ReorganizationReport:
    """Outcome of a reorganization run."""

    moved: int = 0
    skipped: int = 0
    failures: list[tuple[str, str]] = field(default_factory=list)
    aborted: bool = False
    not_processed: int = 0

    def record_skip(self, name: str, reason: str) -> None:
        """Count a skipped or failed item and remember why."""
        self.skipped += 1
        self.failures.append((name, reason))


class ReorganizationEngine:
    """Classifies root playlists by name and moves them into year folders."""

    def __init__(
        self,
        sync_service: LibrarySyncService,
        settings: ReorganizationConfig,
        console_logger: logging.Logger | None = None,
        error_logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            sync_service: Service used to list the library and move playlists
            settings: Year range, century base and delay between moves
            console_logger: Logger for progress messages
            error_logger: Logger for failures

        """
        self.sync_service = sync_service
        self.settings = settings
        self.console_logger = console_logger or logging.getLogger(__name__)
        self.error_logger = error_logger or logging.getLogger(__name__)

    def target_year(self, name: str) -> int | None:
        """Four-digit year encoded in a ``<Month> - <YY>`` name, or None if the name does not match."""
        match = MONTH_YEAR_PATTERN.match(name)
        if match is None:
            return None
        return self.settings.century_base + int(match.group(1))

    def plan(self, root_playlists: Iterable[Playlist], folder_names: Iterable[str]) -> list[PlanEntry]:
        """Classify root playlists without issuing any command.

        Names that do not match the pattern are left out entirely.
        """
        existing_folders = set(folder_names)
        entries: list[PlanEntry] = []
        for playlist in root_playlists:
            year = self.target_year(playlist.name)
            if year is None:
                continue
            if not self.settings.min_year <= year <= self.settings.max_year:
                entries.append(PlanEntry(playlist, skip_reason=REASON_YEAR_OUT_OF_RANGE))
            elif str(year) not in existing_folders:
                entries.append(PlanEntry(playlist, skip_reason=REASON_FOLDER_NOT_FOUND))
            else:
                entries.append(PlanEntry(playlist, destination=str(year)))
        return entries

    async def load_plan(self) -> list[PlanEntry]:
        """Synchronize the library and classify its root playlists."""
        folders, root_playlists = await self.sync_service.load_library()
        return self.plan(root_playlists, [folder.name for folder in folders])

    async def reorganize(
        self,
        root_playlists: Iterable[Playlist] | None = None,
        folder_names: Iterable[str] | None = None,
    ) -> ReorganizationReport:
        """Move every matching root playlist into its year folder.

        Args:
            root_playlists: Root playlists to consider (synchronized when omitted)
            folder_names: Existing folder names (synchronized when omitted)

        Returns:
            Counts of moved and skipped items, with a reason for every skip

        """
        if root_playlists is None or folder_names is None:
            entries = await self.load_plan()
        else:
            entries = self.plan(root_playlists, folder_names)

        report = ReorganizationReport()
        moves_issued = 0
        for position, entry in enumerate(entries):
            name = entry.playlist.name
            if entry.destination is None:
                report.record_skip(name, entry.skip_reason or REASON_FOLDER_NOT_FOUND)
                self.console_logger.info("Skipping %s: %s", LogFormat.entity(name), entry.skip_reason)
                continue

            if moves_issued:
                await asyncio.sleep(self.settings.move_delay_seconds)
            moves_issued += 1

            try:
                await self.sync_service.move_playlist(entry.playlist.persistent_id, entry.destination)
            except _BATCH_FATAL_ERRORS as e:
                report.record_skip(name, f"{REASON_MOVE_FAILED}: {e}")
                report.aborted = True
                report.not_processed = len(entries) - position - 1
                self.error_logger.error("Reorganization aborted at %s: %s", name, e)
                break
            except MusicBridgeError as e:
                report.record_skip(name, f"{REASON_MOVE_FAILED}: {e}")
                self.error_logger.warning("Could not move %s into %s: %s", name, entry.destination, e)
                continue

            report.moved += 1

        self.console_logger.info(
            "Reorganization: %s moved, %s skipped%s",
            LogFormat.number(report.moved),
            LogFormat.number(report.skipped),
            f", {LogFormat.error('aborted')}" if report.aborted else "",
        )
        return report
