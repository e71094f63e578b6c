"""Main orchestrator module for Music Library Bridge.

Routes a parsed command to the library services and renders the result on
the shared rich console.
"""

import argparse
from typing import TYPE_CHECKING

from rich.table import Table
from rich.tree import Tree

from core.dry_run import DryRunBridgeExecutor
from core.logger import LogFormat, get_shared_console
from services.library_mirror import SortOption

if TYPE_CHECKING:
    from core.models.library_models import Playlist, Track
    from services.dependency_container import DependencyContainer
    from services.reorganization import PlanEntry, ReorganizationReport

DATE_DISPLAY_FORMAT = "%Y-%m-%d %H:%M"


def _format_duration(seconds: float) -> str:
    minutes, secs = divmod(int(round(seconds)), 60)
    return f"{minutes}:{secs:02d}"


def _playlist_label(playlist: "Playlist") -> str:
    added = f" [dim]({playlist.earliest_added.strftime(DATE_DISPLAY_FORMAT)})[/dim]" if playlist.earliest_added else ""
    return f"{playlist.name} [dim]{playlist.persistent_id}[/dim]{added}"


class Orchestrator:
    """Orchestrates library commands."""

    def __init__(self, deps: "DependencyContainer") -> None:
        """Initialize the orchestrator with dependencies.

        Args:
            deps: Dependency container with all required services

        """
        self.deps = deps
        self.config = deps.config
        self.console_logger = deps.console_logger
        self.error_logger = deps.error_logger
        self.console = get_shared_console()

    async def run_command(self, args: argparse.Namespace) -> None:
        """Execute the appropriate command based on arguments.

        Args:
            args: Parsed command-line arguments

        Raises:
            MusicBridgeError: If a Music.app command fails

        """
        match args.command:
            case "folders":
                await self._run_folders()
            case "library":
                await self._run_library()
            case "playlists":
                await self._run_playlists(args)
            case "tracks":
                await self._run_tracks(args)
            case "create-playlist":
                await self._run_create_playlist(args)
            case "create-folder":
                await self.deps.sync_service.create_folder(args.name)
            case "rename":
                await self.deps.sync_service.rename_playlist(args.playlist_id, args.name)
            case "delete":
                await self.deps.mirror.delete_playlist(args.playlist_id, args.folder)
            case "move":
                await self.deps.sync_service.move_playlist(args.playlist_id, args.folder)
            case "reorganize" | "organize":
                await self._run_reorganize()
            case _:
                self.error_logger.error("Unknown command: %s", args.command)
                return

        self._print_dry_run_actions()

    async def _run_folders(self) -> None:
        """Print every folder name."""
        names = await self.deps.sync_service.list_folder_names()
        if not names:
            self.console.print("[dim italic]No folders found.[/dim italic]")
            return
        for name in names:
            self.console.print(name)

    async def _run_library(self) -> None:
        """Print folders and root playlists as a tree."""
        mirror = self.deps.mirror
        await mirror.refresh()

        tree = Tree("[bold]Library[/bold]")
        for folder in mirror.folders:
            branch = tree.add(f"[cyan]{folder.name}[/cyan] [dim]({len(folder.playlists)})[/dim]")
            for playlist in folder.playlists:
                branch.add(_playlist_label(playlist))
        for playlist in mirror.root_playlists:
            tree.add(_playlist_label(playlist))
        self.console.print(tree)

    async def _run_playlists(self, args: argparse.Namespace) -> None:
        """Print the playlists of a folder, optionally sorted."""
        option = SortOption(args.sort)
        if option is SortOption.ORIGINAL:
            names = await self.deps.sync_service.list_playlists(args.folder)
        else:
            await self.deps.mirror.refresh()
            names = [playlist.name for playlist in self.deps.mirror.sorted_playlists(args.folder, option)]

        if not names:
            self.console.print(f"[dim italic]No playlists in {args.folder}.[/dim italic]")
            return
        for name in names:
            self.console.print(name)

    async def _run_tracks(self, args: argparse.Namespace) -> None:
        """Print the tracks of a playlist as a table."""
        tracks = await self.deps.sync_service.fetch_tracks(args.playlist_id)
        self.console.print(self._tracks_table(tracks))

    @staticmethod
    def _tracks_table(tracks: "list[Track]") -> Table:
        table = Table(show_lines=False)
        for header in ("#", "Name", "Artist", "Album", "Time", "Genre", "Year"):
            table.add_column(header, overflow="fold")
        for track in tracks:
            table.add_row(
                str(track.track_number or ""),
                track.name,
                track.artist,
                track.album,
                _format_duration(track.duration),
                track.genre or "",
                str(track.year or ""),
            )
        return table

    async def _run_create_playlist(self, args: argparse.Namespace) -> None:
        """Create a playlist and print its persistent ID when known."""
        persistent_id = await self.deps.sync_service.create_playlist(args.name, args.folder)
        if persistent_id:
            self.console.print(f"Created {LogFormat.entity(args.name)} ({persistent_id})")

    async def _run_reorganize(self) -> None:
        """Move month playlists into year folders (or only show the plan on a dry run)."""
        engine = self.deps.reorganization
        if self.deps.dry_run:
            self.console.print(self._plan_table(await engine.load_plan()))
            return
        self._print_report(await engine.reorganize())

    @staticmethod
    def _plan_table(entries: "list[PlanEntry]") -> Table:
        table = Table(title="Reorganization plan")
        table.add_column("Playlist")
        table.add_column("Action")
        for entry in entries:
            action = f"move to {entry.destination}" if entry.is_move else f"skip: {entry.skip_reason}"
            table.add_row(entry.playlist.name, action)
        return table

    def _print_report(self, report: "ReorganizationReport") -> None:
        self.console.print(f"Moved {LogFormat.number(report.moved)}, skipped {LogFormat.number(report.skipped)}")
        if report.aborted:
            self.console.print(
                LogFormat.error(f"Stopped early; {report.not_processed} playlists were not processed"),
            )
        if not report.failures:
            return
        table = Table(show_lines=True)
        table.add_column("Playlist", overflow="fold")
        table.add_column("Reason", overflow="fold")
        for name, reason in report.failures:
            table.add_row(name, reason)
        self.console.print(table)

    def _print_dry_run_actions(self) -> None:
        executor = self.deps.executor
        if not isinstance(executor, DryRunBridgeExecutor):
            return
        for action in executor.get_actions():
            self.console.print(f"[yellow]DRY-RUN[/yellow] {action['summary'] or action['command']}")
