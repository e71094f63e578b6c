"""Command-line interface for Music Library Bridge."""

import argparse
from typing import Any

from services.library_mirror import SortOption


def _add_library_commands(subparsers: Any) -> None:
    """Add read-only library commands."""
    subparsers.add_parser(
        "folders",
        help="List folder names",
        description="Print the name of every folder playlist in Music.app",
    )
    subparsers.add_parser(
        "library",
        help="Show folders and playlists as a tree",
        description="Synchronize the whole library in one call and print it as a tree",
    )

    parser = subparsers.add_parser(
        "playlists",
        help="List the playlists of a folder",
        description="List the playlists directly inside a folder",
    )
    parser.add_argument(
        "--folder",
        required=True,
        help="Folder name",
    )
    parser.add_argument(
        "--sort",
        choices=[option.value for option in SortOption],
        default=SortOption.ORIGINAL.value,
        help="Sort order (default: library order)",
    )

    parser = subparsers.add_parser(
        "tracks",
        help="List the tracks of a playlist",
        description="Fetch the tracks of a playlist by persistent ID",
    )
    parser.add_argument(
        "--id",
        required=True,
        dest="playlist_id",
        help="Playlist persistent ID",
    )


def _add_mutation_commands(subparsers: Any) -> None:
    """Add commands that change the library."""
    parser = subparsers.add_parser(
        "create-playlist",
        help="Create a playlist",
        description="Create a playlist at root level or inside an existing folder",
    )
    parser.add_argument("--name", required=True, help="Playlist name")
    parser.add_argument("--folder", help="Folder to create the playlist in (root level if omitted)")

    parser = subparsers.add_parser(
        "create-folder",
        help="Create a folder",
        description="Create a folder playlist at root level",
    )
    parser.add_argument("--name", required=True, help="Folder name")

    parser = subparsers.add_parser(
        "rename",
        help="Rename a playlist",
        description="Rename a playlist identified by persistent ID",
    )
    parser.add_argument("--id", required=True, dest="playlist_id", help="Playlist persistent ID")
    parser.add_argument("--name", required=True, help="New name")

    parser = subparsers.add_parser(
        "delete",
        help="Delete a playlist",
        description="Delete a playlist identified by persistent ID",
    )
    parser.add_argument("--id", required=True, dest="playlist_id", help="Playlist persistent ID")
    parser.add_argument("--folder", help="Folder the playlist is in (root level if omitted)")

    parser = subparsers.add_parser(
        "move",
        help="Move a playlist into a folder",
        description="Move a playlist identified by persistent ID into an existing folder",
    )
    parser.add_argument("--id", required=True, dest="playlist_id", help="Playlist persistent ID")
    parser.add_argument("--folder", required=True, help="Destination folder")

    subparsers.add_parser(
        "reorganize",
        aliases=["organize"],
        help="Move '<Month> - <YY>' playlists into year folders",
        description="Move root-level playlists named like 'Jan - 24' into the folder '2024'",
    )


class CLI:
    """Command-line interface handler."""

    def __init__(self) -> None:
        """Initialize CLI parser."""
        self.parser = self._create_parser()

    @staticmethod
    def _create_parser() -> argparse.ArgumentParser:
        """Create the argument parser.

        Returns:
            Configured ArgumentParser

        """
        parser = argparse.ArgumentParser(
            prog="python main.py",
            description="Music Library Bridge - List and organize playlists and folders in Music.app",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
    # Show the whole library
    %(prog)s library

    # Playlists of a folder, newest first
    %(prog)s playlists --folder 2024 --sort newest

    # Preview the year-folder reorganization
    %(prog)s --dry-run reorganize
            """,
        )

        # Global options
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Simulate changes without applying them",
        )
        parser.add_argument(
            "--verbose",
            "-v",
            action="store_true",
            help="Enable verbose logging",
        )
        parser.add_argument(
            "--config",
            type=str,
            help="Path to configuration file. If not specified, uses CONFIG_PATH or 'config.yaml'.",
        )

        subparsers = parser.add_subparsers(
            dest="command", title="Commands", description="Available commands", help="Use '%(prog)s COMMAND --help' for command-specific help"
        )
        _add_library_commands(subparsers)
        _add_mutation_commands(subparsers)
        return parser

    def parse_args(self, args: list[str] | None = None) -> argparse.Namespace:
        """Parse command-line arguments.

        Args:
            args: List of arguments (use sys.argv if None)

        Returns:
            Parsed arguments namespace

        """
        return self.parser.parse_args(args)

    def print_help(self) -> None:
        """Print help message."""
        self.parser.print_help()
