"""Command-line interface for Play Count Matcher."""

import argparse
from typing import Any


def _add_scan_command(subparsers: Any) -> None:
    """Add scan command."""
    parser = subparsers.add_parser(
        "scan",
        help="Find songs that exist on more than one album",
        description="Scan the Music.app library for duplicate songs and show their play counts",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Show at most N groups (default: 20, 0 shows all)",
    )
    parser.add_argument(
        "--spread-only",
        action="store_true",
        help="Only show groups whose play counts differ",
    )


def _add_sync_command(subparsers: Any, name: str, help_text: str, description: str) -> None:
    """Add a play count sync command (match or add)."""
    parser = subparsers.add_parser(name, help=help_text, description=description)
    parser.add_argument(
        "--source",
        required=True,
        help="Persistent ID of the track whose play count is copied",
    )
    parser.add_argument(
        "--target",
        required=True,
        help="Persistent ID of the track that will be played",
    )


def _add_ignore_commands(subparsers: Any) -> None:
    """Add ignore, restore and listing commands."""
    parser = subparsers.add_parser(
        "ignore-song",
        help="Hide a song from duplicate groups",
    )
    parser.add_argument("--id", dest="track_id", required=True, help="Persistent ID of the track")

    parser = subparsers.add_parser(
        "ignore-group",
        help="Hide a whole duplicate group",
    )
    parser.add_argument("--key", dest="group_key", required=True, help="Group key as shown by 'scan'")

    parser = subparsers.add_parser(
        "restore-song",
        help="Show an ignored song again",
    )
    parser.add_argument("--id", dest="track_id", required=True, help="Persistent ID of the track")

    parser = subparsers.add_parser(
        "restore-group",
        help="Show an ignored group again",
    )
    parser.add_argument("--key", dest="group_key", required=True, help="Group key of the ignored group")

    subparsers.add_parser(
        "ignored",
        help="List ignored songs and groups",
    )

    parser = subparsers.add_parser(
        "clear-ignored",
        help="Forget ignored songs and/or groups",
        description="Without options both ignored songs and ignored groups are cleared",
    )
    which = parser.add_mutually_exclusive_group()
    which.add_argument("--songs", action="store_true", help="Only clear ignored songs")
    which.add_argument("--groups", action="store_true", help="Only clear ignored groups")


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
            description="Play Count Matcher - Find duplicate songs in Music.app and reconcile their play counts",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
    # List the 20 duplicate groups with the largest play count gap
    %(prog)s scan

    # Bring the target's play count up to the source's
    %(prog)s match --source 1A2B3C4D5E6F7081 --target 8F7E6D5C4B3A2910

    # Simulate adding the source's plays to the target
    %(prog)s --dry-run add --source 1A2B3C4D5E6F7081 --target 8F7E6D5C4B3A2910
            """,
        )

        # Global options
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Simulate playback without changing play counts",
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
            help="Path to configuration file. If not specified, tries 'config.yaml' first, then 'my-config.yaml' as fallback.",
        )

        # Subcommands
        subparsers = parser.add_subparsers(
            dest="command",
            title="Commands",
            description="Available commands",
            help="Use '%(prog)s COMMAND --help' for command-specific help",
            required=True,
        )

        _add_scan_command(subparsers)
        _add_sync_command(
            subparsers,
            "match",
            "Play the target until it has as many plays as the source",
            "Play the target track (max(source - target, 0) times) so both copies end with the same play count",
        )
        _add_sync_command(
            subparsers,
            "add",
            "Play the target as many times as the source was played",
            "Add the source's whole play count to the target track",
        )
        _add_ignore_commands(subparsers)

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
