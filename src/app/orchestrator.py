"""Main orchestrator module for Play Count Matcher.

This module handles the high-level coordination of all commands and renders
their results with Rich.
"""

import argparse
import asyncio
import signal
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TaskProgressColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from core.logger import LogFormat, get_shared_console
from core.models.normalization import make_group_key
from core.models.outcome import Outcome
from core.models.sync_models import SyncMode, SyncProgress

if TYPE_CHECKING:
    from collections.abc import Callable

    from core.models.track_models import DuplicateGroup, TrackRecord
    from services.dependency_container import DependencyContainer
    from services.ignored_items import IgnoredItemsStore
    from services.scan_service import ScanReport

SCAN_PROGRESS_TOTAL = 1000


class Orchestrator:
    """Routes CLI commands to the services and prints the results."""

    def __init__(self, deps: "DependencyContainer", console: Console | None = None) -> None:
        """Initialize the orchestrator with dependencies.

        Args:
            deps: Dependency container with all required services
            console: Rich console for tables and progress bars

        """
        self.deps = deps
        self.config = deps.config
        self.console_logger = deps.console_logger
        self.error_logger = deps.error_logger
        self.console = console if console is not None else get_shared_console()

    async def run_command(self, args: argparse.Namespace) -> None:
        """Execute the appropriate command based on arguments.

        Args:
            args: Parsed command-line arguments

        """
        match args.command:
            case "scan":
                await self._run_scan(args)
            case "match":
                await self._run_sync(args, SyncMode.MATCH)
            case "add":
                await self._run_sync(args, SyncMode.ADD)
            case "ignore-song":
                await self._run_ignore_song(args)
            case "ignore-group":
                await self._run_ignore_group(args)
            case "restore-song":
                self._run_restore_song(args)
            case "restore-group":
                self._run_restore_group(args)
            case "ignored":
                self._run_list_ignored()
            case "clear-ignored":
                self._run_clear_ignored(args)
            case _:
                self.error_logger.error("Unknown command: %s", args.command)

    def _report_outcome(self, outcome: Outcome[Any]) -> None:
        """Log a non-success outcome; notices are informational, the rest are errors."""
        if outcome.ok:
            return
        if outcome.is_notice:
            self.console_logger.info(outcome.message)
        else:
            self.error_logger.error(outcome.message)

    # Scan

    async def _scan_with_progress(self) -> "Outcome[ScanReport]":
        columns = (TextColumn("[cyan]Scanning library[/cyan]"), BarColumn(), TaskProgressColumn(), TimeElapsedColumn())
        with Progress(*columns, console=self.console, transient=True) as progress:
            task_id = progress.add_task("scan", total=SCAN_PROGRESS_TOTAL)

            def on_progress(fraction: float) -> None:
                progress.update(task_id, completed=fraction * SCAN_PROGRESS_TOTAL)

            return await self.deps.scan_service.scan(on_progress)

    async def _run_scan(self, args: argparse.Namespace) -> None:
        outcome = await self._scan_with_progress()
        if not outcome.ok:
            self._report_outcome(outcome)
            return

        report = outcome.unwrap()
        groups = [group for group in report.groups if group.has_play_count_spread] if args.spread_only else list(report.groups)
        limit = args.limit if args.limit > 0 else len(groups)

        self.console.print(render_scan_summary(report, self.deps.ignored_items.total_ignored))
        if not groups:
            self.console.print("[green]No duplicate songs found.[/green]")
            return
        for index, group in enumerate(groups[:limit], start=1):
            self.console.print(render_group_table(group, index))
        if len(groups) > limit:
            self.console.print(f"[dim]... {len(groups) - limit} more groups (use --limit 0 to show all)[/dim]")

    # Sync

    async def _resolve_track(self, track_id: str) -> "TrackRecord | None":
        outcome = await self.deps.scan_service.find_track(track_id)
        if not outcome.ok:
            self._report_outcome(outcome)
            return None
        return outcome.unwrap()

    async def _run_sync(self, args: argparse.Namespace, mode: SyncMode) -> None:
        source = await self._resolve_track(args.source)
        if source is None:
            return
        target = await self._resolve_track(args.target)
        if target is None:
            return

        controller = self.deps.sync_controller
        prepared = controller.prepare(source, target, mode)
        if not prepared.ok:
            self._report_outcome(prepared)
            return
        job = prepared.unwrap()

        self.console.print(
            f"{mode.value.capitalize()}: {LogFormat.entity(source.describe())} ({source.play_count} plays) -> "
            f"{LogFormat.entity(target.describe())} ({target.play_count} plays)"
        )
        self.console.print(f"Playing the target {job.required_iterations} times (goal: {job.goal_play_count} plays). Press Ctrl-C to stop.")

        columns = (
            TextColumn("[cyan]{task.description}[/cyan]"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
        )
        loop = asyncio.get_running_loop()
        with Progress(*columns, console=self.console) as progress:
            task_id = progress.add_task("Playing", total=job.required_iterations)

            def on_progress(snapshot: SyncProgress) -> None:
                description = "Paused" if snapshot.is_paused else "Playing"
                progress.update(task_id, completed=snapshot.completed_iterations, description=description)

            controller.subscribe(on_progress)
            interrupt_installed = _install_interrupt_handler(loop, controller.cancel)
            try:
                outcome = await controller.run(job)
            finally:
                if interrupt_installed:
                    loop.remove_signal_handler(signal.SIGINT)
                controller.unsubscribe(on_progress)

        if outcome.value is not None:
            style = "green" if outcome.ok and outcome.value.plays_added == job.required_iterations else "yellow"
            self.console.print(f"[{style}]{outcome.value.message}[/{style}]")
        if not outcome.ok:
            self._report_outcome(outcome)

    # Ignored items

    async def _run_ignore_song(self, args: argparse.Namespace) -> None:
        track = await self._resolve_track(args.track_id)
        if track is None:
            return
        self.deps.ignored_items.ignore_song(track, make_group_key(track.title, track.artist))
        self.console.print(f"Ignored {LogFormat.entity(track.describe())}")

    async def _run_ignore_group(self, args: argparse.Namespace) -> None:
        store = self.deps.ignored_items
        if store.is_group_ignored(args.group_key):
            self.console.print(f"Group {args.group_key!r} is already ignored.")
            return

        outcome = await self._scan_with_progress()
        if not outcome.ok:
            self._report_outcome(outcome)
            return
        group = outcome.unwrap().find_group(args.group_key)
        if group is None:
            self.error_logger.error("No duplicate group with key %r was found. Run 'scan' to see group keys.", args.group_key)
            return
        store.ignore_group(group)
        self.console.print(f"Ignored group {LogFormat.entity(group.title)} by {group.artist}")

    def _run_restore_song(self, args: argparse.Namespace) -> None:
        if self.deps.ignored_items.restore_song(args.track_id):
            self.console.print(f"Restored song {args.track_id}")
        else:
            self.console.print(f"Song {args.track_id} is not ignored.")

    def _run_restore_group(self, args: argparse.Namespace) -> None:
        if self.deps.ignored_items.restore_group(args.group_key):
            self.console.print(f"Restored group {args.group_key!r}")
        else:
            self.console.print(f"Group {args.group_key!r} is not ignored.")

    def _run_list_ignored(self) -> None:
        store = self.deps.ignored_items
        if not store.has_ignored_items:
            self.console.print("Nothing is ignored.")
            return
        if store.songs:
            self.console.print(render_ignored_songs_table(store))
        if store.groups:
            self.console.print(render_ignored_groups_table(store))

    def _run_clear_ignored(self, args: argparse.Namespace) -> None:
        store = self.deps.ignored_items
        if args.songs:
            cleared = store.clear_songs()
        elif args.groups:
            cleared = store.clear_groups()
        else:
            cleared = store.clear_all()
        self.console.print(f"Cleared {cleared} ignored items.")


def _install_interrupt_handler(loop: asyncio.AbstractEventLoop, callback: "Callable[[], object]") -> bool:
    """Route Ctrl-C to ``callback``; returns False where signal handlers are unsupported."""
    try:
        loop.add_signal_handler(signal.SIGINT, callback)
    except (NotImplementedError, RuntimeError):
        return False
    return True


# Rendering


def render_scan_summary(report: "ScanReport", total_ignored: int) -> Table:
    """Summary table for a completed scan."""
    table = Table(title="Library Scan", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Tracks scanned", str(report.total_scanned))
    table.add_row("Duplicate groups", str(report.group_count))
    table.add_row("Duplicate songs", str(report.duplicate_song_count))
    table.add_row("Hidden by ignore lists", str(report.ignored_count))
    table.add_row("Ignored items", str(total_ignored))
    table.add_row("Fetched at", report.fetched_at.strftime("%Y-%m-%d %H:%M:%S %Z"))
    return table


def render_group_table(group: "DuplicateGroup", index: int) -> Table:
    """Table of one duplicate group's members, highest play count first."""
    title = f"{index}. {group.title} - {group.artist}  [dim](key: {group.key}, gap: {group.impact})[/dim]"
    table = Table(title=title, title_justify="left", show_lines=False)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Album", overflow="fold")
    table.add_column("Plays", justify="right")
    table.add_column("Added", no_wrap=True)
    source = group.source_candidate
    for track in group.members:
        plays = f"[bold green]{track.play_count}[/bold green]" if track is source and group.has_play_count_spread else str(track.play_count)
        added = track.date_added.strftime("%Y-%m-%d") if track.date_added else ""
        table.add_row(track.id, track.display_album, plays, added)
    return table


def render_ignored_songs_table(store: "IgnoredItemsStore") -> Table:
    table = Table(title="Ignored Songs", title_justify="left")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Song", overflow="fold")
    table.add_column("Album", overflow="fold")
    table.add_column("Plays", justify="right")
    table.add_column("Ignored", no_wrap=True)
    for group_key, songs in store.ignored_songs_by_group().items():
        table.add_section()
        table.add_row("", f"[bold]{group_key}[/bold]", "", "", "")
        for song in songs:
            track = song.track
            table.add_row(
                track.id,
                f"{track.display_title} - {track.display_artist}",
                track.display_album,
                str(track.play_count),
                song.ignored_at.strftime("%Y-%m-%d %H:%M"),
            )
    return table


def render_ignored_groups_table(store: "IgnoredItemsStore") -> Table:
    table = Table(title="Ignored Groups", title_justify="left")
    table.add_column("Key", style="dim", overflow="fold")
    table.add_column("Song", overflow="fold")
    table.add_column("Versions", justify="right")
    table.add_column("Ignored", no_wrap=True)
    for group in store.groups:
        table.add_row(group.key, f"{group.title} - {group.artist}", str(len(group.members)), group.ignored_at.strftime("%Y-%m-%d %H:%M"))
    return table
