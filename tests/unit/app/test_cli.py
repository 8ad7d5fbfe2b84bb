"""Tests for command-line argument parsing."""

from __future__ import annotations

import pytest

from app.cli import CLI


@pytest.fixture
def cli() -> CLI:
    return CLI()


@pytest.mark.unit
class TestCLI:
    """Tests for CLI.parse_args."""

    def test_scan_defaults(self, cli: CLI) -> None:
        args = cli.parse_args(["scan"])

        assert args.command == "scan"
        assert args.limit == 20
        assert not args.spread_only
        assert not args.dry_run
        assert not args.verbose
        assert args.config is None

    def test_global_options(self, cli: CLI) -> None:
        args = cli.parse_args(["--dry-run", "-v", "--config", "my-config.yaml", "scan", "--limit", "0", "--spread-only"])

        assert args.dry_run
        assert args.verbose
        assert args.config == "my-config.yaml"
        assert args.limit == 0
        assert args.spread_only

    @pytest.mark.parametrize("command", ["match", "add"])
    def test_sync_commands(self, cli: CLI, command: str) -> None:
        args = cli.parse_args([command, "--source", "AAA", "--target", "BBB"])

        assert args.command == command
        assert args.source == "AAA"
        assert args.target == "BBB"

    def test_sync_requires_both_tracks(self, cli: CLI) -> None:
        with pytest.raises(SystemExit):
            cli.parse_args(["match", "--source", "AAA"])

    def test_ignore_commands(self, cli: CLI) -> None:
        assert cli.parse_args(["ignore-song", "--id", "AAA"]).track_id == "AAA"
        assert cli.parse_args(["restore-song", "--id", "AAA"]).track_id == "AAA"
        assert cli.parse_args(["ignore-group", "--key", "song|artist"]).group_key == "song|artist"
        assert cli.parse_args(["restore-group", "--key", "song|artist"]).group_key == "song|artist"
        assert cli.parse_args(["ignored"]).command == "ignored"

    def test_clear_ignored_options_are_exclusive(self, cli: CLI) -> None:
        args = cli.parse_args(["clear-ignored"])
        assert not args.songs
        assert not args.groups

        with pytest.raises(SystemExit):
            cli.parse_args(["clear-ignored", "--songs", "--groups"])

    def test_command_is_required(self, cli: CLI) -> None:
        with pytest.raises(SystemExit):
            cli.parse_args([])

    def test_print_help(self, cli: CLI, capsys: pytest.CaptureFixture[str]) -> None:
        cli.print_help()
        assert "clear-ignored" in capsys.readouterr().out
