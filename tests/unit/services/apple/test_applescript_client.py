"""Tests for AppleScriptClient and script path validation."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from services.apple.applescript_client import REQUIRED_SCRIPTS, AppleScriptClient
from services.apple.file_validator import AppleScriptFileValidator


@pytest.fixture
def scripts_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "applescripts"
    directory.mkdir()
    for name in REQUIRED_SCRIPTS:
        (directory / name).write_text('return ""\n', encoding="utf-8")
    return directory


@pytest.fixture
def client(scripts_dir: Path, mock_console_logger, mock_error_logger) -> AppleScriptClient:
    executor = MagicMock()
    executor.run_osascript = AsyncMock(return_value="done")
    return AppleScriptClient(str(scripts_dir), 12.0, mock_console_logger, mock_error_logger, executor=executor)


@pytest.mark.unit
class TestAppleScriptClient:
    """Tests for AppleScriptClient."""

    @pytest.mark.asyncio
    async def test_run_script_builds_command(self, client: AppleScriptClient, scripts_dir: Path) -> None:
        result = await client.run_script("play_track.applescript", ["ABC", "32.0"])

        assert result == "done"
        client.executor.run_osascript.assert_awaited_once_with(
            ["osascript", str((scripts_dir / "play_track.applescript").resolve()), "ABC", "32.0"],
            "play_track.applescript",
            12.0,
        )

    @pytest.mark.asyncio
    async def test_run_script_custom_timeout_and_label(self, client: AppleScriptClient) -> None:
        await client.run_script("fetch_tracks.applescript", timeout=900, label="fetch")

        _, label, timeout = client.executor.run_osascript.await_args.args
        assert label == "fetch"
        assert timeout == 900.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("argument", ["a\nb", "a\x1eb", "a\x1db", "a\x00b"])
    async def test_rejects_control_characters(self, client: AppleScriptClient, argument: str) -> None:
        with pytest.raises(ValueError, match="dangerous"):
            await client.run_script("play_track.applescript", [argument])
        client.executor.run_osascript.assert_not_awaited()

    def test_check_scripts(self, client: AppleScriptClient, scripts_dir: Path) -> None:
        assert client.check_scripts() == []

        (scripts_dir / "stop_playback.applescript").unlink()
        assert client.check_scripts() == ["stop_playback.applescript"]

    def test_check_scripts_missing_directory(self, tmp_path: Path, mock_error_logger) -> None:
        client = AppleScriptClient(str(tmp_path / "absent"), error_logger=mock_error_logger, executor=MagicMock())

        assert client.check_scripts() == list(REQUIRED_SCRIPTS)
        mock_error_logger.critical.assert_called_once()


@pytest.mark.unit
class TestAppleScriptFileValidator:
    """Tests for AppleScriptFileValidator.resolve_script."""

    @pytest.mark.parametrize("name", ["", "../evil.applescript", "sub/x.applescript", ".hidden.applescript"])
    def test_invalid_names(self, scripts_dir: Path, mock_error_logger, name: str) -> None:
        validator = AppleScriptFileValidator(str(scripts_dir), mock_error_logger)
        with pytest.raises(ValueError, match="Invalid script name"):
            validator.resolve_script(name)

    def test_unsupported_suffix(self, scripts_dir: Path, mock_error_logger) -> None:
        validator = AppleScriptFileValidator(str(scripts_dir), mock_error_logger)
        with pytest.raises(ValueError, match="Unsupported script type"):
            validator.resolve_script("run.sh")

    def test_missing_script(self, scripts_dir: Path, mock_error_logger) -> None:
        validator = AppleScriptFileValidator(str(scripts_dir), mock_error_logger)
        with pytest.raises(FileNotFoundError):
            validator.resolve_script("absent.applescript")

    def test_symlink_rejected(self, scripts_dir: Path, tmp_path: Path, mock_error_logger) -> None:
        outside = tmp_path / "outside.applescript"
        outside.write_text("", encoding="utf-8")
        (scripts_dir / "link.applescript").symlink_to(outside)
        validator = AppleScriptFileValidator(str(scripts_dir), mock_error_logger)

        with pytest.raises(FileNotFoundError, match="Symlinks"):
            validator.resolve_script("link.applescript")
