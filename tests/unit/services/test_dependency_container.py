"""Tests for the dependency container."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from core.dry_run import DryRunPlaybackDevice
from services.apple.music_player import MusicAppPlaybackDevice
from services.dependency_container import DependencyContainer
from tests.factories import create_test_app_config


def _container(tmp_path: Path, console_logger: MagicMock, error_logger: MagicMock, **kwargs: object) -> DependencyContainer:
    config = create_test_app_config(
        apple_scripts_dir=str(tmp_path / "scripts"),
        ignored_items_file=str(tmp_path / "ignored.json"),
    )
    return DependencyContainer(config, console_logger, error_logger, **kwargs)


@pytest.mark.unit
class TestDependencyContainer:
    """Tests for DependencyContainer."""

    def test_services_unavailable_before_initialize(self, tmp_path: Path, mock_console_logger, mock_error_logger) -> None:
        deps = _container(tmp_path, mock_console_logger, mock_error_logger)

        with pytest.raises(RuntimeError, match="not initialized"):
            _ = deps.scan_service
        with pytest.raises(RuntimeError, match="not initialized"):
            _ = deps.sync_controller

    @pytest.mark.asyncio
    async def test_initialize_wires_services(self, tmp_path: Path, mock_console_logger, mock_error_logger) -> None:
        deps = _container(tmp_path, mock_console_logger, mock_error_logger, config_path="/etc/config.yaml")

        await deps.initialize()

        assert isinstance(deps.playback_device, MusicAppPlaybackDevice)
        assert deps.scan_service.ignored is deps.ignored_items
        assert deps.scan_service.progress_step == 1
        assert deps.ap_client.default_timeout == 5
        assert deps.config_path == "/etc/config.yaml"
        assert not deps.dry_run
        # the scripts directory does not exist in this test
        mock_error_logger.critical.assert_called_once()

    @pytest.mark.asyncio
    async def test_dry_run_uses_dry_run_device(self, tmp_path: Path, mock_console_logger, mock_error_logger) -> None:
        deps = _container(tmp_path, mock_console_logger, mock_error_logger, dry_run=True)

        await deps.initialize()

        assert deps.dry_run
        assert isinstance(deps.playback_device, DryRunPlaybackDevice)

    def test_dry_run_from_config(self, tmp_path: Path, mock_console_logger, mock_error_logger) -> None:
        config = create_test_app_config(apple_scripts_dir=str(tmp_path), ignored_items_file=str(tmp_path / "i.json"), dry_run=True)
        deps = DependencyContainer(config, mock_console_logger, mock_error_logger)

        assert deps.dry_run

    @pytest.mark.asyncio
    async def test_close_cancels_running_job_and_shutdown_stops_listener(
        self, tmp_path: Path, mock_console_logger, mock_error_logger
    ) -> None:
        listener = MagicMock()
        deps = _container(tmp_path, mock_console_logger, mock_error_logger, logging_listener=listener, dry_run=True)
        await deps.initialize()
        controller = MagicMock(is_running=True)
        deps._sync_controller = controller

        await deps.close()
        deps.shutdown()
        deps.shutdown()

        controller.cancel.assert_called_once()
        listener.stop.assert_called_once()
