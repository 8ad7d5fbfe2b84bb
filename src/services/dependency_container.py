"""Dependency Injection Container Module.

Composes the application's services from configuration: the AppleScript
client, the Music.app catalog and player (or the dry-run player), the ignored
items store, the scan service and the single play count sync controller.
Also owns shutdown of the logging listener.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any

from core.dry_run import DryRunPlaybackDevice
from core.logger import LogFormat, shorten_path
from core.tracks.sync_controller import PlayCountSyncController

from .apple import AppleScriptClient, AppleScriptExecutor, MusicAppCatalog, MusicAppPlaybackDevice
from .ignored_items import IgnoredItemsStore
from .scan_service import LibraryScanService

if TYPE_CHECKING:
    import logging

    from core.logger import SafeQueueListener
    from core.models.protocols import PlaybackDeviceProtocol
    from core.models.track_models import AppConfig


class DependencyContainer:
    """Dependency injection container for the application.

    One container is created per process run; it owns exactly one
    :class:`PlayCountSyncController`, which is what limits the application
    to one sync job at a time.
    """

    def __init__(
        self,
        config: AppConfig,
        console_logger: logging.Logger,
        error_logger: logging.Logger,
        *,
        config_path: str = "",
        logging_listener: SafeQueueListener | None = None,
        dry_run: bool = False,
    ) -> None:
        """Initialize the dependency container.

        Args:
            config: Validated application configuration
            console_logger: Logger for console output
            error_logger: Logger for error messages
            config_path: Resolved path of the configuration file, for display
            logging_listener: Optional queue listener for logging
            dry_run: Whether to simulate playback (overrides ``config.dry_run`` when True)

        """
        self._config = config
        self._config_path = config_path
        self._console_logger = console_logger
        self._error_logger = error_logger
        self._listener = logging_listener
        self._dry_run = dry_run or config.dry_run

        self._ap_client: AppleScriptClient | None = None
        self._catalog: MusicAppCatalog | None = None
        self._playback_device: PlaybackDeviceProtocol | None = None
        self._ignored_items: IgnoredItemsStore | None = None
        self._scan_service: LibraryScanService | None = None
        self._sync_controller: PlayCountSyncController | None = None

    @property
    def dry_run(self) -> bool:
        """Get the dry run status."""
        return self._dry_run

    @property
    def config(self) -> AppConfig:
        """Get the application configuration."""
        return self._config

    @property
    def config_path(self) -> str:
        return self._config_path

    @property
    def ap_client(self) -> AppleScriptClient:
        """Get the AppleScript client."""
        if self._ap_client is None:
            msg = "AppleScript client not initialized"
            raise RuntimeError(msg)
        return self._ap_client

    @property
    def playback_device(self) -> PlaybackDeviceProtocol:
        """Get the playback device."""
        if self._playback_device is None:
            msg = "Playback device not initialized"
            raise RuntimeError(msg)
        return self._playback_device

    @property
    def ignored_items(self) -> IgnoredItemsStore:
        """Get the ignored items store."""
        if self._ignored_items is None:
            msg = "Ignored items store not initialized"
            raise RuntimeError(msg)
        return self._ignored_items

    @property
    def scan_service(self) -> LibraryScanService:
        """Get the library scan service."""
        if self._scan_service is None:
            msg = "Scan service not initialized"
            raise RuntimeError(msg)
        return self._scan_service

    @property
    def sync_controller(self) -> PlayCountSyncController:
        """Get the play count sync controller."""
        if self._sync_controller is None:
            msg = "Sync controller not initialized"
            raise RuntimeError(msg)
        return self._sync_controller

    @property
    def console_logger(self) -> logging.Logger:
        """Get the console logger."""
        return self._console_logger

    @property
    def error_logger(self) -> logging.Logger:
        """Get the error logger."""
        return self._error_logger

    async def _initialize_service(self, service: Any, service_name: str, method_name: str = "initialize") -> None:
        """Run a service's setup method, awaiting it if it is a coroutine, and log timing."""
        method = getattr(service, method_name, None)
        if not callable(method):
            self._error_logger.warning(" %s has no %s method", LogFormat.entity(service_name), method_name)
            return

        self._console_logger.debug(" Initializing %s...", LogFormat.entity(service_name))
        start = time.monotonic()
        try:
            result = method()
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            elapsed = time.monotonic() - start
            self._error_logger.exception(" Failed to initialize %s after %.2fs: %s", LogFormat.entity(service_name), elapsed, e)
            raise
        self._console_logger.debug(" %s initialized in %.2fs", LogFormat.entity(service_name), time.monotonic() - start)

    def _initialize_playback_device(self) -> None:
        """Pick the playback device: dry-run never touches the Music.app player."""
        if self._dry_run:
            self._playback_device = DryRunPlaybackDevice(self._console_logger, self._error_logger)
            self._console_logger.info("Dry run enabled - using %s", LogFormat.entity("DryRunPlaybackDevice"))
            return
        self._playback_device = MusicAppPlaybackDevice(
            self.ap_client,
            self._config.music_app,
            self._console_logger,
            self._error_logger,
        )

    async def initialize(self) -> None:
        """Construct and initialize all services."""
        self._console_logger.debug("Starting initialization of services...")
        music_app = self._config.music_app

        if self._ap_client is None:
            executor = AppleScriptExecutor(self._console_logger, self._error_logger)
            self._ap_client = AppleScriptClient(
                self._config.apple_scripts_dir,
                default_timeout=music_app.applescript_timeout_seconds,
                console_logger=self._console_logger,
                error_logger=self._error_logger,
                executor=executor,
            )
            self._console_logger.debug("AppleScripts directory: %s", shorten_path(self._config.apple_scripts_dir, self._config))
        if self._catalog is None:
            self._catalog = MusicAppCatalog(
                self._ap_client,
                fetch_timeout=music_app.fetch_timeout_seconds,
                console_logger=self._console_logger,
                error_logger=self._error_logger,
            )
        if self._playback_device is None:
            self._initialize_playback_device()
        if self._ignored_items is None:
            self._ignored_items = IgnoredItemsStore(self._config.ignored_items_file, self._console_logger, self._error_logger)
        if self._scan_service is None:
            self._scan_service = LibraryScanService(
                self._catalog,
                self._ignored_items,
                progress_step=self._config.scan.progress_step,
                console_logger=self._console_logger,
                error_logger=self._error_logger,
            )
        if self._sync_controller is None:
            self._sync_controller = PlayCountSyncController(self.playback_device, self._console_logger, self._error_logger)

        await self._initialize_service(self._ap_client, "AppleScript Client", "check_scripts")
        await self._initialize_service(self._ignored_items, "Ignored Items Store", "load")

        self._console_logger.debug(" All services initialized successfully")

    async def close(self) -> None:
        """Stop a running sync job before shutdown."""
        self._console_logger.debug("Closing %s...", LogFormat.entity("DependencyContainer"))
        if self._sync_controller is not None and self._sync_controller.is_running:
            self._sync_controller.cancel()
        self._console_logger.debug("%s closed.", LogFormat.entity("DependencyContainer"))

    def shutdown(self) -> None:
        """Clean up non-async resources."""
        if self._listener is not None:
            self._console_logger.debug("Stopping logging listener...")
            self._listener.stop()
            self._listener = None
