#!/usr/bin/env python3
"""Play Count Matcher - Main entry point.

Finds songs that exist on several albums in Music.app and reconciles their
play counts by replaying the less-played copy.
"""

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

# Add src directory to Python path BEFORE imports
sys.path.insert(0, str(Path(__file__).parent / "src"))

from app.app_config import Config
from app.cli import CLI
from app.orchestrator import Orchestrator
from core.logger import SafeQueueListener, get_loggers
from core.models.track_models import LogLevel
from services.dependency_container import DependencyContainer


async def _setup_environment(args: argparse.Namespace) -> tuple[DependencyContainer, SafeQueueListener | None, logging.Logger, logging.Logger]:
    """Set up configuration, logging, and dependencies.

    Args:
        args: Parsed command line arguments

    Returns:
        Tuple of (deps, listener, logger_console, logger_error)

    """
    config_manager = Config(args.config)
    config = config_manager.load()
    if args.verbose:
        config.logging.levels.console = LogLevel.DEBUG

    logger_console, logger_error, listener = get_loggers(config)

    deps = DependencyContainer(
        config,
        logger_console,
        logger_error,
        config_path=config_manager.resolved_path,
        logging_listener=listener,
        dry_run=args.dry_run,
    )
    await deps.initialize()

    return deps, listener, logger_console, logger_error


def _handle_critical_error(error: Exception, logger_error: logging.Logger | None) -> None:
    """Handle critical errors."""
    if logger_error:
        logger_error.critical("A critical error occurred: %s", error, exc_info=True)
    else:
        print(f"A critical error occurred: {error}", file=sys.stderr)
    sys.exit(1)


async def _cleanup_resources(deps: DependencyContainer, logger_console: logging.Logger | None, start_time: float) -> None:
    """Cleanup all resources and log execution time."""
    if logger_console:
        logger_console.debug("Total execution time: %.2f seconds", time.time() - start_time)
    await deps.close()
    deps.shutdown()


async def main_async() -> None:
    """Execute main async entry point."""
    cli = CLI()
    args = cli.parse_args()
    start_time = time.time()

    try:
        deps, _listener, logger_console, logger_error = await _setup_environment(args)
    except (FileNotFoundError, RuntimeError) as e:
        _handle_critical_error(e, None)
        return

    try:
        orchestrator = Orchestrator(deps)
        await orchestrator.run_command(args)

    except KeyboardInterrupt:
        logger_console.info("\nInterrupted by user.")
        sys.exit(130)

    except (RuntimeError, ValueError, OSError) as e:
        _handle_critical_error(e, logger_error)

    finally:
        await _cleanup_resources(deps, logger_console, start_time)


def main() -> None:
    """Execute the main entry point."""
    asyncio.run(main_async())


if __name__ == "__main__":
    main()
