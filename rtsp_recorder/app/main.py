import argparse
import asyncio
import dataclasses
import signal
import sys
from pathlib import Path
from typing import Optional

from rtsp_recorder.core import RecordingSupervisor, ShutdownCoordinator
from rtsp_recorder.core.log_housekeeping import cleanup_logs
from rtsp_recorder.core.logging_config import configure_logging
from rtsp_recorder.core.logging_utils import get_module_logger
from rtsp_recorder.core.settings import (
    PRIMARY_CONFIG_PATH,
    SECONDARY_CONFIG_PATH,
    RecorderConfig,
    prepare_directories,
    resolve_config,
)
from rtsp_recorder.core.validation import validate_config


logger = get_module_logger("Main")

LOG_LEVELS = ['debug', 'info', 'warning', 'error', 'critical']


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="RTSP Recorder - record a network stream into fixed-length segment files"
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=PRIMARY_CONFIG_PATH,
        help=f"Primary settings file (default: {PRIMARY_CONFIG_PATH})"
    )

    parser.add_argument(
        "--env-file",
        type=Path,
        default=SECONDARY_CONFIG_PATH,
        help=f"Secondary settings file, read after the primary one (default: {SECONDARY_CONFIG_PATH})"
    )

    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: LOG_LEVEL setting, else info)"
    )

    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> RecorderConfig:
    config = resolve_config(primary_path=args.config, secondary_path=args.env_file)
    if args.log_level:
        config = dataclasses.replace(config, log_level=args.log_level)
    return config


def setup_logging(config: RecorderConfig) -> None:
    level = config.log_level if config.log_level in LOG_LEVELS else "info"
    configure_logging(level, force=True, log_file=config.log_file)
    if level != config.log_level:
        logger.warning("Unknown LOG_LEVEL %r, using info", config.log_level)


def log_banner(config: RecorderConfig) -> None:
    duration = config.segment_duration or 0
    logger.info("=" * 42)
    logger.info("RTSP Recorder starting")
    logger.info("RTSP URL: %s", config.rtsp_url)
    logger.info("Segment Duration: %d seconds (%d minutes)", duration, duration // 60)
    logger.info("Output Directory: %s", config.output_dir)
    logger.info("Filename Pattern: %s", config.filename_pattern)
    logger.info("Log File: %s", config.log_file)
    logger.info("=" * 42)


def install_signal_handlers(coordinator: ShutdownCoordinator) -> list[signal.Signals]:
    loop = asyncio.get_running_loop()
    shutdown_task: Optional[asyncio.Task] = None
    installed: list[signal.Signals] = []

    def signal_handler(sig: signal.Signals) -> None:
        nonlocal shutdown_task
        if shutdown_task is None or shutdown_task.done():
            shutdown_task = asyncio.create_task(
                coordinator.initiate_shutdown(f"signal {sig.name}")
            )

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, signal_handler, sig)
            installed.append(sig)
        except NotImplementedError:
            pass  # Windows doesn't support add_signal_handler

    return installed


async def main(argv: Optional[list[str]] = None) -> int:
    """
    Entry point for the recorder.

    Startup sequence:
    1. Resolve settings from the environment and settings files
    2. Create the output and log directories
    3. Configure logging (console plus application log file)
    4. Run preflight validation; any error exits with status 1
    5. Log the banner and trim oversized logs
    6. Record segments until SIGINT/SIGTERM, then exit with status 0
    """
    args = parse_args(argv)
    config = load_config(args)

    prepare_directories(config)
    setup_logging(config)

    errors = validate_config(config)
    if errors:
        logger.error("Configuration validation failed (%d errors). Exiting.", errors)
        return 1

    log_banner(config)
    await cleanup_logs(config)

    supervisor = RecordingSupervisor(config)
    coordinator = ShutdownCoordinator()
    coordinator.register_cleanup(supervisor.stop)

    installed = install_signal_handlers(coordinator)
    try:
        await supervisor.run()
    finally:
        if coordinator.is_shutting_down:
            await coordinator.wait_for_shutdown()
        loop = asyncio.get_running_loop()
        for sig in installed:
            loop.remove_signal_handler(sig)

    logger.info("RTSP Recorder stopped")
    return 0


def run(argv: Optional[list[str]] = None) -> int:
    try:
        return asyncio.run(main(argv))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 130
    except Exception as exc:  # pragma: no cover - fatal guard
        print(f"Fatal error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(run())
