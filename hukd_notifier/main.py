"""
Main entry point for the HotUKDeals notifier.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from .orchestrator import NotifierOrchestrator
from .services.config_manager import ConfigurationManager
from .utils.logging import get_logger, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hukd-notifier",
        description="Poll HotUKDeals searches and post matching deals to Discord.",
    )
    parser.add_argument(
        "config_path",
        nargs="?",
        default=None,
        help="Path to the configuration file (default: config/config.yaml)",
    )
    parser.add_argument(
        "--loop",
        action="store_true",
        help="Keep running, one batch per polling interval",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        default=None,
        help="Override the configured log level",
    )
    return parser


async def async_main(
    config_path: Optional[str] = None,
    loop: bool = False,
    log_level: Optional[str] = None,
) -> int:
    """Async main application entry point."""
    config = ConfigurationManager(config_path).load_config()

    setup_logging(config.log_directory, log_level or config.log_level)
    logger = get_logger("main")
    logger.info(
        "Starting HotUKDeals notifier",
        extra={"config_path": config_path, "loop": loop},
    )

    orchestrator = NotifierOrchestrator.from_configuration(config)

    try:
        if loop:
            await orchestrator.run_forever()
        else:
            report = await orchestrator.run_once()
            if report.failed_channels or report.timed_out_channels:
                return 1
    except Exception as e:
        logger.error("Application failed", extra={"error": str(e)}, exc_info=True)
        return 1

    return 0


def main(argv: Optional[List[str]] = None):
    """Main application entry point."""
    args = build_parser().parse_args(argv)

    try:
        exit_code = asyncio.run(async_main(args.config_path, args.loop, args.log_level))
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
        exit_code = 0
    except (ValueError, FileNotFoundError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        exit_code = 2

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
