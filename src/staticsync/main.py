"""Main application entry point."""

import argparse
import signal
import sys
import threading
from typing import List, Optional

from pydantic import ValidationError

from . import __version__
from .config.settings import get_settings
from .config.loader import ConfigLoader, ConfigurationError
from .config.schema import SyncConfig
from .core.reconciler import CycleReport, Reconciler
from .utils.logging import setup_logging, get_logger, log_cycle_report


EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_PAIR_ERRORS = 3


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="staticsync",
        description="Keep pairs of files in sync by copying the newer one over the older one.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                          # Use ~/.staticsync.json, check every 10 seconds
  %(prog)s -c pairs.yaml -t 60      # Custom config, check every minute
  %(prog)s --once                   # Run a single pass and exit
        """
    )

    parser.add_argument(
        "-c", "--config",
        metavar="PATH",
        help="Configuration file (default: ~/.staticsync.json)"
    )
    parser.add_argument(
        "-t", "--time",
        type=_positive_float,
        metavar="SECONDS",
        dest="interval",
        help="Interval between checks in seconds (default: 10)"
    )
    parser.add_argument(
        "-s", "--size",
        type=_positive_int,
        metavar="BYTES",
        dest="hash_buffer_size",
        help="Buffer size used when hashing files (default: 10485760)"
    )
    parser.add_argument(
        "-n", "--once",
        action="store_true",
        default=None,
        help="Check every pair once and exit"
    )
    parser.add_argument(
        "-w", "--workers",
        type=_positive_int,
        metavar="N",
        dest="max_workers",
        help="Reconcile up to N pairs concurrently (default: 1)"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Logging level"
    )
    parser.add_argument(
        "--log-format",
        choices=["console", "json"],
        help="Log output format"
    )
    parser.add_argument(
        "--log-file",
        metavar="PATH",
        help="Also write logs to this file"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return number


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return number


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


class StaticSyncApp:
    """Main staticsync application."""

    def __init__(self, args: argparse.Namespace):
        """Initialize the application."""
        self.args = args
        self.settings = get_settings()
        self.logger = get_logger("staticsync")
        self.cancel_event = threading.Event()
        self.loader = ConfigLoader()
        self.config: Optional[SyncConfig] = None
        self.reconciler: Optional[Reconciler] = None
        self.last_report: Optional[CycleReport] = None

    def startup(self) -> None:
        """Load and validate configuration.

        Raises:
            ConfigurationError: If the configuration cannot be loaded
        """
        self.logger.info("Starting staticsync", version=self.settings.version)

        config_path = self.loader.find_config_file(self.args.config)
        config = self.loader.load_from_file(config_path)
        self.config = self.loader.apply_overrides(
            config,
            interval_seconds=self.args.interval,
            hash_buffer_size=self.args.hash_buffer_size,
            once=self.args.once,
            max_workers=self.args.max_workers
        )
        self.loader.validate_config(self.config)

        self.reconciler = Reconciler(self.config, cancel_event=self.cancel_event)

    def run(self) -> int:
        """Run the application until stopped. Returns the process exit code."""
        try:
            self.startup()
        except ConfigurationError as e:
            self.logger.error("Configuration error", error=str(e))
            return EXIT_CONFIG_ERROR

        try:
            self.reconciler.run(on_report=self._handle_report)
        except KeyboardInterrupt:
            self.logger.info("Received shutdown signal")
        finally:
            self.shutdown()

        if self.config.once and self.last_report and self.last_report.errors:
            return EXIT_PAIR_ERRORS
        return EXIT_OK

    def shutdown(self) -> None:
        """Application shutdown."""
        self.cancel_event.set()
        self.logger.info(
            "staticsync stopped",
            cycles=self.reconciler.cycles_completed if self.reconciler else 0
        )

    def request_stop(self) -> None:
        self.cancel_event.set()

    def _handle_report(self, report: CycleReport) -> None:
        self.last_report = report
        log_cycle_report(report, self.logger)


def setup_signal_handlers(app: StaticSyncApp) -> None:
    """Set up signal handlers for graceful shutdown."""
    def signal_handler(signum, frame):
        app.logger.info("Received signal", signal=signal.Signals(signum).name)
        app.request_stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    # Set up logging first
    try:
        setup_logging(
            log_level=args.log_level,
            log_format=args.log_format,
            log_file=args.log_file
        )
    except ValidationError as e:
        print(f"Invalid logging settings: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    app = StaticSyncApp(args)

    if threading.current_thread() is threading.main_thread():
        setup_signal_handlers(app)

    return app.run()


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
