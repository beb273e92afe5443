"""Utility helpers for staticsync."""

from .logging import setup_logging, get_logger, log_execution_time, log_cycle_report

__all__ = [
    "setup_logging",
    "get_logger",
    "log_execution_time",
    "log_cycle_report"
]
