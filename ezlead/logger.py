"""
Structured logging system for EzLead.

Provides centralized logging with console and file outputs, plus metrics
tracking for external calls, cache efficiency and enrichment outcomes.
"""

import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=DATE_FORMAT))
    return handler


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for monitoring pipeline health.
    """

    def __init__(
        self,
        name: str = "ezlead",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: EZLEAD_LOG_DIR or logs/)
            enable_file: Write logs to a daily file (always at DEBUG)
            enable_console: Output logs to stdout at `level`
        """
        numeric_level = getattr(logging, level.upper())
        self.logger = logging.getLogger(name)
        self.logger.setLevel(numeric_level)
        self.logger.handlers.clear()

        self.metrics = self._empty_metrics()

        if enable_console:
            self.logger.addHandler(_handler(logging.StreamHandler(sys.stdout), numeric_level, CONSOLE_FORMAT))

        if enable_file:
            log_dir = log_dir or Path(os.getenv("EZLEAD_LOG_DIR", "logs"))
            log_dir.mkdir(parents=True, exist_ok=True)
            log_file = log_dir / f"ezlead_{datetime.now():%Y%m%d}.log"
            self.logger.addHandler(_handler(logging.FileHandler(log_file, encoding="utf-8"), logging.DEBUG, FILE_FORMAT))

    @staticmethod
    def _empty_metrics() -> dict:
        return {
            "api_calls": {},
            "cache_hits": 0,
            "cache_misses": 0,
            "postings_accepted": 0,
            "postings_rejected": 0,
            "rejections_by_reason": {},
            "enrichment_outcomes": {},
            "errors_by_type": {},
        }

    def debug(self, message: str, **context):
        self._log(logging.DEBUG, message, context)

    def info(self, message: str, **context):
        self._log(logging.INFO, message, context)

    def warning(self, message: str, **context):
        self._log(logging.WARNING, message, context)

    def error(self, message: str, **context):
        self._log(logging.ERROR, message, context)

    def critical(self, message: str, **context):
        self._log(logging.CRITICAL, message, context)

    def _log(self, level: int, message: str, context: dict):
        """Append keyword context as JSON; values JSON can't encode are stringified."""
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_api_call(self, service: str):
        """Increment the call counter for an external service."""
        calls = self.metrics["api_calls"]
        calls[service] = calls.get(service, 0) + 1

    def record_cache_hit(self):
        self.metrics["cache_hits"] += 1

    def record_cache_miss(self):
        self.metrics["cache_misses"] += 1

    def record_posting_accepted(self):
        self.metrics["postings_accepted"] += 1

    def record_posting_rejected(self, reasons: List[str]):
        """Record one rejected posting and every reason it was dropped for."""
        self.metrics["postings_rejected"] += 1
        by_reason = self.metrics["rejections_by_reason"]
        for reason in reasons:
            by_reason[reason] = by_reason.get(reason, 0) + 1

    def record_enrichment_outcome(self, state: str):
        """Record the terminal state of one company enrichment."""
        outcomes = self.metrics["enrichment_outcomes"]
        outcomes[state] = outcomes.get(state, 0) + 1

    def record_error(self, error_type: str):
        errors = self.metrics["errors_by_type"]
        errors[error_type] = errors.get(error_type, 0) + 1

    def get_metrics(self) -> dict:
        """Return current metrics, including the cache hit rate."""
        metrics_copy = dict(self.metrics)
        lookups = metrics_copy["cache_hits"] + metrics_copy["cache_misses"]
        metrics_copy["cache_hit_rate"] = (
            round(metrics_copy["cache_hits"] / lookups, 3) if lookups else 0.0
        )
        return metrics_copy

    def reset_metrics(self):
        self.metrics = self._empty_metrics()

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        self.info("=== EzLead Session Metrics ===")
        if metrics["api_calls"]:
            self.info("API Calls:")
            for service, count in metrics["api_calls"].items():
                self.info(f"  {service}: {count}")
        self.info(
            f"Cache: {metrics['cache_hits']} hits / {metrics['cache_misses']} misses "
            f"({metrics['cache_hit_rate'] * 100:.1f}% hit rate)"
        )
        self.info(
            f"Postings: {metrics['postings_accepted']} accepted, "
            f"{metrics['postings_rejected']} rejected"
        )

        if metrics["rejections_by_reason"]:
            self.info("Rejection Reasons:")
            for reason, count in metrics["rejections_by_reason"].items():
                self.info(f"  {reason}: {count}")

        if metrics["enrichment_outcomes"]:
            self.info("Enrichment Outcomes:")
            for state, count in metrics["enrichment_outcomes"].items():
                self.info(f"  {state}: {count}")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "ezlead",
    level: Optional[str] = None,
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        level: Log level (default: EZLEAD_LOG_LEVEL or INFO)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        level = level or os.getenv("EZLEAD_LOG_LEVEL", "INFO")
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
