"""Utility modules."""

from .logging_config import setup_logging, get_logger, parse_level
from .config import (
    Config,
    DiagnosticStep,
    ReportSection,
    DEFAULT_STEPS,
    DEFAULT_LOG_PATTERNS,
    DEFAULT_REPORT_SECTIONS,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "parse_level",
    "Config",
    "DiagnosticStep",
    "ReportSection",
    "DEFAULT_STEPS",
    "DEFAULT_LOG_PATTERNS",
    "DEFAULT_REPORT_SECTIONS",
]
