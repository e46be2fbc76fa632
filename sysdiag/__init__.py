"""System performance diagnostics collector."""

__version__ = "1.0.0"
