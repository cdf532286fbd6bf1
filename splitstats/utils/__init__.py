"""Utility modules for structured logging and UTC clock helpers."""

from splitstats.utils.logging import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
