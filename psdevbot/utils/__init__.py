"""Utility modules for psdevbot."""

from psdevbot.utils.logging import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
