"""Utils package for plancapture."""

from plancapture.utils.logger import database_context, get_logger, setup_logging

__all__ = ["database_context", "get_logger", "setup_logging"]
