"""
plancapture - log-based EXPLAIN capture for Postgres

Takes query samples observed in a server's logs and, where it is safe to do
so, re-runs them under EXPLAIN to record their execution plans.
"""

__version__ = "0.1.0"
__author__ = "plancapture Team"

from plancapture.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__"]
