"""HTTP access to the Robinhood API."""

from .client import RobinhoodClient

__all__ = ["RobinhoodClient"]
