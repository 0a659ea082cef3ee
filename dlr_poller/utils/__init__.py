"""
Utilities package for the DLR poller.

Exports shared helpers for logging and other cross-cutting concerns.
Keep this package lightweight and free of domain-specific logic.
"""

from dlr_poller.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
