"""
Exception types raised by the DLR poller.

Only startup-time and storage-level failures are modelled here; record-scoped
HTTP and decoding problems are logged where they happen and never raised.
"""

from __future__ import annotations


class DlrPollerError(RuntimeError):
    """Base class for fatal poller errors."""


class ConfigurationError(DlrPollerError):
    """The Kannel configuration is unreadable or incomplete."""


class StorageUnavailableError(DlrPollerError):
    """The DLR storage cannot be reached."""


__all__ = ["DlrPollerError", "ConfigurationError", "StorageUnavailableError"]
