"""
Domain models for the DLR poller.

Defines the records read from the Kannel `dlr` table, the connection profiles
parsed from the Kannel configuration, and the status payload returned by the
SMSC status API. These models are shared between the infrastructure layer and
the processing engine.
"""
from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class ConnectionProfile(BaseModel):
    """
    Credentials and coordinates for one upstream gateway (or for storage).
    """

    login: str = Field("", description="SMSC username (or database user).")
    password: str = Field("", description="SMSC password (or database password).")
    host: str = Field("", description="Gateway or database host.")
    port: str = Field("", description="Gateway or database port, kept as written.")
    database: str = Field("", description="Database name; storage profile only.")

    model_config = {
        "frozen": True,
    }


class PendingRecord(BaseModel):
    """
    Representation of a single unresolved row in the `dlr` table.
    """

    id: int = Field(..., description="Primary key of the dlr row.")
    external_id: int = Field(..., description="Message id assigned by the SMSC (`ts` column).")
    gateway_key: str = Field(..., description="Kannel smsc-id the message was sent through.")
    callback_url_template: str = Field(
        ..., description="Callback URL with a %d status placeholder."
    )
    phone: str = Field(..., description="Destination phone number.")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
    }

    @classmethod
    def from_row(cls, row: tuple) -> "PendingRecord":
        """Build a record from a `(id, ts, smsc, url, destination)` row."""
        record_id, ts, smsc, url, destination = row
        return cls(
            id=int(record_id),
            external_id=int(ts),
            gateway_key=smsc or "",
            callback_url_template=url or "",
            phone=destination or "",
        )


class StatusResult(BaseModel):
    """
    Decoded response of the SMSC status API (`fmt=3`, JSON).

    Missing keys decode to zero values so that an empty object behaves like
    "no decision yet". A null or mistyped field also decodes to its zero value
    without discarding the other fields, so a throttling `error_code` survives
    a broken `status`.
    """

    status: int = 0
    err: int = 0
    error: str = ""
    error_code: int = 0

    model_config = {
        "frozen": True,
        "extra": "ignore",
    }

    @field_validator("status", "err", "error_code", mode="before")
    @classmethod
    def int_or_zero(cls, value: Any) -> int:
        if isinstance(value, (int, float, str)):
            try:
                return int(value)
            except (ValueError, OverflowError):
                return 0
        return 0

    @field_validator("error", mode="before")
    @classmethod
    def str_or_empty(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""


class ProcessOutcome(str, enum.Enum):
    """How a single record invocation ended."""

    SKIPPED_UNROUTABLE = "skipped_unroutable"
    ORACLE_ERROR = "oracle_error"
    THROTTLED = "throttled"
    FAILED_REPORTED = "failed_reported"
    DELIVERED = "delivered"
    CALLBACK_ERROR = "callback_error"
    PENDING = "pending"
    CRASHED = "crashed"


__all__ = [
    "ConnectionProfile",
    "PendingRecord",
    "ProcessOutcome",
    "StatusResult",
]
