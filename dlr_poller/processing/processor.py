"""
Per-record reconciliation: status query, decision table, callback, update.

One `RecordProcessor` instance is shared by every worker of a cycle; it holds
only read-only collaborators plus the thread-safe BackoffState, while each
PendingRecord is owned by the single worker processing it.

Decision table on the decoded status:

    error_code >= 4              -> upstream throttling, raise backoff only
    1 <= error_code < 4          -> report status 2 (best effort), store "2"
    error_code == 0, status > 0  -> report status with SMSC-ERROR header,
                                    store status once the callback succeeded
    error_code == 0, status <= 0 -> no decision yet, retry next cycle
"""

from __future__ import annotations

from typing import Optional, Protocol

import httpx

from dlr_poller.domain.models import (
    ConnectionProfile,
    PendingRecord,
    ProcessOutcome,
    StatusResult,
)
from dlr_poller.infrastructure.http_clients import CallbackClient, SmscStatusClient
from dlr_poller.processing.abstract import StatusSink
from dlr_poller.processing.backoff import BackoffState
from dlr_poller.utils.logging import get_logger

log = get_logger(__name__)

THROTTLE_ERROR_CODE = 4
FAILED_STATUS = 2

# InvalidURL is not an HTTPError; a malformed stored template raises it
CALLBACK_ERRORS = (httpx.HTTPError, httpx.InvalidURL)


class ProfileLookup(Protocol):
    def lookup(self, gateway_key: str) -> Optional[ConnectionProfile]: ...


class RecordProcessor:
    """
    Reconcile a single pending record against the SMSC status API.

    `process` never raises for network, decoding or storage problems: those
    are logged and the record is left unresolved for the next cycle.
    """

    def __init__(
        self,
        routing: ProfileLookup,
        status_client: SmscStatusClient,
        callback_client: CallbackClient,
        sink: StatusSink,
        backoff: BackoffState,
    ) -> None:
        self.routing = routing
        self.status_client = status_client
        self.callback_client = callback_client
        self.sink = sink
        self.backoff = backoff

    def process(self, record: PendingRecord) -> ProcessOutcome:
        profile = self.routing.lookup(record.gateway_key)
        if profile is None:
            log.warning(
                f"Msg {record.external_id} skipped: unknown smsc '{record.gateway_key}'",
                extra={"record_id": record.id, "smsc": record.gateway_key},
            )
            return ProcessOutcome.SKIPPED_UNROUTABLE

        try:
            result = self.status_client.query(profile, record)
        except httpx.HTTPError as exc:
            log.error(
                f"Msg {record.external_id} processing error: {exc!r}",
                extra={"record_id": record.id},
            )
            return ProcessOutcome.ORACLE_ERROR

        return self.apply(record, result)

    def apply(self, record: PendingRecord, result: StatusResult) -> ProcessOutcome:
        """Run the decision table for an already decoded status."""
        if result.error_code >= THROTTLE_ERROR_CODE:
            log.warning(
                f"Msg {record.external_id} throttled by SMSC (error_code={result.error_code})",
                extra={"record_id": record.id, "error": result.error},
            )
            self.backoff.raise_flag()
            return ProcessOutcome.THROTTLED

        if result.error_code > 0:
            self._report_failure(record)
            self.sink.set_status(record.id, str(FAILED_STATUS))
            return ProcessOutcome.FAILED_REPORTED

        if result.status <= 0:
            return ProcessOutcome.PENDING

        try:
            self.callback_client.notify(
                record.callback_url_template, result.status, smsc_error=result.err
            )
        except CALLBACK_ERRORS as exc:
            log.error(
                f"Msg {record.external_id} callback error: {exc!r}",
                extra={"record_id": record.id, "status": result.status},
            )
            return ProcessOutcome.CALLBACK_ERROR

        self.sink.set_status(record.id, str(result.status))
        return ProcessOutcome.DELIVERED

    def _report_failure(self, record: PendingRecord) -> None:
        # Best effort: the record is closed whether or not the callback lands
        try:
            self.callback_client.notify(record.callback_url_template, FAILED_STATUS)
        except CALLBACK_ERRORS as exc:
            log.debug(
                f"Msg {record.external_id} failure callback ignored: {exc!r}",
                extra={"record_id": record.id},
            )

    __call__ = process


__all__ = ["FAILED_STATUS", "RecordProcessor", "THROTTLE_ERROR_CODE"]
