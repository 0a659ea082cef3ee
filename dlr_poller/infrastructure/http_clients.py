"""
HTTP clients for the SMSC status API and record callbacks.

Both wrap a single shared `httpx.Client`, which is safe to use from every
worker thread. Transport and body-read failures surface as `httpx.HTTPError`
so the record processor can decide how to log and recover.
"""

from __future__ import annotations

from typing import Optional

import httpx
from pydantic import ValidationError

from dlr_poller.config import DEFAULT_STATUS_URL
from dlr_poller.domain.models import ConnectionProfile, PendingRecord, StatusResult
from dlr_poller.utils.logging import get_logger

log = get_logger(__name__)

# fmt=3 selects the JSON response format
STATUS_FORMAT_JSON = 3
SMSC_ERROR_HEADER = "SMSC-ERROR"


def build_http_client(
    timeout: float, transport: Optional[httpx.BaseTransport] = None
) -> httpx.Client:
    """Create the shared client used for status queries and callbacks."""
    return httpx.Client(
        timeout=httpx.Timeout(timeout),
        transport=transport,
        headers={"User-Agent": "dlr-poller"},
    )


class SmscStatusClient:
    """
    Query the delivery status of one message from the SMSC status API.
    """

    def __init__(self, client: httpx.Client, status_url: str = DEFAULT_STATUS_URL) -> None:
        self._client = client
        self.status_url = status_url

    def query(self, profile: ConnectionProfile, record: PendingRecord) -> StatusResult:
        """
        Fetch and decode the status of `record` using `profile` credentials.

        Raises
        ------
        httpx.HTTPError
            On connection failures or if the response body cannot be read.
        """
        response = self._client.get(
            self.status_url,
            params={
                "login": profile.login,
                "psw": profile.password,
                "phone": record.phone,
                "id": record.external_id,
                "fmt": STATUS_FORMAT_JSON,
            },
        )
        try:
            return StatusResult.model_validate_json(response.content)
        except ValidationError as exc:
            # Undecodable answers count as "no status yet"
            log.warning(
                f"Msg {record.external_id} status decode error: {exc.error_count()} error(s)",
                extra={"external_id": record.external_id, "http_status": response.status_code},
            )
            return StatusResult()


def format_callback_url(template: str, status: int) -> str:
    """Substitute the first `%d` placeholder of a callback template with `status`."""
    return template.replace("%d", str(status), 1)


class CallbackClient:
    """
    Report a delivery status back to the URL stored with the record.
    """

    def __init__(self, client: httpx.Client) -> None:
        self._client = client

    def notify(
        self, template: str, status: int, smsc_error: Optional[int] = None
    ) -> httpx.Response:
        """
        Call the record's callback URL with `status` interpolated.

        Any HTTP response counts as delivered; only transport errors raise.
        """
        headers = {}
        if smsc_error is not None:
            headers[SMSC_ERROR_HEADER] = str(smsc_error)
        return self._client.get(format_callback_url(template, status), headers=headers)


__all__ = [
    "CallbackClient",
    "SMSC_ERROR_HEADER",
    "SmscStatusClient",
    "build_http_client",
    "format_callback_url",
]
