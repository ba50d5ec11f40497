"""Outbound human-approval requests.

The gate is a thin, stateless forwarder: it POSTs an ``ApprovalRequest`` to
the external approval service and returns the request id the service
assigns.  It never waits for the human decision.

Every failure mode is a ``SubmissionError`` whose ``kind`` tells them apart;
callers (the ``request_approval`` tool) turn it into a failed tool result
instead of aborting the agent turn.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from vibez.agent_runtime.models.enums import SubmissionErrorKind

if TYPE_CHECKING:
    from vibez.agent_runtime.models.approval import ApprovalRequest

logger = logging.getLogger(__name__)


class SubmissionError(RuntimeError):
    """The approval request could not be submitted."""

    def __init__(self, kind: SubmissionErrorKind, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


class ApprovalGate:
    """Submits approval requests over HTTP.

    Parameters
    ----------
    url:
        Endpoint of the approval service.  ``None`` leaves the gate
        unconfigured -- every submission then fails with ``not_configured``.
    api_key:
        Sent as the ``x-api-key`` header.
    timeout:
        Seconds before a submission is abandoned (reported as ``timeout``).
    transport:
        Optional httpx transport, used by tests to stand in for the service.
    """

    def __init__(
        self,
        url: str | None,
        api_key: str | None,
        *,
        timeout: float = 15,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.url and self._api_key)

    async def submit(self, request: ApprovalRequest) -> str:
        """Submit *request* and return the upstream request id."""
        if not self.configured:
            raise SubmissionError(SubmissionErrorKind.NOT_CONFIGURED, "Approval service is not configured")

        body = request.model_dump(exclude_none=True)
        headers = {"x-api-key": self._api_key or "", "Content-Type": "application/json"}

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self.url, json=body, headers=headers)
        except httpx.TimeoutException as exc:
            raise SubmissionError(
                SubmissionErrorKind.TIMEOUT,
                f"Approval service did not respond within {self._timeout:g}s",
            ) from exc
        except httpx.HTTPError as exc:
            raise SubmissionError(SubmissionErrorKind.NETWORK, f"Approval service unreachable: {exc}") from exc

        data = _parse_json(response)

        if not response.is_success:
            detail = _upstream_message(data) or response.reason_phrase or "unknown error"
            raise SubmissionError(
                SubmissionErrorKind.HTTP_STATUS,
                f"Approval service returned {response.status_code}: {detail}",
                status_code=response.status_code,
            )

        if not isinstance(data, dict):
            raise SubmissionError(
                SubmissionErrorKind.MALFORMED_RESPONSE,
                "Approval service returned an unparsable response body",
                status_code=response.status_code,
            )

        request_id = data.get("id") or data.get("request_id")
        if not request_id:
            raise SubmissionError(
                SubmissionErrorKind.MALFORMED_RESPONSE,
                "Approval service response has no request id",
                status_code=response.status_code,
            )

        logger.info("Approval request submitted: id=%s title=%r", request_id, request.title)
        return str(request_id)


def _parse_json(response: httpx.Response) -> object | None:
    try:
        return response.json()
    except ValueError:
        return None


def _upstream_message(data: object | None) -> str | None:
    if isinstance(data, dict):
        for key in ("error", "message"):
            value = data.get(key)
            if value:
                return str(value)
    return None
