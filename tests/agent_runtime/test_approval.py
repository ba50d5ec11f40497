"""Tests for the approval gate and the request_approval tool.

The approval service is replaced by ``httpx.MockTransport``.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime

import httpx
import pytest

from vibez.agent_runtime.context import ToolContext
from vibez.agent_runtime.execution.approval import ApprovalGate, SubmissionError
from vibez.agent_runtime.models.approval import ApprovalRequest
from vibez.agent_runtime.models.enums import SubmissionErrorKind, ToolErrorKind
from vibez.agent_runtime.tools.base import ToolDeps
from vibez.agent_runtime.tools.registry import ToolRegistry

APPROVAL_URL = "https://approvals.test/api/approval-requests"


def _gate(handler) -> ApprovalGate:
    return ApprovalGate(APPROVAL_URL, "test-key", timeout=5, transport=httpx.MockTransport(handler))


def _request() -> ApprovalRequest:
    return ApprovalRequest.for_user("alice", title="Delete build/", description="Removes 10 generated files")


# ---------------------------------------------------------------------------
# ApprovalRequest
# ---------------------------------------------------------------------------


def test_request_metadata_is_annotated() -> None:
    now = datetime(2025, 1, 2, 3, 4, 5, tzinfo=UTC)
    request = ApprovalRequest.for_user(
        "alice",
        title="Deploy",
        description="Publish to production",
        metadata={"env": "prod", "userId": "mallory"},
        now=now,
    )

    assert request.metadata == {"env": "prod", "userId": "alice", "timestamp": "2025-01-02T03:04:05+00:00"}


# ---------------------------------------------------------------------------
# ApprovalGate
# ---------------------------------------------------------------------------


async def test_submit_returns_request_id() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"id": "req-123"})

    request_id = await _gate(handler).submit(_request())

    assert request_id == "req-123"
    assert seen[0].method == "POST"
    assert seen[0].headers["x-api-key"] == "test-key"
    body = json.loads(seen[0].content)
    assert body["title"] == "Delete build/"
    assert body["metadata"]["userId"] == "alice"
    assert "code_snippet" not in body


async def test_submit_accepts_request_id_field() -> None:
    gate = _gate(lambda _: httpx.Response(200, json={"request_id": 42}))
    assert await gate.submit(_request()) == "42"


async def test_submit_http_status_error() -> None:
    gate = _gate(lambda _: httpx.Response(403, json={"error": "Invalid API key"}))

    with pytest.raises(SubmissionError) as exc_info:
        await gate.submit(_request())

    assert exc_info.value.kind == SubmissionErrorKind.HTTP_STATUS
    assert exc_info.value.status_code == 403
    assert "Invalid API key" in str(exc_info.value)


async def test_submit_http_status_falls_back_to_reason() -> None:
    gate = _gate(lambda _: httpx.Response(502, text="<html>bad gateway</html>"))

    with pytest.raises(SubmissionError) as exc_info:
        await gate.submit(_request())

    assert exc_info.value.kind == SubmissionErrorKind.HTTP_STATUS
    assert "Bad Gateway" in str(exc_info.value)


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="not json"),
        httpx.Response(200, json=["req-1"]),
        httpx.Response(200, json={"status": "pending"}),
    ],
)
async def test_submit_malformed_response(response: httpx.Response) -> None:
    gate = _gate(lambda _: response)

    with pytest.raises(SubmissionError) as exc_info:
        await gate.submit(_request())

    assert exc_info.value.kind == SubmissionErrorKind.MALFORMED_RESPONSE


async def test_submit_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(SubmissionError) as exc_info:
        await _gate(handler).submit(_request())

    assert exc_info.value.kind == SubmissionErrorKind.NETWORK


async def test_submit_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(SubmissionError) as exc_info:
        await _gate(handler).submit(_request())

    assert exc_info.value.kind == SubmissionErrorKind.TIMEOUT


async def test_submit_not_configured() -> None:
    gate = ApprovalGate(None, None)

    assert gate.configured is False
    with pytest.raises(SubmissionError) as exc_info:
        await gate.submit(_request())
    assert exc_info.value.kind == SubmissionErrorKind.NOT_CONFIGURED


# ---------------------------------------------------------------------------
# request_approval tool
# ---------------------------------------------------------------------------


def _registry_with_gate(tool_deps: ToolDeps, gate: ApprovalGate) -> ToolRegistry:
    tool_deps.approvals = gate
    return ToolRegistry(tool_deps)


async def test_request_approval_tool(tool_deps: ToolDeps, alice: ToolContext) -> None:
    registry = _registry_with_gate(tool_deps, _gate(lambda _: httpx.Response(201, json={"id": "req-7"})))

    result = await registry.invoke(
        "request_approval",
        {"title": "Delete 10 files", "description": "Cleanup", "codeSnippet": "rm build/*"},
        alice,
    )

    assert result.success is True
    assert result.data["requestId"] == "req-7"
    assert "approve" in result.data["message"]


async def test_request_approval_unreachable(tool_deps: ToolDeps, alice: ToolContext) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    registry = _registry_with_gate(tool_deps, _gate(handler))
    result = await registry.invoke("request_approval", {"title": "Deploy", "description": "Ship it"}, alice)

    assert result.success is False
    assert result.error_kind == ToolErrorKind.SUBMISSION
    assert result.to_payload()["submissionError"] == "network"


async def test_request_approval_not_configured(tool_registry: ToolRegistry, alice: ToolContext) -> None:
    result = await tool_registry.invoke("request_approval", {"title": "Deploy", "description": "Ship it"}, alice)

    assert result.success is False
    assert result.data["submissionError"] == "not_configured"
