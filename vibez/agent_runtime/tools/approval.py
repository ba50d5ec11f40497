"""The ``request_approval`` tool: ask a human to sign off on a risky action."""

from __future__ import annotations

from typing import TYPE_CHECKING

from vibez.agent_runtime.models.approval import ApprovalRequest
from vibez.agent_runtime.models.tools import RequestApprovalParams, ToolResult

if TYPE_CHECKING:
    from vibez.agent_runtime.context import ToolContext
    from vibez.agent_runtime.tools.base import ToolDeps


async def request_approval(deps: ToolDeps, ctx: ToolContext, params: RequestApprovalParams) -> ToolResult:
    request = ApprovalRequest.for_user(
        ctx.user_id,
        title=params.title,
        description=params.description,
        code_snippet=params.code_snippet,
        metadata=params.metadata,
    )
    request_id = await deps.approvals.submit(request)
    return ToolResult.ok(
        message="Approval request submitted successfully. Ask the user to approve or reject it in the Vibez app.",
        requestId=request_id,
    )
