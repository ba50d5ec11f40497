"""Data models for the agent runtime."""

from vibez.agent_runtime.models.api import (
    ChatRequest,
    ChatResponse,
    ClearHistoryResponse,
    ErrorResponse,
    HistoryResponse,
    StatusResponse,
)
from vibez.agent_runtime.models.approval import ApprovalRequest
from vibez.agent_runtime.models.enums import (
    EntryType,
    MessageRole,
    SubmissionErrorKind,
    ToolErrorKind,
    ToolName,
)
from vibez.agent_runtime.models.session import ConversationLog, Message, RunSummary, UsageSummary
from vibez.agent_runtime.models.tools import ToolParams, ToolResult

__all__ = [
    # Approval
    "ApprovalRequest",
    # API schemas
    "ChatRequest",
    "ChatResponse",
    "ClearHistoryResponse",
    # Session
    "ConversationLog",
    # Enums
    "EntryType",
    "ErrorResponse",
    "HistoryResponse",
    "Message",
    "MessageRole",
    "RunSummary",
    "StatusResponse",
    "SubmissionErrorKind",
    "ToolErrorKind",
    "ToolName",
    # Tools
    "ToolParams",
    "ToolResult",
    "UsageSummary",
]
