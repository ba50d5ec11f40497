"""Approval request payload sent to the external approval service."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


class ApprovalRequest(BaseModel):
    """Wire body of ``POST {approval_api_url}``.

    Field names are the service's (snake_case ``code_snippet``); ``metadata``
    always carries the requesting ``userId`` and an ISO-8601 ``timestamp``.
    """

    title: str
    description: str
    code_snippet: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def for_user(
        cls,
        user_id: str,
        *,
        title: str,
        description: str,
        code_snippet: str | None = None,
        metadata: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> ApprovalRequest:
        """Build a request whose metadata is annotated with *user_id* and a timestamp."""
        stamp = (now or datetime.now(tz=UTC)).isoformat()
        return cls(
            title=title,
            description=description,
            code_snippet=code_snippet,
            metadata={**(metadata or {}), "userId": user_id, "timestamp": stamp},
        )
