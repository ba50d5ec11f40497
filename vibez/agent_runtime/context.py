"""Runtime context objects.

``ToolContext`` is the pydantic-ai dependency type: every tool call receives
it as ``RunContext[ToolContext].deps`` and uses ``user_id`` to scope its work
to the caller's workspace.

``ActiveTurn`` is the in-flight bookkeeping for one chat turn, registered in
the ``TurnRegistry`` so that shutdown can wait for it and ``interrupt`` can
cancel it.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ToolContext:
    """Execution context handed to every tool invocation."""

    user_id: str
    """Authenticated principal; validated by the workspace resolver."""

    turn_id: str | None = None


@dataclass
class ActiveTurn:
    """In-flight state for a single chat turn.

    Created when a turn is accepted, before it waits for the user's lock, and
    discarded once the turn has finished (successfully or not).
    """

    user_id: str
    turn_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    started_at: float = field(default_factory=time.monotonic)

    task: asyncio.Task | None = None
    """Task executing the turn -- live handle for interrupt."""

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started_at) * 1000)
