"""In-process turn registry.

Tracks active (running or queued) chat turns and serialises them per user:
at most one turn per user executes at a time, and queued turns run in the
order they were accepted.  Turns of different users never wait on each
other.  Ephemeral -- empty on process restart.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from loguru import logger

from vibez.agent_runtime.context import ActiveTurn
from vibez.agent_runtime.locks import KeyedLock


class ShuttingDownError(RuntimeError):
    """Raised when attempting to start a turn during shutdown."""


class TurnRegistry:
    """Registry of currently executing turns plus the per-user turn locks.

    The registry also provides a drain mechanism for graceful shutdown:
    ``wait_until_drained`` blocks until every accepted turn has finished.
    """

    def __init__(self) -> None:
        self._turns: dict[str, ActiveTurn] = {}
        self._locks = KeyedLock()
        self._drain_event = asyncio.Event()
        self._drain_event.set()  # Starts "drained" (no turns).
        self._shutting_down = False

    # -- Serialisation ---------------------------------------------------------

    @asynccontextmanager
    async def turn(self, user_id: str) -> AsyncIterator[ActiveTurn]:
        """Accept a turn for *user_id* and hold the user's lock while it runs.

        The turn is registered *before* it waits for the lock, so queued turns
        count as active for shutdown.  Raises ``ShuttingDownError`` if the
        registry no longer accepts work.
        """
        active = self._register(user_id)
        try:
            async with self._locks.hold(user_id):
                logger.debug("Registry: turn {} for user {} acquired lock", active.turn_id, user_id)
                yield active
        finally:
            self._unregister(active.turn_id)

    @asynccontextmanager
    async def exclusive(self, user_id: str) -> AsyncIterator[None]:
        """Hold the user's lock without registering a turn (e.g. history reset)."""
        async with self._locks.hold(user_id):
            yield

    # -- Mutation --------------------------------------------------------------

    def _register(self, user_id: str) -> ActiveTurn:
        if self._shutting_down:
            raise ShuttingDownError
        active = ActiveTurn(user_id=user_id, task=asyncio.current_task())
        logger.debug("Registry: register turn {} (user={})", active.turn_id, user_id)
        self._turns[active.turn_id] = active
        self._drain_event.clear()
        return active

    def _unregister(self, turn_id: str) -> ActiveTurn | None:
        active = self._turns.pop(turn_id, None)
        if active:
            logger.debug("Registry: unregister turn {} after {}ms", turn_id, active.elapsed_ms)
        if not self._turns:
            self._drain_event.set()
        return active

    # -- Query -----------------------------------------------------------------

    def get(self, turn_id: str) -> ActiveTurn | None:
        return self._turns.get(turn_id)

    def by_user(self, user_id: str) -> list[ActiveTurn]:
        """Active (running or queued) turns of *user_id*, in acceptance order."""
        return [t for t in self._turns.values() if t.user_id == user_id]

    def is_busy(self, user_id: str) -> bool:
        return self._locks.locked(user_id)

    @property
    def active_count(self) -> int:
        return len(self._turns)

    # -- Lifecycle -------------------------------------------------------------

    def begin_shutdown(self) -> None:
        """Mark the registry as shutting down.  New turns are refused."""
        self._shutting_down = True
        logger.info("Registry: shutdown initiated, refusing new turns")
        if not self._turns:
            self._drain_event.set()

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    # -- Control ---------------------------------------------------------------

    def interrupt(self, user_id: str) -> int:
        """Cancel every active turn of *user_id*.  Returns how many were cancelled."""
        return self._cancel(self.by_user(user_id))

    def interrupt_all(self) -> int:
        """Cancel all active turns.

        Intended as a last resort during forced shutdown.  Normal graceful
        shutdown should use ``begin_shutdown`` + ``wait_until_drained``.
        """
        return self._cancel(list(self._turns.values()))

    def _cancel(self, turns: list[ActiveTurn]) -> int:
        count = 0
        for active in turns:
            if active.task is not None and not active.task.done():
                active.task.cancel()
                count += 1
                logger.info("Registry: interrupted turn {} (user={})", active.turn_id, active.user_id)
        return count

    async def wait_until_drained(self, timeout: float | None = None) -> bool:
        """Wait until all turns have been unregistered (drained).

        Returns ``True`` if the registry is empty, ``False`` if *timeout*
        expired with turns still active.
        """
        if not self._turns:
            return True
        try:
            await asyncio.wait_for(self._drain_event.wait(), timeout=timeout)
        except TimeoutError:
            logger.warning(
                "Registry: drain timed out after {}s with {} turns still active",
                timeout,
                len(self._turns),
            )
            return False
        else:
            return True
