"""Session store implementations for conversation logs."""

from vibez.agent_runtime.store.base import SessionStore
from vibez.agent_runtime.store.local import LocalSessionStore
from vibez.agent_runtime.store.memory import MemorySessionStore

__all__ = ["LocalSessionStore", "MemorySessionStore", "SessionStore"]
