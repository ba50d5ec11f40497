"""Per-user workspace isolation and safe path resolution.

Workspace Model
---------------

Every user owns exactly one directory tree::

    {workspaces_root}/{user_id}/

Tools address files with paths *relative* to that root.  Before any tool
touches the filesystem or spawns a process, the caller-supplied path is
resolved here and rejected with :class:`SecurityError` unless the result is
the root itself or a descendant of it.

Resolution is lexical: the candidate is joined onto the canonical root and
normalised with ``os.path.normpath``; containment is then checked by string
prefix against ``root + os.sep``.  On top of that:

- absolute paths and ``..`` segments are rejected outright, including their
  percent-encoded and Unicode-compatibility forms (``%2e%2e``, ``．．``);
- the deepest *existing* ancestor of the candidate is canonicalised with
  ``os.path.realpath`` and must still sit under the root, so a symlink that
  was planted inside the workspace (e.g. by ``git clone``) cannot be used to
  reach outside it.
"""

from __future__ import annotations

import os
import re
import unicodedata
from pathlib import Path
from urllib.parse import unquote

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class SecurityError(PermissionError):
    """A path (or user id) would escape the caller's workspace."""

    def __init__(self, message: str, *, user_id: str | None = None, path: str | None = None) -> None:
        super().__init__(message)
        self.user_id = user_id
        self.path = path


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

_WINDOWS_ABSOLUTE = re.compile(r"^(?:[a-zA-Z]:|\\\\|//)")
_SEPARATORS = re.compile(r"[\\/]+")
_MAX_DECODE_ROUNDS = 5


def validate_user_id(user_id: str) -> str:
    """Return *user_id* if it is usable as a single directory name.

    Raises ``SecurityError`` for empty ids, ``.``/``..``, path separators and
    NUL bytes -- any of which would let the id itself point outside the
    workspaces root.
    """
    if not user_id or not user_id.strip():
        raise SecurityError("User id must be a non-empty string", user_id=user_id)
    if user_id in {".", ".."} or "/" in user_id or "\\" in user_id or "\x00" in user_id:
        raise SecurityError(f"Invalid user id: {user_id!r}", user_id=user_id)
    return user_id


def _decoded_forms(raw: str) -> list[str]:
    """The raw path plus every distinct percent-decoded / NFKC-normalised form."""
    forms = [raw]
    current = raw
    for _ in range(_MAX_DECODE_ROUNDS):
        decoded = unquote(current)
        if decoded == current:
            break
        forms.append(decoded)
        current = decoded
    forms.extend(unicodedata.normalize("NFKC", f) for f in list(forms))
    return forms


def _check_relative(raw: str, user_id: str) -> None:
    for form in _decoded_forms(raw):
        if "\x00" in form:
            raise SecurityError("Invalid path: NUL byte", user_id=user_id, path=raw)
        if form.startswith(("/", "\\")) or _WINDOWS_ABSOLUTE.match(form):
            raise SecurityError(
                "Invalid path: absolute paths are not allowed, use a path relative to the workspace",
                user_id=user_id,
                path=raw,
            )
        if ".." in _SEPARATORS.split(form):
            raise SecurityError(
                "Invalid path: cannot access files outside workspace",
                user_id=user_id,
                path=raw,
            )


def _is_within(candidate: str, root: str) -> bool:
    return candidate == root or candidate.startswith(root + os.sep)


def _deepest_existing(path: str) -> str:
    current = path
    while not os.path.lexists(current):
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return current


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class WorkspaceResolver:
    """Maps user ids to workspace roots and resolves paths inside them.

    The user -> root map is the only state; it is filled lazily the first
    time a user's workspace is touched.  Directory creation is idempotent
    (``exist_ok=True``), so concurrent first calls for the same user are safe.

    Resolution runs inline on the event loop: it only stats path components
    and creates a user's root at most once per process.  File contents are
    read and written by the tools in a worker thread.
    """

    def __init__(self, workspaces_root: str | Path) -> None:
        self._base = os.path.realpath(os.path.abspath(workspaces_root))
        self._roots: dict[str, Path] = {}

    @property
    def base(self) -> Path:
        return Path(self._base)

    def path_for(self, user_id: str) -> Path:
        """Workspace root for *user_id* without touching the filesystem."""
        validate_user_id(user_id)
        return Path(self._base) / user_id

    def root_for(self, user_id: str) -> Path:
        """Workspace root for *user_id*, created on first use."""
        root = self._roots.get(user_id)
        if root is None:
            root = self.path_for(user_id)
            root.mkdir(parents=True, exist_ok=True)
            self._roots[user_id] = root
        return root

    def resolve(self, user_id: str, relative_path: str | None = ".") -> Path:
        """Resolve *relative_path* inside the workspace of *user_id*.

        Returns an absolute path guaranteed to be the workspace root or a
        descendant of it.  Raises ``SecurityError`` otherwise.
        """
        root = str(self.root_for(user_id))
        raw = relative_path if relative_path not in (None, "") else "."
        _check_relative(raw, user_id)

        candidate = os.path.normpath(os.path.join(root, raw))
        if not _is_within(candidate, root):
            raise SecurityError(
                "Invalid path: cannot access files outside workspace",
                user_id=user_id,
                path=raw,
            )

        anchor = os.path.realpath(_deepest_existing(candidate))
        if not _is_within(anchor, os.path.realpath(root)):
            raise SecurityError(
                "Invalid path: symbolic link points outside workspace",
                user_id=user_id,
                path=raw,
            )
        return Path(candidate)

    def relative_to_root(self, user_id: str, path: Path) -> str:
        """Render *path* as a POSIX path relative to the user's workspace root."""
        return Path(path).relative_to(self.root_for(user_id)).as_posix()

    @property
    def active_workspaces(self) -> list[str]:
        """User ids whose workspace has been touched in this process."""
        return list(self._roots)
