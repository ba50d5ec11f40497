"""Unit tests for per-user workspace resolution."""

from __future__ import annotations

import os

import pytest

from vibez.agent_runtime.execution.workspace import SecurityError, WorkspaceResolver, validate_user_id

# ---------------------------------------------------------------------------
# Containment
# ---------------------------------------------------------------------------


def test_resolve_plain_file(resolver: WorkspaceResolver) -> None:
    path = resolver.resolve("alice", "notes.txt")

    assert path == resolver.base / "alice" / "notes.txt"
    assert path.parent.is_dir()


def test_resolve_defaults_to_root(resolver: WorkspaceResolver) -> None:
    root = resolver.root_for("alice")

    assert resolver.resolve("alice") == root
    assert resolver.resolve("alice", "") == root
    assert resolver.resolve("alice", ".") == root


def test_resolve_nested_path_normalised(resolver: WorkspaceResolver) -> None:
    path = resolver.resolve("alice", "src//lib/./index.js")
    assert path == resolver.base / "alice" / "src" / "lib" / "index.js"


@pytest.mark.parametrize(
    "raw",
    [
        "../../etc/passwd",
        "..",
        "src/../../bob/secret.txt",
        "src/../notes.txt",
        "..\\..\\windows",
        "%2e%2e/%2e%2e/etc/passwd",
        "%252e%252e/etc/passwd",
        "..%2fetc%2fpasswd",
        "\uff0e\uff0e/etc/passwd",
    ],
)
def test_resolve_rejects_traversal(resolver: WorkspaceResolver, raw: str) -> None:
    with pytest.raises(SecurityError):
        resolver.resolve("alice", raw)


@pytest.mark.parametrize("raw", ["/etc/passwd", "\\etc\\passwd", "C:\\Windows", "%2Fetc%2Fpasswd", "//server/share"])
def test_resolve_rejects_absolute(resolver: WorkspaceResolver, raw: str) -> None:
    with pytest.raises(SecurityError, match="absolute"):
        resolver.resolve("alice", raw)


def test_resolve_rejects_nul_byte(resolver: WorkspaceResolver) -> None:
    with pytest.raises(SecurityError, match="NUL"):
        resolver.resolve("alice", "notes.txt\x00.js")


def test_security_error_is_permission_error(resolver: WorkspaceResolver) -> None:
    with pytest.raises(PermissionError) as exc_info:
        resolver.resolve("alice", "../bob")

    assert exc_info.value.user_id == "alice"
    assert exc_info.value.path == "../bob"


def test_resolve_rejects_symlink_escape(resolver: WorkspaceResolver, tmp_path) -> None:
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "secret.txt").write_text("top secret")
    root = resolver.root_for("alice")
    os.symlink(outside, root / "link")

    with pytest.raises(SecurityError, match="symbolic link"):
        resolver.resolve("alice", "link/secret.txt")
    with pytest.raises(SecurityError):
        resolver.resolve("alice", "link/new-file.txt")


def test_resolve_allows_symlink_inside_workspace(resolver: WorkspaceResolver) -> None:
    root = resolver.root_for("alice")
    (root / "real").mkdir()
    os.symlink(root / "real", root / "alias")

    assert resolver.resolve("alice", "alias/file.txt") == root / "alias" / "file.txt"


# ---------------------------------------------------------------------------
# Isolation
# ---------------------------------------------------------------------------


def test_users_get_separate_roots(resolver: WorkspaceResolver) -> None:
    alice_root = resolver.root_for("alice")
    bob_root = resolver.root_for("bob")

    assert alice_root != bob_root
    assert alice_root.parent == bob_root.parent == resolver.base
    assert sorted(resolver.active_workspaces) == ["alice", "bob"]


def test_root_for_is_idempotent(resolver: WorkspaceResolver) -> None:
    first = resolver.root_for("alice")
    (first / "keep.txt").write_text("x")

    # A fresh resolver over the same base re-uses the existing directory.
    again = WorkspaceResolver(resolver.base).root_for("alice")

    assert again == first
    assert (again / "keep.txt").read_text() == "x"


def test_relative_to_root(resolver: WorkspaceResolver) -> None:
    path = resolver.resolve("alice", "src/app.js")
    assert resolver.relative_to_root("alice", path) == "src/app.js"

    with pytest.raises(ValueError):
        resolver.relative_to_root("alice", resolver.root_for("bob") / "x")


# ---------------------------------------------------------------------------
# User ids
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("user_id", ["", "   ", ".", "..", "a/b", "a\\b", "bad\x00id"])
def test_validate_user_id_rejects(user_id: str) -> None:
    with pytest.raises(SecurityError):
        validate_user_id(user_id)


@pytest.mark.parametrize("user_id", ["alice", "user-42", "a.b@example.com"])
def test_validate_user_id_accepts(user_id: str) -> None:
    assert validate_user_id(user_id) == user_id


def test_resolve_with_invalid_user_id(resolver: WorkspaceResolver) -> None:
    with pytest.raises(SecurityError):
        resolver.resolve("../alice", "notes.txt")
