"""Bounded subprocess execution.

``ProcessSandbox.run`` spawns an argv list (never a shell string) with a
working directory, an environment and a wall-clock timeout, and captures
stdout / stderr / exit status.

- A non-zero exit code is a normal, observed outcome and is returned.
- Failing to spawn raises ``ProcessError``.
- Exceeding the timeout kills the whole process group, reaps it and raises
  ``SandboxTimeoutError``.  The same kill happens when the awaiting task is
  cancelled, so no process outlives the call.

Each child is started in its own session (``start_new_session=True``), which
makes its pid the process-group id; ``os.killpg`` then reaches grandchildren
spawned by the script as well.  POSIX only.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024
DEFAULT_LANG = "C.UTF-8"
GIT_NETWORK_PROTOCOLS = "https:http:ssh:git"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ProcessError(RuntimeError):
    """The sandbox could not run the command (spawn or I/O failure)."""

    def __init__(self, message: str, *, command: Sequence[str] | None = None) -> None:
        super().__init__(message)
        self.command = list(command or [])


class SandboxTimeoutError(TimeoutError):
    """The command exceeded its time budget and was killed."""

    def __init__(self, command: Sequence[str], timeout: float, pid: int) -> None:
        super().__init__(f"Command timed out after {timeout:g}s and was terminated: {command[0]}")
        self.command = list(command)
        self.timeout = timeout
        self.pid = pid


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass
class ProcessOutput:
    """Captured outcome of a finished process."""

    stdout: str
    stderr: str
    exit_code: int
    duration_ms: int = 0
    truncated: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------


def workspace_env(root: Path, extra: Mapping[str, str] | None = None) -> dict[str, str]:
    """Minimal environment for processes run on behalf of a workspace.

    Nothing from the service environment is inherited except ``PATH``, so
    model / approval credentials never reach user code.  ``HOME`` and the git
    global config both point into the workspace, which scopes ``git config
    --global`` to that user.

    Git stops its repository search at the workspace root
    (``GIT_CEILING_DIRECTORIES`` is the root's parent), so a folder that is not
    a repository never picks up one that encloses the workspaces directory.
    Only network transports are allowed, which keeps ``clone`` and ``fetch``
    from reading local repositories on the host.
    """
    env = {
        "PATH": os.environ.get("PATH", os.defpath),
        "LANG": DEFAULT_LANG,
        "HOME": str(root),
        "GIT_CONFIG_GLOBAL": str(root / ".gitconfig"),
        "GIT_CONFIG_NOSYSTEM": "1",
        "GIT_TERMINAL_PROMPT": "0",
        "GIT_CEILING_DIRECTORIES": str(root.parent),
        "GIT_ALLOW_PROTOCOL": GIT_NETWORK_PROTOCOLS,
    }
    if extra:
        env.update(extra)
    return env


# ---------------------------------------------------------------------------
# Sandbox
# ---------------------------------------------------------------------------


class ProcessSandbox:
    """Runs external commands with a timeout and an output cap."""

    def __init__(self, *, max_output_bytes: int = 1_000_000) -> None:
        self.max_output_bytes = max_output_bytes

    async def run(
        self,
        command: Sequence[str],
        *,
        cwd: str | Path,
        timeout: float,
        env: Mapping[str, str] | None = None,
    ) -> ProcessOutput:
        if not command:
            raise ProcessError("Empty command")

        start = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(cwd),
                env=dict(env) if env is not None else None,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as exc:
            raise ProcessError(f"Failed to start {command[0]}: {exc}", command=command) from exc

        logger.debug("Sandbox: started pid=%d cmd=%s cwd=%s timeout=%.1fs", proc.pid, command[0], cwd, timeout)

        try:
            async with asyncio.timeout(timeout):
                (stdout, out_cut), (stderr, err_cut) = await asyncio.gather(
                    _drain(proc.stdout, self.max_output_bytes),
                    _drain(proc.stderr, self.max_output_bytes),
                )
                exit_code = await proc.wait()
        except TimeoutError:
            await _kill(proc)
            logger.warning("Sandbox: pid=%d killed after %.1fs timeout (%s)", proc.pid, timeout, command[0])
            raise SandboxTimeoutError(command, timeout, proc.pid) from None
        except asyncio.CancelledError:
            await _kill(proc)
            raise
        except OSError as exc:
            await _kill(proc)
            raise ProcessError(f"I/O error while running {command[0]}: {exc}", command=command) from exc

        duration_ms = int((time.monotonic() - start) * 1000)
        logger.debug("Sandbox: pid=%d exited with %d in %dms", proc.pid, exit_code, duration_ms)
        return ProcessOutput(
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            exit_code=exit_code,
            duration_ms=duration_ms,
            truncated=out_cut or err_cut,
        )


async def _drain(stream: asyncio.StreamReader | None, limit: int) -> tuple[bytes, bool]:
    """Read *stream* to EOF, keeping at most *limit* bytes."""
    if stream is None:
        return b"", False
    kept = bytearray()
    truncated = False
    while chunk := await stream.read(_CHUNK_SIZE):
        room = limit - len(kept)
        if room > 0:
            kept.extend(chunk[:room])
        if len(chunk) > room:
            truncated = True
    return bytes(kept), truncated


async def _kill(proc: asyncio.subprocess.Process) -> None:
    """SIGKILL the process group of *proc* and reap it."""
    with contextlib.suppress(ProcessLookupError, PermissionError):
        os.killpg(proc.pid, signal.SIGKILL)
    with contextlib.suppress(ProcessLookupError):
        proc.kill()
    await asyncio.shield(proc.wait())
