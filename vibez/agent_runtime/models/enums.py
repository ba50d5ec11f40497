"""Shared enumerations used across the agent runtime."""

from __future__ import annotations

from enum import StrEnum

# -- Conversation ------------------------------------------------------------


class MessageRole(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"


# -- Tools -------------------------------------------------------------------


class ToolName(StrEnum):
    """Closed set of capabilities exposed to the model."""

    READ_FILE = "read_file"
    WRITE_FILE = "write_file"
    LIST_FILES = "list_files"
    DELETE_FILE = "delete_file"
    RUN_NODE = "run_node"
    RUN_PYTHON = "run_python"
    GIT_CONFIG = "git_config"
    GIT_CLONE = "git_clone"
    GIT_COMMAND = "git_command"
    REQUEST_APPROVAL = "request_approval"


class ToolErrorKind(StrEnum):
    """Why a tool invocation reported ``success: false``."""

    UNKNOWN_TOOL = "unknown_tool"
    VALIDATION = "validation"
    SECURITY = "security"
    IO = "io"
    TIMEOUT = "timeout"
    PROCESS = "process"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    SUBMISSION = "submission"


class EntryType(StrEnum):
    FILE = "file"
    DIRECTORY = "directory"


# -- Approval ----------------------------------------------------------------


class SubmissionErrorKind(StrEnum):
    NOT_CONFIGURED = "not_configured"
    TIMEOUT = "timeout"
    NETWORK = "network"
    HTTP_STATUS = "http_status"
    MALFORMED_RESPONSE = "malformed_response"
