"""Execution pipeline for the agent runtime.

This package contains the core execution components:

- **workspace**: Per-user workspace resolution and path confinement
- **sandbox**: Subprocess execution with timeout, output cap and group kill
- **approval**: Approval service client (fire-and-forget submission)
- **prompt**: System prompt rendering (Jinja2 templates)
- **runtime**: Model adapter (settings + tool registry -> pydantic-ai Agent)
- **coordinator**: Turn orchestration (lock -> history -> run -> append)
"""
