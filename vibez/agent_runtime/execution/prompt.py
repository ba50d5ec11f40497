"""System prompt rendering with Jinja2 template support.

The agent instructions are a Jinja2 template.  The built-in template below
can be replaced with ``VIBEZ_SYSTEM_PROMPT``; both are rendered with:

- ``tools``            : list[ToolSpec] -- tools exposed to the model
- ``tool_names``       : list[str]      -- their names
- ``approval_enabled`` : bool           -- whether request_approval is offered
- ``model_name``       : str            -- model identifier
- ``date``             : str            -- current date (YYYY-MM-DD)
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import jinja2

from vibez.agent_runtime.models.enums import ToolName

if TYPE_CHECKING:
    from collections.abc import Sequence

    from vibez.agent_runtime.tools.base import ToolSpec

DEFAULT_SYSTEM_PROMPT = """\
You are a senior full-stack engineer with access to a user's isolated workspace.
Today is {{ date }}.

Your capabilities:
{% for tool in tools %}- {{ tool.name }}: {{ tool.description }}
{% endfor %}
Best practices:
1. Check whether a file exists with list_files before reading it.
2. Explain what you are doing step by step.
3. When writing code, follow best practices and include comments.
4. Test your code by running it when appropriate.
5. Be helpful, clear, and concise in your responses.

All paths are relative to the workspace root. Each user has their own isolated
workspace; you can only access files within the current user's workspace.
{% if approval_enabled %}
**IMPORTANT - When to request approval:**
- Before deleting multiple files or important files
- Before running potentially destructive commands
- Before making significant changes to critical files
- When deploying or publishing code
- Any action that could have major consequences

Use the request_approval tool to get explicit user confirmation. It only submits
the request; tell the user to approve it and wait for them to confirm in chat.
If submission fails, tell the user instead of proceeding.
{% endif %}"""


def render_system_prompt(
    tools: Sequence[ToolSpec],
    *,
    model_name: str,
    template: str | None = None,
    extra_vars: dict[str, object] | None = None,
) -> str:
    """Render the agent instructions.

    Parameters
    ----------
    tools:
        Tool specs exposed to the model.
    model_name:
        Model identifier, available to the template.
    template:
        Jinja2 template; ``DEFAULT_SYSTEM_PROMPT`` when ``None``.
    extra_vars:
        Additional template variables (override defaults on conflict).

    Returns
    -------
    str
        The rendered instructions.  A template without Jinja2 syntax is
        returned unchanged.
    """
    raw = template if template is not None else DEFAULT_SYSTEM_PROMPT

    # Fast path: skip Jinja2 if no template syntax detected
    if "{{" not in raw and "{%" not in raw:
        return raw

    template_vars: dict[str, object] = {
        "tools": list(tools),
        "tool_names": [t.name.value for t in tools],
        "approval_enabled": any(t.name == ToolName.REQUEST_APPROVAL for t in tools),
        "model_name": model_name,
        "date": datetime.now(tz=UTC).strftime("%Y-%m-%d"),
    }
    if extra_vars:
        template_vars.update(extra_vars)

    env = jinja2.Environment(autoescape=False, undefined=jinja2.StrictUndefined)  # noqa: S701
    return env.from_string(raw).render(**template_vars)
