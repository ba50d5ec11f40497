"""Model adapter -- builds the pydantic-ai ``Agent`` from settings and tools.

This module is the bridge between the tool registry and pydantic-ai.  It
translates:

- ``ToolSpec`` -> ``pydantic_ai.Tool`` (schema from the spec's parameter
  model, execution routed back through ``ToolRegistry.invoke``)
- ``VibezSettings`` -> model identifier + ``ModelSettings``
- tool specs -> rendered instructions

The returned agent is stateless; conversation history and the per-user
``ToolContext`` are supplied on every run by the coordinator.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any

from pydantic_ai import Agent, ModelSettings, RunContext, Tool
from pydantic_ai.exceptions import UserError

from vibez.agent_runtime.context import ToolContext
from vibez.agent_runtime.execution.prompt import render_system_prompt

if TYPE_CHECKING:
    from pydantic_ai.models import Model

    from vibez.agent_runtime.settings import VibezSettings
    from vibez.agent_runtime.tools.base import ToolSpec
    from vibez.agent_runtime.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

AGENT_NAME = "vibez-coding-agent"

# Environment variable holding the credential for each model provider prefix.
PROVIDER_API_KEYS: dict[str, str] = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "google-gla": "GEMINI_API_KEY",
    "groq": "GROQ_API_KEY",
    "mistral": "MISTRAL_API_KEY",
}


class ConfigurationError(RuntimeError):
    """The agent cannot be constructed (e.g. missing provider credential)."""


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


def provider_of(model_name: str) -> str | None:
    """Provider prefix of a ``provider:model`` identifier."""
    provider, sep, _ = model_name.partition(":")
    return provider if sep else None


def api_key_configured(model_name: str) -> bool:
    """Whether the credential required by *model_name* is present.

    Providers without an entry in ``PROVIDER_API_KEYS`` (e.g. ``test``) need
    none.
    """
    env_var = PROVIDER_API_KEYS.get(provider_of(model_name) or "")
    return env_var is None or bool(os.environ.get(env_var))


def check_model_credentials(model_name: str) -> None:
    """Raise ``ConfigurationError`` if the provider credential is missing."""
    provider = provider_of(model_name) or ""
    if not api_key_configured(model_name):
        msg = f"{PROVIDER_API_KEYS[provider]} environment variable is required for model '{model_name}'"
        raise ConfigurationError(msg)


# ---------------------------------------------------------------------------
# Tool mapping
# ---------------------------------------------------------------------------


def _bind_tool(registry: ToolRegistry, spec: ToolSpec) -> Tool[ToolContext]:
    """Expose one registry entry as a pydantic-ai tool.

    Arguments are validated by the registry (against ``spec.params``), so
    pydantic-ai only needs the declared JSON schema.
    """

    async def call(ctx: RunContext[ToolContext], **arguments: Any) -> dict[str, Any]:
        result = await registry.invoke(spec.name.value, arguments, ctx.deps)
        return result.to_payload()

    return Tool.from_schema(
        call,
        name=spec.name.value,
        description=spec.description,
        json_schema=spec.json_schema(),
        takes_ctx=True,
    )


def build_tools(registry: ToolRegistry) -> list[Tool[ToolContext]]:
    return [_bind_tool(registry, spec) for spec in registry.specs()]


# ---------------------------------------------------------------------------
# Model mapping
# ---------------------------------------------------------------------------


def resolve_model_settings(settings: VibezSettings) -> ModelSettings:
    return ModelSettings(
        temperature=settings.model_temperature,
        max_tokens=settings.model_max_tokens,
    )


# ---------------------------------------------------------------------------
# Agent factory
# ---------------------------------------------------------------------------


def create_coding_agent(
    settings: VibezSettings,
    registry: ToolRegistry,
    *,
    model: Model | str | None = None,
) -> Agent[ToolContext, str]:
    """Create the coding agent.

    Parameters
    ----------
    settings:
        Service settings (model identifier, sampling, prompt template).
    registry:
        Tool registry whose tools are exposed to the model.
    model:
        Explicit model instance (tests pass a ``FunctionModel``).  When
        omitted, ``settings.model`` is used and its provider credential must
        be present.

    Raises
    ------
    ConfigurationError
        If the model cannot be constructed, typically because the provider
        API key is not set.
    """
    if model is None:
        check_model_credentials(settings.model)
        model = settings.model

    model_name = model if isinstance(model, str) else model.model_name
    instructions = render_system_prompt(
        registry.specs(),
        model_name=model_name,
        template=settings.system_prompt,
    )

    try:
        agent = Agent(
            model,
            deps_type=ToolContext,
            output_type=str,
            instructions=instructions,
            tools=build_tools(registry),
            model_settings=resolve_model_settings(settings),
            name=AGENT_NAME,
        )
    except UserError as exc:
        raise ConfigurationError(str(exc)) from exc

    logger.info("Created coding agent: model=%s, tools=%d", model_name, len(registry.specs()))
    return agent
