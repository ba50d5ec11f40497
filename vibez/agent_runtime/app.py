from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRouter
from loguru import logger
from starlette.exceptions import HTTPException

from vibez.agent_runtime.execution.approval import ApprovalGate
from vibez.agent_runtime.execution.coordinator import AgentLoop
from vibez.agent_runtime.execution.runtime import ConfigurationError, create_coding_agent
from vibez.agent_runtime.execution.sandbox import ProcessSandbox
from vibez.agent_runtime.execution.workspace import WorkspaceResolver
from vibez.agent_runtime.log import setup_logging
from vibez.agent_runtime.managers.conversations import ConversationManager
from vibez.agent_runtime.registry import TurnRegistry
from vibez.agent_runtime.settings import VibezSettings, get_settings
from vibez.agent_runtime.store import LocalSessionStore, MemorySessionStore, SessionStore
from vibez.agent_runtime.tools.base import ToolDeps
from vibez.agent_runtime.tools.registry import ToolRegistry


def _create_session_store(settings: VibezSettings) -> SessionStore:
    """Create the session store backend based on configuration."""
    if settings.session_store == "local":
        return LocalSessionStore(settings.data_root)
    return MemorySessionStore()


def _create_tool_registry(settings: VibezSettings) -> ToolRegistry:
    deps = ToolDeps(
        resolver=WorkspaceResolver(settings.workspaces_root),
        sandbox=ProcessSandbox(max_output_bytes=settings.max_output_bytes),
        approvals=ApprovalGate(
            settings.approval_api_url,
            settings.approval_api_key.get_secret_value() if settings.approval_api_key else None,
            timeout=settings.approval_timeout,
        ),
        settings=settings,
    )
    return ToolRegistry(deps)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings.log_level)

    logger.info("Agent Runtime starting (host={}, port={})", settings.host, settings.port)
    logger.info("Workspaces root: {} (store={})", settings.workspaces_root, settings.session_store)

    store = _create_session_store(settings)
    turns = TurnRegistry()
    tools = _create_tool_registry(settings)

    _app.state.settings = settings
    _app.state.turns = turns
    _app.state.conversations = ConversationManager(store, turns)
    _app.state.agent_loop = None

    if not tools.deps.approvals.configured:
        logger.warning("VIBEZ_APPROVAL_API_URL / VIBEZ_APPROVAL_API_KEY not set -- approval requests will fail")

    # -- Agent -----------------------------------------------------------------
    try:
        agent = create_coding_agent(settings, tools)
    except ConfigurationError as exc:
        logger.warning("Coding agent unavailable: {}", exc)
    else:
        _app.state.agent_loop = AgentLoop(agent, store, turns, settings)
        logger.info("Coding agent ready (model={}, tools={})", settings.model, len(tools.names()))

    yield

    # -- Shutdown --------------------------------------------------------------
    logger.info("Agent Runtime shutting down (active_turns={})", turns.active_count)

    # 1. Stop accepting new turns.
    turns.begin_shutdown()

    # 2. Wait for active turns to complete naturally.
    if turns.active_count > 0:
        timeout = settings.graceful_shutdown_timeout
        logger.info("Waiting for {} active turns to finish (timeout={}s)...", turns.active_count, timeout)
        drained = await turns.wait_until_drained(timeout=timeout)
        if not drained:
            # Last resort: force-interrupt remaining turns.
            interrupted = turns.interrupt_all()
            logger.warning("Force-interrupted {} turns after timeout", interrupted)
            await turns.wait_until_drained(timeout=5.0)


app = FastAPI(title="Vibez Agent Runtime", lifespan=lifespan)


# ---------------------------------------------------------------------------
# Error envelope -- every error is {"success": false, "error": "..."}
# ---------------------------------------------------------------------------


@app.exception_handler(HTTPException)
async def http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        where = ".".join(str(part) for part in err["loc"] if part != "body") or "body"
        problems.append(f"{where}: {err['msg']}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": "Invalid request: " + "; ".join(problems)},
    )


# ---------------------------------------------------------------------------
# API router -- all backend endpoints live under /api
# ---------------------------------------------------------------------------
api = APIRouter(prefix="/api")


@api.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


from vibez.agent_runtime.routers.agent import router as agent_router  # noqa: E402

api.include_router(agent_router)

app.include_router(api)
