import click


@click.group()
def main() -> None:
    """Vibez - Coding agent service with per-user sandboxed workspaces."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: from VIBEZ_HOST or 0.0.0.0).")
@click.option("--port", default=None, type=int, help="Bind port (default: from VIBEZ_PORT or 3000).")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development.")
def agent(host: str | None, port: int | None, reload: bool) -> None:
    """Start the Agent Runtime server."""
    import uvicorn

    from vibez.agent_runtime.settings import VibezSettings

    settings = VibezSettings()

    uvicorn.run(
        "vibez.agent_runtime.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own logging is intercepted by loguru
        # In-flight turns get the drain timeout plus a short buffer.
        timeout_graceful_shutdown=settings.graceful_shutdown_timeout + 60,
    )


if __name__ == "__main__":
    main()
