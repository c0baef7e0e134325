"""Server command for running the autofill gateway."""

import asyncio
from pathlib import Path
from typing import Annotated

import typer


def register(app: typer.Typer) -> None:
    """Register the serve command."""

    @app.command()
    def serve(
        config: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
        host: Annotated[
            str | None,
            typer.Option(
                "--host",
                "-h",
                help="Host to bind to (default: [server] host)",
            ),
        ] = None,
        port: Annotated[
            int | None,
            typer.Option(
                "--port",
                "-p",
                help="Port to bind to (default: [server] port)",
            ),
        ] = None,
    ) -> None:
        """Start the autofill HTTP server."""
        try:
            asyncio.run(_run_server(config, host, port))
        except KeyboardInterrupt:
            # Use print here since logging may not be configured yet
            print("\nServer stopped")


async def _run_server(
    config_path: Path | None = None,
    host: str | None = None,
    port: int | None = None,
) -> None:
    """Run the server asynchronously."""
    import logging

    import uvicorn

    from autofill.config import load_config
    from autofill.logging import configure_logging
    from autofill.server.app import create_app

    config = load_config(config_path)
    configure_logging(
        level=config.logging.level,
        use_rich=True,
        log_to_file=True,
        redact_secrets=config.logging.redact_secrets,
    )
    logger = logging.getLogger(__name__)

    bind_host = host or config.server.host
    bind_port = port or config.server.port
    logger.info("Serving on http://%s:%d", bind_host, bind_port)

    uvicorn_config = uvicorn.Config(
        create_app(config),
        host=bind_host,
        port=bind_port,
        log_level="info",
        log_config=None,  # Use shared logging config, not uvicorn's
    )
    await uvicorn.Server(uvicorn_config).serve()
