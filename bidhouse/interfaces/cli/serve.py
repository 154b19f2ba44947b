"""Run the HTTP/WebSocket API with uvicorn."""

from __future__ import annotations

import click
import uvicorn


@click.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, type=int, show_default=True)
@click.option("--reload", is_flag=True, help="Reload on code changes.")
@click.option("--log-level", default="info", show_default=True)
def serve(host: str, port: int, reload: bool, log_level: str) -> None:
    """Start the Bidhouse API server."""

    uvicorn.run(
        "bidhouse.app.api:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )
