"""CLI entry point for openspec-viewer."""

import logging
import threading
import time

import click
import uvicorn

from . import __version__
from .config import get_host, get_openspec_path, get_port
from .server import create_app


def open_when_started(server: uvicorn.Server, url: str, interval: float = 0.1) -> None:
    """Open ``url`` in the browser once uvicorn is accepting connections."""
    while not server.started:
        if server.should_exit:
            return
        time.sleep(interval)
    click.launch(url)


@click.command()
@click.argument("path", required=False)
@click.option("--port", "-p", type=int, default=None, help="Port to serve on.")
@click.option("--host", default=None, help="Host to bind to.")
@click.option("--open/--no-open", "open_browser", default=True, help="Open the browser on start.")
@click.option("--watch/--no-watch", default=True, help="Reload when files change.")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default="info",
    help="Logging verbosity.",
)
@click.version_option(__version__)
def main(path, port, host, open_browser, watch, log_level):
    """Browse the OpenSpec directory at PATH in your browser."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    openspec_path = get_openspec_path(path)
    if not openspec_path.exists():
        raise click.ClickException(f"{openspec_path} does not exist")
    if not openspec_path.is_dir():
        raise click.ClickException(f"{openspec_path} is not a directory")

    host = host or get_host()
    try:
        port = port or get_port()
    except ValueError as e:
        raise click.ClickException(str(e))

    url = f"http://{host}:{port}"
    click.echo(f"Starting openspec-viewer on {url}")
    click.echo(f"Path: {openspec_path}")

    app = create_app(openspec_path, watch=watch)
    server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_level=log_level))

    if open_browser:
        threading.Thread(target=open_when_started, args=(server, url), daemon=True).start()

    server.run()
