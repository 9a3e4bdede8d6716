"""Path and server settings, resolved from arguments and the environment."""

import os
from pathlib import Path

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000


def get_openspec_path(path: str | None = None) -> Path:
    """Return the OpenSpec root to serve.

    Order: explicit argument, ``OPENSPEC_VIEWER_PATH``, then ``./openspec``
    if it exists, else the current directory.
    """
    if path:
        return Path(path).expanduser().resolve()

    env = os.environ.get("OPENSPEC_VIEWER_PATH")
    if env:
        return Path(env).expanduser().resolve()

    cwd = Path.cwd()
    if (cwd / "openspec").is_dir():
        return (cwd / "openspec").resolve()
    return cwd.resolve()


def get_host() -> str:
    return os.environ.get("OPENSPEC_VIEWER_HOST", DEFAULT_HOST)


def get_port() -> int:
    env = os.environ.get("OPENSPEC_VIEWER_PORT")
    if env:
        try:
            return int(env)
        except ValueError:
            raise ValueError(f"OPENSPEC_VIEWER_PORT must be an integer, got {env!r}")
    return DEFAULT_PORT
