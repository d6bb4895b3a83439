"""interactive-messages CLI — serve an adapter over HTTP.

Usage:
    interactive-messages serve myapp.handlers:adapter            # port 3000
    interactive-messages serve myapp.handlers:adapter -p 8080 --path /actions
    interactive-messages --version

APP_TARGET names a module attribute holding a MessageAdapter, the same
way uvicorn names an ASGI app.
"""

from __future__ import annotations

import importlib
import logging
import sys
from typing import Optional

import click

from interactive_messages import __version__
from interactive_messages.adapter import MessageAdapter
from interactive_messages.config import settings


class TargetError(click.ClickException):
    """APP_TARGET could not be resolved to a MessageAdapter."""


def load_adapter(target: str) -> MessageAdapter:
    """Resolve 'package.module:attribute' to a MessageAdapter."""
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise TargetError(f"APP_TARGET must look like 'module:attribute', got {target!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise TargetError(f"Could not import {module_name!r}: {e}")

    obj = module
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError:
            raise TargetError(f"{module_name!r} has no attribute {attr!r}")

    if not isinstance(obj, MessageAdapter):
        raise TargetError(
            f"{target!r} is a {type(obj).__name__}, expected a MessageAdapter"
        )
    return obj


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="interactive-messages")
def main():
    """interactive-messages — route interactive message callbacks to handlers."""


@main.command()
@click.argument("app_target")
@click.option("--host", "-h", default=None, help="Bind address (default from settings)")
@click.option("--port", "-p", type=int, default=None, help="Port (default from settings)")
@click.option("--path", "actions_path", default=None, help="Actions endpoint path")
@click.option("--log-level", default="info",
              type=click.Choice(["debug", "info", "warning", "error"]))
def serve(app_target: str, host: Optional[str], port: Optional[int],
          actions_path: Optional[str], log_level: str):
    """Serve the adapter named by APP_TARGET (module:attribute)."""
    import uvicorn

    from interactive_messages.main import create_app

    # Resolve targets relative to the working directory, like uvicorn
    if "" not in sys.path:
        sys.path.insert(0, "")

    adapter = load_adapter(app_target)
    try:
        app = create_app(adapter, actions_path=actions_path)
    except ValueError as e:
        raise click.ClickException(str(e))

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    bind_host = host or settings.host
    bind_port = port or settings.port
    click.secho(
        f"Serving {app_target} on http://{bind_host}:{bind_port}"
        f"{actions_path or settings.actions_path}",
        fg="green",
    )
    uvicorn.run(app, host=bind_host, port=bind_port, log_level=log_level)


if __name__ == "__main__":
    main()
