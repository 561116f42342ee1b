"""ProjectPulse CLI — watch live events, poke the REST API.

Usage:
    projectpulse watch                      # stream toasts + connection state
    projectpulse get /api/projects          # one GET, pretty-printed
    projectpulse get /api/tasks -p storyId=s1

Configuration comes from PROJECTPULSE_* env vars (see projectpulse.config);
--api-url and --token override them per invocation.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import sys
from typing import Optional

import click

from projectpulse import __version__
from projectpulse.api.client import ApiClient, ApiError
from projectpulse.config import Settings
from projectpulse.log import configure_logging
from projectpulse.realtime.connection import ConnectionState
from projectpulse.realtime.notifications import Toast
from projectpulse.session import RealtimeSession

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _settings(api_url: Optional[str], token: Optional[str]) -> Settings:
    overrides = {}
    if api_url:
        overrides["api_url"] = api_url
    if token:
        overrides["auth_token"] = token
    return Settings(**overrides)


def _pretty_json(data) -> str:
    return json.dumps(data, indent=2, default=str)


_VARIANT_COLORS = {
    "default": "white",
    "success": "green",
    "destructive": "red",
}

_STATE_COLORS = {
    ConnectionState.CONNECTED: "green",
    ConnectionState.CONNECTING: "yellow",
    ConnectionState.DISCONNECTED: "red",
}


class EchoNotifier:
    """Prints each toast on its own line."""

    def notify(self, toast: Toast) -> None:
        click.secho(f"● {toast.title}", fg=_VARIANT_COLORS.get(toast.variant, "white"), bold=True)
        click.echo(f"  {toast.description}")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="projectpulse")
@click.option("--api-url", envvar="PROJECTPULSE_API_URL", help="REST base URL")
@click.option("--token", envvar="PROJECTPULSE_AUTH_TOKEN", help="Bearer token")
@click.option("--log-level", default=None, help="Log level (default from settings)")
@click.pass_context
def main(ctx, api_url: Optional[str], token: Optional[str], log_level: Optional[str]):
    """ProjectPulse: live cache-invalidation client for the project API."""
    settings = _settings(api_url, token)
    configure_logging(log_level or settings.log_level, json=settings.log_json)
    ctx.obj = settings


# ---------------------------------------------------------------------------
# projectpulse watch
# ---------------------------------------------------------------------------


@main.command()
@click.pass_obj
def watch(settings: Settings):
    """Connect to the event stream and print every change as it happens."""
    click.echo(f"Watching {settings.websocket_url} (Ctrl-C to stop)")
    try:
        _run(_watch_impl(settings))
    except KeyboardInterrupt:
        click.echo("Stopped.")


async def _watch_impl(settings: Settings) -> None:
    session = RealtimeSession(settings=settings, notifier=EchoNotifier())
    session.connection.add_state_listener(
        lambda state: click.secho(f"[{state.value}]", fg=_STATE_COLORS[state], dim=True)
    )
    async with session:
        await asyncio.Event().wait()


# ---------------------------------------------------------------------------
# projectpulse get
# ---------------------------------------------------------------------------


@main.command()
@click.argument("path")
@click.option("--param", "-p", multiple=True, help="Query parameter as key=value")
@click.pass_obj
def get(settings: Settings, path: str, param: tuple[str, ...]):
    """GET PATH from the REST API and print the JSON body."""
    params = {}
    for item in param:
        key, sep, value = item.partition("=")
        if not sep:
            raise click.BadParameter(f"expected key=value, got {item!r}", param_hint="--param")
        params[key] = value

    try:
        data = _run(_get_impl(settings, path, params))
    except ApiError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)
    click.echo(_pretty_json(data))


async def _get_impl(settings: Settings, path: str, params: dict):
    async with ApiClient(
        settings.api_url,
        token=settings.auth_token,
        timeout=settings.request_timeout_seconds,
    ) as client:
        return await client.get(path, params=params or None)


if __name__ == "__main__":
    main()
