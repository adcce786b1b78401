"""Command-line entrypoint.

``bifrost get query='[[Category:Psychoactive substance]]' limit=10`` runs one
query through the connector and prints the decoded JSON body to stdout.
"""

from __future__ import annotations

import asyncio
import json

import click

from bifrost import __version__
from bifrost.app import lifespan, run_query
from bifrost.config import Settings
from bifrost.errors import BifrostError


def _parse_parameters(pairs: tuple[str, ...]) -> dict[str, str]:
    parameters: dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="PARAMS")
        parameters[name] = value
    return parameters


async def _get(settings: Settings, parameters: dict[str, str]) -> object:
    async with lifespan(settings) as state:
        return await run_query(state, parameters)


@click.group()
@click.version_option(__version__, prog_name="bifrost")
def main() -> None:
    """Caching connector for the PsychonautWiki API."""


@main.command("get")
@click.argument("params", nargs=-1)
@click.option("--pretty/--compact", default=True, help="Indent the JSON output.")
def get_command(params: tuple[str, ...], pretty: bool) -> None:
    """Fetch one query, given as KEY=VALUE parameters."""
    parameters = _parse_parameters(params)
    settings = Settings()

    try:
        body = asyncio.run(_get(settings, parameters))
    except BifrostError as exc:
        click.echo(json.dumps(exc.to_dict()), err=True)
        raise SystemExit(1) from exc

    click.echo(json.dumps(body, indent=2 if pretty else None, ensure_ascii=False))


if __name__ == "__main__":
    main()
