# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""'sessionvault collect' and 'sessionvault offset' — reclamation from cron or a job runner."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import click
from rich.markup import escape

from sessionvault.cli.console import console, print_collection_table
from sessionvault.config.properties import SessionProperties
from sessionvault.core.config import Config
from sessionvault.kernel.exceptions import SessionVaultException
from sessionvault.logging import configure_logging
from sessionvault.session.adapters.sqlalchemy import create_backend
from sessionvault.session.reclaimer import CollectionResult, ReplicaSkewedReclaimer, offset_for


def _seconds(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.1f}"


async def _collect(config: Config, max_lifetime: int) -> CollectionResult:
    async with create_backend(config) as backend:
        return await ReplicaSkewedReclaimer(backend).collect(max_lifetime)


@click.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="YAML or TOML configuration file.",
)
@click.option(
    "--profile",
    "profiles",
    multiple=True,
    help="Overlay {config-stem}-PROFILE{suffix} next to --config. Repeatable.",
)
@click.option("--url", default=None, help="SQLAlchemy async URL (overrides sessionvault.session.url).")
@click.option("--table", "table_name", default=None, help="Session table name.")
@click.option(
    "--max-lifetime",
    type=click.IntRange(min=0),
    default=None,
    help="Session lifetime in seconds (defaults to sessionvault.session.max-lifetime).",
)
def collect_command(
    config_path: Path | None,
    profiles: tuple[str, ...],
    url: str | None,
    table_name: str | None,
    max_lifetime: int | None,
) -> None:
    """Delete sessions older than the replica-adjusted cutoff."""
    config = Config.from_file(config_path, profiles=profiles)
    overrides: dict[str, Any] = {}
    if url:
        overrides["url"] = url
    if table_name:
        overrides["table-name"] = table_name
    if overrides:
        config = config.merged({"sessionvault": {"session": overrides}})

    try:
        configure_logging(config)
        lifetime = max_lifetime if max_lifetime is not None else config.bind(SessionProperties).max_lifetime
    except ValueError as exc:
        console.print(f"[error]✗[/error] Invalid configuration: {escape(str(exc))}")
        raise SystemExit(2) from None

    try:
        result = asyncio.run(_collect(config, lifetime))
    except SessionVaultException as exc:
        console.print(f"[error]✗[/error] Collection aborted: {escape(str(exc))}")
        raise SystemExit(1) from None

    print_collection_table(
        [
            ("server id", str(result.server_id)),
            ("max lifetime", f"{lifetime}s"),
            ("replica offset", f"{_seconds(result.offset)}s"),
            ("cutoff", _seconds(result.cutoff)),
            ("deleted", str(result.deleted)),
        ],
        title="Session collection",
    )
    console.print(f"[success]✓[/success] Deleted {result.deleted} expired session(s).")


@click.command()
@click.option("--server-id", type=int, required=True, help="Replica/server id of the database.")
@click.option("--max-lifetime", type=click.IntRange(min=0), required=True, help="Session lifetime in seconds.")
def offset_command(server_id: int, max_lifetime: int) -> None:
    """Show how far a replica pushes its reclamation cutoff into the past."""
    offset = offset_for(server_id, max_lifetime)
    console.print(_seconds(offset))
