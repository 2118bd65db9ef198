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
"""Shared Rich console for CLI output."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

SESSIONVAULT_THEME = Theme({
    "info": "cyan",
    "success": "bold green",
    "warning": "bold yellow",
    "error": "bold red",
    "vault": "bold magenta",
    "dim": "dim",
})

console = Console(theme=SESSIONVAULT_THEME)


def print_collection_table(rows: list[tuple[str, str]], title: str) -> None:
    """Print a two-column key/value summary."""
    table = Table(title=f"[vault]{title}[/vault]", border_style="dim", show_header=False)
    table.add_column("Field", style="bold", min_width=14)
    table.add_column("Value", min_width=20)
    for field, value in rows:
        table.add_row(field, value)
    console.print(table)
