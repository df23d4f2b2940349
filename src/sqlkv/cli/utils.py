"""Utility functions for CLI commands."""

import asyncio
import json
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Tuple, TypeVar

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from sqlkv.config import Config, ProjectConfig
from sqlkv.core.codec import MISSING
from sqlkv.core.database import connect
from sqlkv.managers.kv import KVManager

console = Console()

T = TypeVar("T")


def get_config_with_data(project_dir: Optional[Path] = None) -> Tuple[Config, ProjectConfig]:
    """Get config and load data from the project directory.

    Returns:
        tuple: (config, config_data)
    """
    config = Config(project_dir)
    try:
        config_data = config.load()
    except FileNotFoundError:
        console.print("[red]❌ Config file not found. Run 'sqlkv init' first.[/red]")
        raise typer.Exit(1)
    except ValidationError as e:
        console.print(f"[red]❌ Invalid configuration: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    return config, config_data


def run_command(
    command: Callable[[KVManager], Awaitable[T]],
    table: Optional[str] = None,
) -> T:
    """Open the project's KV namespace, run ``command`` on it and close it."""
    config, config_data = get_config_with_data()

    async def runner() -> T:
        async with connect(config.database_path, table=table or config_data.table) as kv:
            return await command(kv)

    try:
        return asyncio.run(runner())
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]❌ Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)


def parse_value(text: str) -> Any:
    """Parse a command line value as JSON, falling back to the raw string."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def format_value(value: Any) -> str:
    """Render a decoded value for display."""
    if value is MISSING:
        return "(nil)"
    return json.dumps(value, ensure_ascii=False)
