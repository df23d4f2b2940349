"""Main CLI entry point for sqlkv."""

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from sqlkv.cli.utils import format_value, parse_value, run_command

app = typer.Typer(
    name="sqlkv",
    help="sqlkv - Redis-like key-value commands on a SQLite table",
    add_completion=False,
    invoke_without_command=True,
)
console = Console()

TableOption = typer.Option(None, "--table", "-t", help="Namespace table (default: from config)")


@app.callback()
def main(ctx: typer.Context):
    """
    sqlkv - Redis-like key-value commands on a SQLite table
    """
    if ctx.invoked_subcommand is None:
        # No subcommand was invoked, show help
        print(ctx.get_help())
        raise typer.Exit(0)


@app.command()
def init(
    path: Optional[Path] = typer.Argument(
        None, help="Directory to initialize project in (default: current directory)"
    ),
    table: str = typer.Option("kv_store", "--table", "-t", help="Namespace table name"),
):
    """Initialize a new sqlkv project."""
    from pydantic import ValidationError
    from sqlkv.config import Config

    project_path = path or Path.cwd()

    try:
        config = Config(project_path)
        config_data = config.init_project(table=table)
        typer.secho(
            f"✅ Initialized sqlkv project in {project_path}", fg=typer.colors.GREEN
        )
        typer.secho(
            f"   Database: {config_data.database}, Table: {config_data.table}",
            fg=typer.colors.CYAN,
        )
    except FileExistsError:
        typer.secho(f"❌ Project already exists in {project_path}", fg=typer.colors.RED)
        raise typer.Exit(1)
    except ValidationError as e:
        typer.secho(f"❌ Invalid table name: {e}", fg=typer.colors.RED)
        raise typer.Exit(1)


@app.command()
def get(
    key: str = typer.Argument(..., help="Key to read"),
    table: Optional[str] = TableOption,
):
    """Get the value of a key."""
    value = run_command(lambda kv: kv.get(key), table)
    console.print(format_value(value), markup=False)


@app.command(name="set")
def set_(
    key: str = typer.Argument(..., help="Key to set"),
    value: str = typer.Argument(..., help="Value (parsed as JSON when possible)"),
    ex: Optional[float] = typer.Option(None, "--ex", help="Expire after N seconds"),
    nx: bool = typer.Option(False, "--nx", help="Only set if the key does not exist"),
    table: Optional[str] = TableOption,
):
    """Set a key.

    Examples:
        sqlkv set greeting hello
        sqlkv set user:1 '{"name": "Alice"}' --ex 60
    """
    written = run_command(lambda kv: kv.set(key, parse_value(value), ex=ex, nx=nx), table)
    if written:
        console.print("[green]OK[/green]")
    else:
        console.print(f"[yellow]Key '{escape(key)}' already exists[/yellow]")


@app.command(name="del")
def delete(
    keys: List[str] = typer.Argument(..., help="Keys to delete"),
    table: Optional[str] = TableOption,
):
    """Delete one or more keys."""
    deleted = run_command(lambda kv: kv.delete(*keys), table)
    console.print(f"(integer) {deleted}")


@app.command()
def keys(
    pattern: str = typer.Argument("*", help="Glob pattern (* and ?)"),
    table: Optional[str] = TableOption,
):
    """List keys matching a pattern."""
    found = run_command(lambda kv: kv.keys(pattern), table)
    if not found:
        console.print("[dim](empty)[/dim]")
        return
    for i, key in enumerate(found, 1):
        console.print(f"{i}) {key}", markup=False)


@app.command()
def incr(
    key: str = typer.Argument(..., help="Counter key"),
    by: int = typer.Option(1, "--by", help="Amount to add"),
    table: Optional[str] = TableOption,
):
    """Increment a counter."""
    value = run_command(lambda kv: kv.incrby(key, by), table)
    console.print(f"(integer) {value}")


@app.command()
def decr(
    key: str = typer.Argument(..., help="Counter key"),
    by: int = typer.Option(1, "--by", help="Amount to subtract"),
    table: Optional[str] = TableOption,
):
    """Decrement a counter."""
    value = run_command(lambda kv: kv.decrby(key, by), table)
    console.print(f"(integer) {value}")


@app.command()
def ttl(
    key: str = typer.Argument(..., help="Key to inspect"),
    table: Optional[str] = TableOption,
):
    """Show the remaining time to live of a key."""
    value = run_command(lambda kv: kv.ttl(key), table)
    console.print(f"(integer) {value}")


@app.command()
def expire(
    key: str = typer.Argument(..., help="Key to expire"),
    seconds: float = typer.Argument(..., help="Seconds until expiry"),
    table: Optional[str] = TableOption,
):
    """Set a key to expire after a number of seconds."""
    updated = run_command(lambda kv: kv.expire(key, seconds), table)
    console.print(f"(integer) {int(updated)}")


@app.command()
def lpush(
    key: str = typer.Argument(..., help="List key"),
    value: str = typer.Argument(..., help="Value (parsed as JSON when possible)"),
    table: Optional[str] = TableOption,
):
    """Prepend a value to a list."""
    length = run_command(lambda kv: kv.lpush(key, parse_value(value)), table)
    console.print(f"(integer) {length}")


@app.command()
def rpush(
    key: str = typer.Argument(..., help="List key"),
    value: str = typer.Argument(..., help="Value (parsed as JSON when possible)"),
    table: Optional[str] = TableOption,
):
    """Append a value to a list."""
    length = run_command(lambda kv: kv.rpush(key, parse_value(value)), table)
    console.print(f"(integer) {length}")


@app.command()
def lrange(
    key: str = typer.Argument(..., help="List key"),
    start: int = typer.Argument(0, help="First index"),
    end: int = typer.Argument(-1, help="Last index (inclusive, -1 for the end)"),
    table: Optional[str] = TableOption,
):
    """Show a range of list elements."""
    items = run_command(lambda kv: kv.lrange(key, start, end), table)
    if not items:
        console.print("[dim](empty)[/dim]")
        return
    for i, item in enumerate(items, 1):
        console.print(f"{i}) {format_value(item)}", markup=False)


@app.command()
def hset(
    key: str = typer.Argument(..., help="Hash key"),
    field: str = typer.Argument(..., help="Field name"),
    value: str = typer.Argument(..., help="Value (parsed as JSON when possible)"),
    table: Optional[str] = TableOption,
):
    """Set a field in a hash."""
    run_command(lambda kv: kv.hset(key, field, parse_value(value)), table)
    console.print("[green]OK[/green]")


@app.command()
def hgetall(
    key: str = typer.Argument(..., help="Hash key"),
    table: Optional[str] = TableOption,
):
    """Show every field of a hash."""
    document = run_command(lambda kv: kv.hgetall(key), table)
    if not document:
        console.print("[dim](empty)[/dim]")
        return

    output = Table(title=escape(key))
    output.add_column("Field", style="cyan")
    output.add_column("Value")
    for field, value in document.items():
        output.add_row(escape(field), escape(format_value(value)))
    console.print(output)


@app.command()
def version():
    """Show sqlkv version."""
    from sqlkv import __version__

    typer.echo(f"sqlkv version {__version__}")


@app.command()
def status():
    """Show sqlkv configuration and environment variables."""
    import os
    from sqlkv.cli.utils import get_config_with_data

    config, config_data = get_config_with_data()

    console.print("\n[bold]sqlkv Status[/bold]")
    console.print(f"Project: {config.project_dir}")
    console.print(f"Database: {config.database_path}")
    console.print(f"Table: {config_data.table}")

    overrides = [
        name for name in ("SQLKV_PROJECT_DIR", "SQLKV_DATABASE", "SQLKV_TABLE")
        if os.environ.get(name)
    ]
    if overrides:
        console.print("\n[bold]Environment overrides[/bold]")
        for name in overrides:
            console.print(f"  {name}={os.environ[name]}")


if __name__ == "__main__":
    app()
