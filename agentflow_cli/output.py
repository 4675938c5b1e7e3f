"""Output formatting utilities."""

import json
from typing import Any, Dict

import click
import yaml
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

console = Console()


def format_output(data: Any, format_type: str = "json") -> None:
    """Print data as JSON or YAML."""
    if format_type == "yaml":
        print_yaml(data)
    else:
        print_json(data)


def _print_code(text: str, lexer: str) -> None:
    # Plain text when piped so the output stays machine readable
    if console.is_terminal:
        console.print(Syntax(text, lexer, theme="monokai", line_numbers=False))
    else:
        click.echo(text)


def print_json(data: Any) -> None:
    """Print data as formatted JSON."""
    _print_code(json.dumps(data, indent=2, default=str), "json")


def print_yaml(data: Any) -> None:
    """Print data as formatted YAML."""
    _print_code(yaml.dump(data, default_flow_style=False, sort_keys=False).rstrip("\n"), "yaml")


def print_headers(headers: Dict[str, str], title: str = "Signed Headers") -> None:
    """Print request headers as a two-column table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Header")
    table.add_column("Value", overflow="fold")
    for name, value in headers.items():
        table.add_row(name, value)
    console.print(table)


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {escape(message)}", soft_wrap=True)


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]✗[/red] {escape(message)}", soft_wrap=True)


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]![/yellow] {escape(message)}", soft_wrap=True)


def print_block(text: str) -> None:
    """Print multi-line plain text without markup or wrapping."""
    console.print(text, markup=False, highlight=False, soft_wrap=True)
