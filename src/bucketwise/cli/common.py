"""Shared CLI utilities - colors, console, helpers."""

import asyncio
import json
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from rich.console import Console
from rich.table import Table

# Palette
ELECTRIC_PURPLE = "#e135ff"
NEON_CYAN = "#80ffea"
CORAL = "#ff6ac1"
ELECTRIC_YELLOW = "#f1fa8c"
SUCCESS_GREEN = "#50fa7b"
ERROR_RED = "#ff6363"

# Shared console instance (for styled output only, NOT for JSON)
console = Console()


def print_json(data: object) -> None:
    """Print JSON to stdout without Rich formatting.

    Rich wraps long lines at terminal width, which breaks JSON parsing.
    """
    print(json.dumps(data, indent=2, default=str, ensure_ascii=False))


def success(message: str) -> None:
    """Print a success message."""
    console.print(f"[{SUCCESS_GREEN}]✓[/{SUCCESS_GREEN}] {message}")


def error(message: str) -> None:
    """Print an error message."""
    console.print(f"[{ERROR_RED}]✗[/{ERROR_RED}] {message}")


def info(message: str) -> None:
    """Print an info message."""
    console.print(f"[{NEON_CYAN}]→[/{NEON_CYAN}] {message}")


def create_table(title: str | None = None, *columns: str) -> Table:
    """Create a styled table."""
    table = Table(title=title, border_style=NEON_CYAN)
    for i, col in enumerate(columns):
        table.add_column(col, style=ELECTRIC_PURPLE if i == 0 else NEON_CYAN)
    return table


def format_role(role: str) -> str:
    color = CORAL if role == "user" else NEON_CYAN
    return f"[{color}]{role}[/{color}]"


def truncate(text: str, max_length: int = 50) -> str:
    """Truncate text with ellipsis if too long."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


P = ParamSpec("P")
R = TypeVar("R")


def run_async(func: Callable[P, Awaitable[R]]) -> Callable[P, R]:
    """Decorator to run async functions in sync context (for Typer commands)."""

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        return asyncio.run(func(*args, **kwargs))

    return wrapper
