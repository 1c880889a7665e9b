"""Operator-facing console output."""
from datetime import datetime

from rich.console import Console

# Markup is disabled so that literal "[skip]" style markers print as-is.
console = Console(markup=False, highlight=False, soft_wrap=True)
err_console = Console(stderr=True, markup=False, highlight=False, soft_wrap=True)


def step(message: str) -> None:
    """Timestamped progress line."""
    console.print(f"[{datetime.now():%Y-%m-%d %H:%M:%S}] {message}", style="bold green")


def info(message: str = "") -> None:
    console.print(message)


def warn(message: str) -> None:
    console.print(message, style="yellow")


def error(message: str) -> None:
    err_console.print(f"ERROR: {message}", style="bold red")


def success(message: str) -> None:
    console.print(f"✔ {message}", style="green")
