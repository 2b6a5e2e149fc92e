# linesh — Line-Oriented Script Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Usage listing and command-line menu.

Embedding programs register their commands and call menu(): with no
arguments it prints the visible commands, otherwise it runs the
arguments as one script line.
"""

from __future__ import annotations

import sys
from collections.abc import Callable

from .config import ANSI_COLORS
from .kernel import Engine
from .registry import CommandRegistry
from .utils import format_table

DEFAULT_TITLE = "Usage: linesh [command] [args...]"


def format_usage(
    registry: CommandRegistry,
    title: str = DEFAULT_TITLE,
    color: bool = False,
) -> str:
    """Render visible commands with their parameters and summaries."""
    rows: list[list[str]] = []
    for entry in registry.entries():
        if not entry.visible:
            continue
        params = " ".join(f"[{p}]" for p in entry.param_names)
        usage = f"{entry.name} {params}".rstrip()
        if color:
            usage = f"{ANSI_COLORS['cyan']}{usage}{ANSI_COLORS['reset']}"
        rows.append([usage, entry.summary])

    if not rows:
        return f"{title}\n    No commands found!"

    table = format_table(["Command", "Description"], rows)
    lines = [title]
    lines.extend("    " + line for line in table.split("\n"))
    return "\n".join(lines)


def show_usage(
    registry: CommandRegistry,
    title: str = DEFAULT_TITLE,
    output_fn: Callable[[str], None] = print,
) -> None:
    output_fn(format_usage(registry, title))


def menu(
    registry: CommandRegistry,
    args: list[str] | None = None,
    engine: Engine | None = None,
    title: str = DEFAULT_TITLE,
    output_fn: Callable[[str], None] = print,
) -> None:
    """Print usage when there are no arguments, else run them as a line.

    Args:
        registry: commands available to the line (and listed in usage)
        args: command-line arguments (default: sys.argv[1:])
        engine: engine to run with (default: Engine(registry=registry))
        title: usage heading
        output_fn: where usage text goes
    """
    if args is None:
        args = sys.argv[1:]
    if not args:
        show_usage(registry, title, output_fn)
        return
    if engine is None:
        engine = Engine(registry=registry)
    engine.run(" ".join(args))
