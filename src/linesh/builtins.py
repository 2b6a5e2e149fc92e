# linesh — Line-Oriented Script Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Built-in commands available to every script.

Relative paths are resolved against the head of the script's directory
stack, never against the host process's working directory.
"""

from __future__ import annotations

import os
import shutil
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .kernel import ScriptContext  # pragma: no cover
    from .registry import CommandRegistry  # pragma: no cover


def _path_arg(text: str) -> str:
    path = text.strip()
    if len(path) >= 2 and path[0] == '"' and path[-1] == '"':
        path = path[1:-1]
    return path


def echo(ctx: ScriptContext, text: str) -> None:
    """Write text to standard output."""
    ctx.write(text)


def getwd(ctx: ScriptContext) -> str:
    """Print the current directory."""
    return ctx.getwd()


def cd(ctx: ScriptContext, path: str) -> None:
    """Change the current directory."""
    ctx.dirs.cd(_path_arg(path))


def pushd(ctx: ScriptContext, path: str) -> None:
    """Enter a directory, remembering the current one."""
    ctx.dirs.pushd(_path_arg(path))


def popd(ctx: ScriptContext, _: str) -> None:
    """Return to the previously pushed directory."""
    ctx.dirs.popd()


def mkdir(ctx: ScriptContext, path: str) -> None:
    """Create a directory and any missing parents."""
    os.makedirs(ctx.resolve(_path_arg(path)), mode=0o744, exist_ok=True)


def rm(ctx: ScriptContext, path: str) -> None:
    """Remove a file."""
    os.remove(ctx.resolve(_path_arg(path)))


def rmdir(ctx: ScriptContext, path: str) -> None:
    """Remove a directory tree; missing paths are ignored."""
    target = ctx.resolve(_path_arg(path))
    if os.path.isdir(target) and not os.path.islink(target):
        shutil.rmtree(target)
    elif os.path.lexists(target):
        os.remove(target)


def set_variable(ctx: ScriptContext, pair: str) -> None:
    """Set a script variable: set NAME = value"""
    name, sep, value = pair.partition("=")
    name = name.strip()
    if not sep or not name:
        raise ValueError(f"set: expected NAME=VALUE, got {pair!r}")
    ctx.variables[name] = value.strip()


# Capitalized names show up in usage listings; lookup ignores case.
BUILTINS = {
    "Echo": echo,
    "Getwd": getwd,
    "Cd": cd,
    "MkDir": mkdir,
    "Pushd": pushd,
    "Popd": popd,
    "Rm": rm,
    "RmDir": rmdir,
    "Set": set_variable,
}


def register_builtins(registry: CommandRegistry) -> None:
    """Add every built-in command to registry."""
    for name, func in BUILTINS.items():
        registry.add(name, func)
