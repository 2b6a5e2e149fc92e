# linesh — Line-Oriented Script Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Protocol definitions for dependency injection.

These interfaces keep the engine independent of how processes are
started, how failures are answered, and where configuration comes from.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from .errors import ScriptFailure


class Executor(Protocol):
    """Protocol for external process execution."""

    def run(
        self, argv: list[str], cwd: str, env: Mapping[str, str]
    ) -> Any:
        """Run argv to completion with inherited stdout/stderr.

        Raises:
            ProcessError: the program could not start or exited non-zero
        """
        ...


class FailurePolicy(Protocol):
    """Protocol for answering a failed script line.

    Returning normally lets the engine continue with the next line.
    Raising stops the run; the exception reaches the engine's caller.
    """

    def __call__(self, failure: ScriptFailure) -> None:
        ...


class ConfigModel(Protocol):
    """Protocol for configuration access."""

    @property
    def comment_prefixes(self) -> tuple[str, ...]:
        """Line prefixes that mark a comment."""
        ...

    @property
    def failure_policy(self) -> str:
        """Name of the default failure policy."""
        ...

    @property
    def crash_log(self) -> bool:
        """Whether fatal failures are appended to the crash log."""
        ...

    def get_path(self, path: str, default: Any = None) -> Any:
        """Dot-path lookup into the raw configuration."""
        ...
