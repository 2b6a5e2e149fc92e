# linesh — Line-Oriented Script Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Failure policies for linesh.

The engine wraps every failed line in a ScriptFailure and hands it to
exactly one policy. The engine never decides to stop by itself:

- ExitProcess:      report, write the crash log, exit the host process
- AbortScript:      raise the failure out of Engine.run()
- ContinueRunning:  report and go on with the next line
- FailureCollector: remember the failure and go on
"""

from __future__ import annotations

import sys
import traceback
from collections.abc import Callable
from datetime import datetime

from . import config as cfg_module
from .errors import ScriptFailure


def write_crash_log(
    error: BaseException,
    line_number: int | None = None,
    line: str = "",
) -> None:
    """Write an entry to the crash log.

    Only creates the log directory when actually needed.
    Appends to crash.log (never overwrites).
    """
    try:
        crash_log = cfg_module.crash_log_path(cfg_module.get_data_root())
        crash_log.parent.mkdir(parents=True, exist_ok=True)

        lines = [f"{datetime.now().isoformat()}"]
        if line_number is not None:
            lines.append(f"line={line_number}")
        if line:
            lines.append(f"raw={line}")
        lines.append(f"error={type(error).__name__}: {error}")
        lines.append("traceback:")
        lines.append(
            "".join(
                traceback.format_exception(
                    type(error), error, error.__traceback__
                )
            ).rstrip()
        )
        lines.append("----")

        with crash_log.open("a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")

    except Exception:
        # If we can't write the crash log, fail silently
        # (we're already in an error state)
        pass


def _stderr_writer(text: str) -> None:
    print(text, file=sys.stderr)


class ExitProcess:
    """Report the failure and terminate the host process with status 1."""

    name = "exit"

    def __init__(
        self,
        crash_log: bool = True,
        error_fn: Callable[[str], None] | None = None,
        exit_code: int = 1,
    ):
        self.crash_log = crash_log
        self.error_fn = error_fn
        self.exit_code = exit_code

    def __call__(self, failure: ScriptFailure) -> None:
        (self.error_fn or _stderr_writer)(f"FAIL: {failure}")
        if self.crash_log:
            write_crash_log(failure, failure.line_number, failure.line)
        raise SystemExit(self.exit_code)


class AbortScript:
    """Stop the current script; the failure propagates to the caller."""

    name = "abort"

    def __call__(self, failure: ScriptFailure) -> None:
        raise failure


class ContinueRunning:
    """Report the failure and keep going."""

    name = "continue"

    def __init__(self, error_fn: Callable[[str], None] | None = None):
        self.error_fn = error_fn

    def __call__(self, failure: ScriptFailure) -> None:
        (self.error_fn or _stderr_writer)(f"FAIL: {failure}")


class FailureCollector:
    """Collect failures for later reporting and keep going."""

    name = "collect"

    def __init__(self) -> None:
        self.failures: list[ScriptFailure] = []

    def __call__(self, failure: ScriptFailure) -> None:
        self.failures.append(failure)

    def __len__(self) -> int:
        return len(self.failures)


def policy_from_name(name: str, crash_log: bool = True):
    """Build a policy from its configured name.

    Raises:
        ValueError: unknown policy name
    """
    key = (name or "").strip().lower()
    if key == "exit":
        return ExitProcess(crash_log=crash_log)
    if key == "abort":
        return AbortScript()
    if key == "continue":
        return ContinueRunning()
    if key == "collect":
        return FailureCollector()
    raise ValueError(
        f"Unknown failure policy: {name!r} "
        f"(expected exit, abort, continue or collect)"
    )
