# linesh — Line-Oriented Script Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Exception types for linesh.

- RegistrationError: raised while building a registry (programming errors)
- ProcessError: an external program could not start or exited non-zero
- ScriptFailure: a failed script line, handed to the failure policy
"""

from __future__ import annotations


class LineshError(Exception):
    """Base class for all linesh errors."""


class RegistrationError(LineshError):
    """A handler could not be registered.

    Raised at registration time, never while a script runs.
    """


class ProcessError(LineshError):
    """An external program failed to launch or exited non-zero."""

    def __init__(
        self, argv: list[str], exit_code: int | None, message: str = ""
    ):
        self.argv = list(argv)
        self.exit_code = exit_code
        if not message:
            program = argv[0] if argv else "<empty>"
            if exit_code is None:
                message = f"could not start {program!r}"
            else:
                message = f"{program!r} exited with status {exit_code}"
        super().__init__(message)


class ScriptFailure(LineshError):
    """A script line that failed, with its position and original text."""

    def __init__(
        self,
        line_number: int,
        line: str,
        cause: BaseException,
        kind: str = "handler",
    ):
        self.line_number = line_number
        self.line = line
        self.cause = cause
        self.kind = kind
        super().__init__(self._format())

    def _format(self) -> str:
        where = (
            "error in handler" if self.kind == "handler"
            else "error executing program"
        )
        return (
            f"{where}, line {self.line_number}\n"
            f"[{self.line}]\n"
            f"{type(self.cause).__name__}: {self.cause}"
        )
