# linesh — Line-Oriented Script Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Subprocess-backed executor implementation for linesh.

This module provides:
- run(): the child inherits the host's stdin/stdout/stderr (no capture)
- run_stream(): stdout/stderr are read line by line and handed to
  callbacks (used when output goes through the prompt_toolkit UI)

Both block until the child exits. There is no timeout. A program that
cannot be started and a program that exits non-zero both raise
ProcessError.
"""

from __future__ import annotations

import subprocess
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from .errors import ProcessError


@dataclass(frozen=True)
class ProcessResult:
    """Result from a finished external program (no output capture)."""

    argv: tuple[str, ...]
    exit_code: int


class SubprocessExecutor:
    """Subprocess implementation of Executor protocol."""

    def _spawn(
        self,
        argv: list[str],
        cwd: str,
        env: Mapping[str, str],
        **kwargs,
    ) -> subprocess.Popen:
        if not argv:
            raise ProcessError(argv, None, "empty command")
        try:
            return subprocess.Popen(
                argv,
                cwd=cwd,
                env=dict(env),
                **kwargs,
            )
        except (OSError, ValueError) as e:
            raise ProcessError(
                argv, None, f"could not start {argv[0]!r}: {e}"
            ) from e

    def _finish(self, argv: list[str], exit_code: int) -> ProcessResult:
        if exit_code != 0:
            raise ProcessError(argv, exit_code)
        return ProcessResult(
            argv=tuple(argv),
            exit_code=exit_code,
        )

    def run(
        self, argv: list[str], cwd: str, env: Mapping[str, str]
    ) -> ProcessResult:
        """Run a program with inherited standard streams.

        Args:
            argv: program name followed by its arguments
            cwd: working directory for the program
            env: complete environment for the program

        Returns:
            ProcessResult for a zero exit status

        Raises:
            ProcessError: launch failure or non-zero exit status
        """
        proc = self._spawn(
            argv, cwd, env,
            stdin=None,  # inherit from parent
            stdout=None,  # inherit from parent
            stderr=None,  # inherit from parent
        )
        exit_code = proc.wait()
        return self._finish(argv, exit_code)

    def run_stream(
        self,
        argv: list[str],
        cwd: str,
        env: Mapping[str, str],
        on_stdout: Callable[[str], None] | None = None,
        on_stderr: Callable[[str], None] | None = None,
    ) -> ProcessResult:
        """Run a program and stream its output to callbacks.

        Args:
            argv: program name followed by its arguments
            cwd: working directory for the program
            env: complete environment for the program
            on_stdout: callback for stdout lines
            on_stderr: callback for stderr lines

        Returns:
            ProcessResult for a zero exit status

        Raises:
            ProcessError: launch failure or non-zero exit status
        """
        proc = self._spawn(
            argv, cwd, env,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
            bufsize=1,
        )

        assert proc.stdout is not None
        assert proc.stderr is not None

        def _reader(pipe, callback: Callable[[str], None] | None) -> None:
            try:
                for line in iter(pipe.readline, ""):
                    if callback:
                        callback(line)
            finally:
                pipe.close()

        t_out = threading.Thread(
            target=_reader, args=(proc.stdout, on_stdout), daemon=True
        )
        t_err = threading.Thread(
            target=_reader, args=(proc.stderr, on_stderr), daemon=True
        )
        t_out.start()
        t_err.start()

        exit_code = proc.wait()
        t_out.join()
        t_err.join()

        return self._finish(argv, exit_code)
