# linesh — Line-Oriented Script Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
linesh kernel.

Core implementation of linesh:
- ScriptContext: variables + directory stack + failure policy for a run
- Engine: runs script text line by line

Per line:
  normalize -> skip comments -> expand ${NAME} -> split the first word
  -> registered handler (case-insensitive) or external program

Important boundary:
- Engine does not load YAML or discover defaults.
- Engine consumes an injected registry, executor and failure policy.
- The engine never decides whether to stop after a failure; the
  context's failure policy does.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum, auto

from .dirstack import DirectoryStack
from .errors import LineshError, ProcessError, ScriptFailure
from .executor import SubprocessExecutor
from .interfaces import Executor, FailurePolicy
from .policies import ExitProcess
from .registry import CommandRegistry
from .utils import (
    DEFAULT_COMMENT_PREFIXES,
    expand_variables,
    is_comment_line,
    normalize_line,
    split_first_word,
    split_script,
    tokenize,
)


class EngineState(Enum):
    """Lifecycle of an engine run."""
    IDLE = auto()
    RUNNING = auto()
    FAILED = auto()
    DONE = auto()


@dataclass
class ScriptContext:
    """Mutable state shared by the lines of one script run."""

    variables: dict[str, str] = field(
        default_factory=lambda: dict(os.environ)
    )
    dirs: DirectoryStack = field(default_factory=DirectoryStack)
    on_failure: FailurePolicy = field(default_factory=ExitProcess)
    engine: Engine | None = field(default=None, repr=False)

    def getwd(self) -> str:
        return self.dirs.getwd()

    def resolve(self, path: str) -> str:
        """Resolve a path against the current directory."""
        return self.dirs.resolve(path)

    def write(self, text: str) -> None:
        """Write a line of output through the owning engine."""
        if self.engine is not None:
            self.engine.write(text)
        else:
            print(text)

    def run(self, script: str) -> ScriptContext:
        """Run another script against this same context."""
        if self.engine is None:
            raise LineshError("ScriptContext is not attached to an engine")
        return self.engine.run(script, ctx=self)


@dataclass(frozen=True)
class Command:
    """One non-skipped script line, ready to dispatch."""

    line_number: int
    line: str
    name: str
    rest: str


@dataclass
class Engine:
    """linesh script engine."""

    registry: CommandRegistry = field(
        default_factory=CommandRegistry.with_builtins
    )
    executor: Executor = field(default_factory=SubprocessExecutor)
    failure_policy: FailurePolicy | None = None
    comment_prefixes: tuple[str, ...] = DEFAULT_COMMENT_PREFIXES

    state: EngineState = EngineState.IDLE

    # ---- Output hooks (wired by UI/CLI) ----
    # If set, handler output and process output go through these.
    output_fn: Callable[[str], None] | None = None
    error_fn: Callable[[str], None] | None = None

    _depth: int = field(default=0, repr=False)

    # -----------------------
    # Context
    # -----------------------

    def new_context(
        self,
        variables: Mapping[str, str] | None = None,
        cwd: str | None = None,
        on_failure: FailurePolicy | None = None,
    ) -> ScriptContext:
        """Create a context seeded from the host environment.

        Args:
            variables: initial variables (default: os.environ)
            cwd: initial directory (default: os.getcwd())
            on_failure: policy for this context (default: the engine's,
                else ExitProcess)
        """
        if on_failure is None:
            on_failure = self.failure_policy
        if on_failure is None:
            on_failure = ExitProcess()
        return ScriptContext(
            variables=dict(os.environ if variables is None else variables),
            dirs=DirectoryStack(cwd),
            on_failure=on_failure,
            engine=self,
        )

    def write(self, text: str) -> None:
        if self.output_fn is not None:
            self.output_fn(text if text.endswith("\n") else text + "\n")
        else:
            print(text)

    # -----------------------
    # Running
    # -----------------------

    def run(
        self, script: str, ctx: ScriptContext | None = None
    ) -> ScriptContext:
        """Run every line of script and return the context used.

        A context passed in is reused (nested runs share it); otherwise
        a fresh one is created.
        """
        if ctx is None:
            ctx = self.new_context()
        elif ctx.engine is None:
            ctx.engine = self

        self._depth += 1
        self.state = EngineState.RUNNING
        try:
            self.run_lines(split_script(script), ctx)
        except BaseException:
            # Only the outermost run decides the final state
            if self._depth == 1:
                self.state = EngineState.FAILED
            raise
        finally:
            self._depth -= 1

        if self._depth == 0:
            self.state = EngineState.DONE
        return ctx

    def run_lines(self, lines: Iterable[str], ctx: ScriptContext) -> None:
        """Run already-split lines; numbering starts at 1."""
        for line_number, raw in enumerate(lines, start=1):
            command = self.prepare(line_number, raw, ctx)
            if command is None:
                continue
            self.dispatch(command, ctx)

    def prepare(
        self, line_number: int, raw: str, ctx: ScriptContext
    ) -> Command | None:
        """Normalize, skip and expand one line; None means skip."""
        line = normalize_line(raw)
        if is_comment_line(line, self.comment_prefixes):
            return None
        line = expand_variables(line, ctx.variables)
        name, rest = split_first_word(line)
        return Command(
            line_number=line_number, line=line, name=name, rest=rest
        )

    def dispatch(self, command: Command, ctx: ScriptContext) -> None:
        """Run one command and hand any failure to the policy."""
        entry = self.registry.lookup(command.name)

        if entry is not None:
            try:
                result = entry.handler.invoke(ctx, command.rest)
            except ScriptFailure:
                # Already answered by a policy in a nested run
                raise
            except Exception as e:
                self._fail(ctx, command, e, "handler")
                return
            if result:
                self.write(result)
            return

        try:
            self.exec_line(ctx, command.line)
        except ScriptFailure:
            raise
        except Exception as e:
            self._fail(ctx, command, e, "process")

    def _fail(
        self,
        ctx: ScriptContext,
        command: Command,
        cause: Exception,
        kind: str,
    ) -> None:
        failure = ScriptFailure(command.line_number, command.line, cause, kind)
        failure.__cause__ = cause
        ctx.on_failure(failure)

    # -----------------------
    # External programs
    # -----------------------

    def _can_stream(self) -> bool:
        return self.output_fn is not None and hasattr(
            self.executor, "run_stream"
        )

    def exec_line(self, ctx: ScriptContext, line: str):
        """Tokenize line and run it as an external program.

        The program runs in the context's current directory with the
        context's variables as its whole environment.

        Raises:
            ProcessError: empty line, launch failure or non-zero exit
        """
        argv = tokenize(line)
        if not argv:
            raise ProcessError(argv, None, "empty command")

        if self._can_stream():
            return self.executor.run_stream(  # type: ignore[attr-defined]
                argv,
                cwd=ctx.getwd(),
                env=ctx.variables,
                on_stdout=self.output_fn,
                on_stderr=self.error_fn or self.output_fn,
            )
        return self.executor.run(argv, cwd=ctx.getwd(), env=ctx.variables)


def run(script: str, registry: CommandRegistry | None = None) -> ScriptContext:
    """Run script with a default engine (built-ins + fail-fast policy)."""
    engine = Engine(
        registry=registry if registry is not None
        else CommandRegistry.with_builtins()
    )
    return engine.run(script)
