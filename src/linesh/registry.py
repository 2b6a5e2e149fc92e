# linesh — Line-Oriented Script Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Command registry for linesh.

Maps lowercase command names to handlers. Every handler is stored as one
of four wrapper types, picked when it is registered:

- PlainHandler:   func()
- TextHandler:    func(text)
- ContextHandler: func(ctx, text)
- QueryHandler:   func(ctx) -> str

Dispatch is then a plain ``handler.invoke(ctx, text)`` call; no signature
inspection happens while a script runs.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from .errors import RegistrationError

if TYPE_CHECKING:
    from .kernel import ScriptContext  # pragma: no cover

_CONTEXT_PARAM_NAMES = frozenset({"ctx", "context"})


def _raise_if_failure(result: Any) -> None:
    if isinstance(result, BaseException):
        raise result


@dataclass(frozen=True)
class PlainHandler:
    """No context, no argument, no result."""

    func: Callable[[], Any]
    shape: ClassVar[str] = "plain"

    def invoke(self, ctx: ScriptContext, text: str) -> str | None:
        _raise_if_failure(self.func())
        return None


@dataclass(frozen=True)
class TextHandler:
    """Receives the rest of the line; fails by raising."""

    func: Callable[[str], Any]
    shape: ClassVar[str] = "text"

    def invoke(self, ctx: ScriptContext, text: str) -> str | None:
        _raise_if_failure(self.func(text))
        return None


@dataclass(frozen=True)
class ContextHandler:
    """Receives the script context and the rest of the line."""

    func: Callable[[ScriptContext, str], Any]
    shape: ClassVar[str] = "context"

    def invoke(self, ctx: ScriptContext, text: str) -> str | None:
        _raise_if_failure(self.func(ctx, text))
        return None


@dataclass(frozen=True)
class QueryHandler:
    """Receives the script context only and returns a string."""

    func: Callable[[ScriptContext], Any]
    shape: ClassVar[str] = "query"

    def invoke(self, ctx: ScriptContext, text: str) -> str | None:
        result = self.func(ctx)
        _raise_if_failure(result)
        return None if result is None else str(result)


Handler = PlainHandler | TextHandler | ContextHandler | QueryHandler
HANDLER_TYPES: tuple[type, ...] = (
    PlainHandler, TextHandler, ContextHandler, QueryHandler
)


@dataclass(frozen=True)
class CommandEntry:
    """A registered command, as seen by dispatch and usage listings."""

    name: str
    handler: Handler
    visible: bool
    param_names: tuple[str, ...] = ()
    summary: str = ""

    @property
    def key(self) -> str:
        return self.name.lower()

    @property
    def param_count(self) -> int:
        return len(self.param_names)


def _positional_params(func: Callable[..., Any]) -> list[inspect.Parameter]:
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError) as e:
        raise RegistrationError(
            f"Cannot inspect signature of {func!r}; "
            f"wrap it in a handler type explicitly"
        ) from e

    params: list[inspect.Parameter] = []
    for p in sig.parameters.values():
        if p.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            params.append(p)
        elif (p.kind == inspect.Parameter.KEYWORD_ONLY and
                p.default is inspect.Parameter.empty):
            raise RegistrationError(
                f"Handler {func!r} has required keyword-only "
                f"parameter {p.name!r}"
            )
    return params


def _is_context_param(param: inspect.Parameter) -> bool:
    ann = param.annotation
    if ann is not inspect.Parameter.empty:
        ann_name = ann if isinstance(ann, str) else getattr(
            ann, "__name__", ""
        )
        if ann_name.rsplit(".", 1)[-1] == "ScriptContext":
            return True
    return param.name in _CONTEXT_PARAM_NAMES


def wrap_handler(func: Any) -> Handler:
    """Pick the handler wrapper for a callable from its signature."""
    if isinstance(func, HANDLER_TYPES):
        return func
    if not callable(func):
        raise RegistrationError(f"Cannot create a command from {func!r}")

    params = _positional_params(func)
    if len(params) == 0:
        return PlainHandler(func)
    if len(params) == 1:
        if _is_context_param(params[0]):
            return QueryHandler(func)
        return TextHandler(func)
    if len(params) == 2:
        return ContextHandler(func)
    raise RegistrationError(
        f"Handler {func!r} takes {len(params)} parameters; "
        f"expected (), (text), (ctx) or (ctx, text)"
    )


def _declared_name(func: Any) -> str:
    target = func.func if isinstance(func, HANDLER_TYPES) else func
    name = getattr(target, "__name__", "")
    if not name or name.startswith("<"):
        raise RegistrationError(
            f"Cannot derive a command name from {target!r}; "
            f"pass a name explicitly"
        )
    return name


def _describe(handler: Handler) -> tuple[tuple[str, ...], str]:
    func = handler.func
    names: tuple[str, ...] = ()
    if handler.shape in ("text", "context"):
        try:
            params = _positional_params(func)
            names = (params[-1].name,) if params else ("text",)
            if names[0].startswith("_"):
                # unused argument
                names = ()
        except RegistrationError:
            names = ("text",)
    doc = inspect.getdoc(func) or ""
    summary = doc.strip().splitlines()[0] if doc.strip() else ""
    return names, summary


class CommandRegistry:
    """Name → handler table owned by an engine."""

    def __init__(self) -> None:
        self._entries: dict[str, CommandEntry] = {}

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, name: str, func: Any) -> CommandEntry:
        """Register func under name.

        Raises:
            RegistrationError: name is empty, already taken (ignoring
                case), or func is not a usable handler
        """
        if not isinstance(name, str) or not name.strip():
            raise RegistrationError(f"Invalid command name: {name!r}")
        if " " in name or "\t" in name:
            raise RegistrationError(
                f"Command name cannot contain whitespace: {name!r}"
            )
        key = name.lower()
        if key in self._entries:
            existing = self._entries[key].name
            raise RegistrationError(
                f"Cannot create more than one command named {name!r} "
                f"(already registered as {existing!r})"
            )
        handler = wrap_handler(func)
        param_names, summary = _describe(handler)
        entry = CommandEntry(
            name=name,
            handler=handler,
            visible=name[0].isupper(),
            param_names=param_names,
            summary=summary,
        )
        self._entries[key] = entry
        return entry

    def register(self, *funcs: Any) -> None:
        """Register callables under their own ``__name__``."""
        for func in funcs:
            self.add(_declared_name(func), func)

    def command(self, name: str | None = None):
        """Decorator form of add(); the function is returned unchanged."""
        def decorator(func):
            self.add(name if name is not None else _declared_name(func), func)
            return func
        return decorator

    def lookup(self, name: str) -> CommandEntry | None:
        """Case-insensitive lookup."""
        return self._entries.get(name.lower())

    def entries(self) -> list[CommandEntry]:
        """Snapshot of all entries, sorted by lowercase name."""
        return [self._entries[k] for k in sorted(self._entries)]

    @classmethod
    def with_builtins(cls) -> CommandRegistry:
        """A fresh registry holding the built-in commands."""
        from .builtins import register_builtins

        registry = cls()
        register_builtins(registry)
        return registry
