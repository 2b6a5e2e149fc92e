# linesh — Line-Oriented Script Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

from __future__ import annotations

import os
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.formatted_text import ANSI
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.shortcuts import print_formatted_text
from prompt_toolkit.styles import Style

if TYPE_CHECKING:
    from .kernel import Engine, ScriptContext  # pragma: no cover


# ----------------------------
# Config helpers
# ----------------------------


def _cfg_get_path(config: Any, path: str, default):
    if config is None or not hasattr(config, "get_path"):
        return default
    try:
        return config.get_path(path, default)
    except Exception:
        return default


def _cfg_dict(config: Any, path: str, default: dict) -> dict:
    val = _cfg_get_path(config, path, default)
    return val if isinstance(val, dict) else default


def _cfg_str(config: Any, path: str, default: str) -> str:
    val = _cfg_get_path(config, path, default)
    return str(val) if val is not None else default


# ----------------------------
# Theme / Style
# ----------------------------


def _default_style_dict() -> dict[str, str]:
    menu_bg, current_bg = "bg:#1c1c1c", "bg:#3a3a3a"
    return {
        "completion-menu": f"{menu_bg} #c6c6c6",
        "completion-menu.completion": f"{menu_bg} #c6c6c6",
        "completion-menu.completion.current": f"{current_bg} #ffffff bold",
        "completion-menu.meta.completion": f"{menu_bg} #8a8a8a",
        "completion-menu.meta.completion.current": f"{current_bg} #b2b2b2",
        "bottom-toolbar": "bg:#121212 #c6c6c6",
        "linesh.cwd": "bg:#121212 #5f87ff",
    }


def _build_style(config: Any) -> Style:
    base = _default_style_dict()
    overrides = _cfg_dict(config, "ui.theme.style", {})
    # only keep string->string
    for k, v in list(overrides.items()):
        if isinstance(k, str) and isinstance(v, str):
            base[k] = v
    return Style.from_dict(base)


# ----------------------------
# Completers
# ----------------------------


class ExecutableIndex:
    """Executable names found on a PATH string, cached per PATH value."""

    def __init__(self) -> None:
        self._cache: set[str] | None = None
        self._cache_path: str | None = None

    def load(self, path_val: str) -> set[str]:
        if self._cache is not None and self._cache_path == path_val:
            return self._cache

        exes: set[str] = set()
        for p in path_val.split(os.pathsep):
            if not p:
                continue
            try:
                for name in os.listdir(p):
                    full = os.path.join(p, name)
                    if os.path.isfile(full) and os.access(full, os.X_OK):
                        exes.add(name)
            except OSError:
                continue

        self._cache = exes
        self._cache_path = path_val
        return exes


class PathCompleter(Completer):
    """Filesystem path completion for arguments.

    Relative paths complete against base_dir_fn(), the script's current
    directory, not the host process's.
    """

    def __init__(self, base_dir_fn=os.getcwd) -> None:
        self.base_dir_fn = base_dir_fn

    def _current_arg_token(self, text: str) -> str | None:
        after = text.lstrip()
        # Need at least one space after the command token
        if " " not in after:
            return None
        if after.endswith(" "):
            return ""
        return after.split()[-1].lstrip('"')

    def _list_dir(self, directory: str) -> list[str]:
        try:
            return sorted(os.listdir(directory))
        except OSError:
            return []

    def get_completions(
        self, document, complete_event
    ) -> Iterable[Completion]:
        token = self._current_arg_token(document.text_before_cursor or "")
        if token is None:
            return

        expanded = os.path.expanduser(token)
        if expanded.endswith(os.sep):
            rel_dir, prefix, insert_prefix = expanded, "", token
        else:
            rel_dir = os.path.dirname(expanded)
            prefix = os.path.basename(expanded)
            insert_prefix = os.path.dirname(token)
            if insert_prefix and not insert_prefix.endswith("/"):
                insert_prefix += "/"

        base_dir = os.path.join(self.base_dir_fn(), rel_dir)
        for name in self._list_dir(base_dir):
            if not name.startswith(prefix):
                continue
            is_dir = os.path.isdir(os.path.join(base_dir, name))
            ins = f"{insert_prefix}{name}" + ("/" if is_dir else "")
            yield Completion(
                ins,
                start_position=-len(token),
                display_meta="dir" if is_dir else "file",
            )


class LineshCompleter(Completer):
    """Registered commands and executables on the first token,
    paths after it."""

    def __init__(self, engine: Engine | None, ctx: ScriptContext | None):
        self.engine = engine
        self.ctx = ctx
        self._exe = ExecutableIndex()
        self._path = PathCompleter(self._base_dir)

    def _base_dir(self) -> str:
        return self.ctx.getwd() if self.ctx is not None else os.getcwd()

    def _search_path(self) -> str:
        if self.ctx is not None:
            return self.ctx.variables.get("PATH", "")
        return os.environ.get("PATH", "")

    def get_completions(
        self, document, complete_event
    ) -> Iterable[Completion]:
        before = (document.text_before_cursor or "").lstrip()

        if " " in before:
            yield from self._path.get_completions(document, complete_event)
            return

        if not before:
            return

        seen: set[str] = set()
        if self.engine is not None:
            for entry in self.engine.registry.entries():
                if entry.key.startswith(before.lower()):
                    seen.add(entry.key)
                    yield Completion(
                        entry.name,
                        start_position=-len(before),
                        display_meta=entry.summary or entry.handler.shape,
                    )

        for exe in sorted(self._exe.load(self._search_path())):
            if exe.startswith(before) and exe.lower() not in seen:
                yield Completion(
                    exe, start_position=-len(before), display_meta="exe"
                )


# ----------------------------
# PromptSession UI
# ----------------------------


class PromptToolkitUI:
    """
    Terminal-friendly UI for interactive linesh sessions:
      - Keeps normal terminal scrollback + drag-select copy.
      - Completes command names, executables and paths.
      - Bottom toolbar shows the script's current directory.
    """

    def __init__(
        self,
        engine: Engine | None = None,
        ctx: ScriptContext | None = None,
        config: Any = None,
    ) -> None:
        self.engine = engine
        self.ctx = ctx
        self.config = config
        self.session: PromptSession[str] | None = None
        self._style = _build_style(config)

        # Track whether we ended on a newline (to prevent prompt mangling)
        self._needs_newline_before_prompt = False

    @property
    def prompt_text(self) -> str:
        return _cfg_str(self.config, "ui.prompt", "linesh>")

    def _bottom_toolbar(self):
        if self.ctx is None:
            return ""
        return [("class:linesh.cwd", f" {self.ctx.getwd()} ")]

    # ---------- session ----------

    def _ensure_session(self) -> None:
        if self.session is not None:
            return

        self.session = PromptSession(
            key_bindings=self.build_key_bindings(),
            completer=LineshCompleter(self.engine, self.ctx),
            complete_while_typing=True,
            style=self._style,
            bottom_toolbar=self._bottom_toolbar,
        )

    # ---------- public API ----------

    def read(self, prompt: str) -> str:
        self._ensure_session()
        assert self.session is not None

        if self._needs_newline_before_prompt:
            print_formatted_text(
                ANSI("\n"), style=self._style, end=""
            )
            self._needs_newline_before_prompt = False

        with patch_stdout():
            return self.session.prompt(ANSI(prompt + " "))

    def write(self, text: str) -> None:
        """Write EXACTLY what we receive (no extra newline).

        Track prompt safety.
        """
        if not text:
            return
        print_formatted_text(ANSI(text), style=self._style, end="")
        self._needs_newline_before_prompt = not text.endswith("\n")

    # ---------- keybindings ----------

    def build_key_bindings(self) -> KeyBindings:
        kb = KeyBindings()

        @kb.add("c-l")
        def _(event):
            event.app.renderer.clear()
            event.current_buffer.reset()
            event.app.invalidate()

        return kb
