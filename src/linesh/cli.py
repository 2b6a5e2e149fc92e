# linesh — Line-Oriented Script Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
linesh CLI entry point and REPL loop.

Design:
- CLI owns process startup and config loading.
- Engine is the script runner (registry+executor+policy injected).
- Arguments after the options are joined into one script line.

    linesh                      usage listing
    linesh echo hello           run one line
    linesh -f build.lsh         run a script file
    linesh -i                   interactive session
    linesh --continue -f x.lsh  keep going after failed lines
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from . import config
from .executor import SubprocessExecutor
from .interfaces import ConfigModel
from .kernel import Engine, ScriptContext
from .menu import DEFAULT_TITLE, show_usage
from .policies import ContinueRunning, policy_from_name, write_crash_log
from .registry import CommandRegistry

EXIT_WORDS = frozenset({"exit", "quit"})


@dataclass
class CliOptions:
    script_file: Path | None = None
    interactive: bool = False
    policy: str | None = None
    config_file: Path | None = None
    show_help: bool = False
    line: list[str] = field(default_factory=list)


def parse_args(argv: list[str]) -> CliOptions:
    """Parse leading options; everything from the first non-option
    argument on belongs to the script line.

    Raises:
        ValueError: an option is missing its value
    """
    opts = CliOptions()
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg in ("-f", "--file", "--config"):
            if i + 1 >= len(argv):
                raise ValueError(f"{arg} requires a path")
            if arg == "--config":
                opts.config_file = Path(argv[i + 1])
            else:
                opts.script_file = Path(argv[i + 1])
            i += 2
            continue
        if arg in ("-i", "--interactive"):
            opts.interactive = True
        elif arg == "--continue":
            opts.policy = "continue"
        elif arg in ("-h", "--help"):
            opts.show_help = True
        elif arg == "--":
            opts.line = argv[i + 1:]
            break
        else:
            opts.line = argv[i:]
            break
        i += 1

    if opts.script_file is not None and opts.line:
        raise ValueError("-f cannot be combined with a command line")
    return opts


def build_engine(
    cfg: ConfigModel,
    registry: CommandRegistry | None = None,
    policy: str | None = None,
) -> Engine:
    """Wire an engine from configuration."""
    return Engine(
        registry=(
            registry if registry is not None
            else CommandRegistry.with_builtins()
        ),
        executor=SubprocessExecutor(),
        failure_policy=policy_from_name(
            policy or cfg.failure_policy, crash_log=cfg.crash_log
        ),
        comment_prefixes=cfg.comment_prefixes,
    )


def run_repl(
    engine: Engine,
    ctx: ScriptContext,
    ui=None,
    prompt: str = "linesh>",
    input_fn: Callable[[str], str] = input,
    output_fn: Callable[[str], None] = print,
) -> None:
    """Run lines interactively against one persistent context."""
    while True:
        try:
            if ui is not None:
                line = ui.read(prompt)
            else:
                line = input_fn(prompt + " ")

            line = (line or "").strip()
            if not line:
                continue
            if line.lower() in EXIT_WORDS:
                break

            try:
                engine.run(line, ctx=ctx)
            except Exception as e:
                write_crash_log(e, line=line)
                error_msg = (
                    f"[ERROR] Unhandled exception: "
                    f"{type(e).__name__}: {e}"
                )
                if ui is not None:
                    ui.write(error_msg + "\n")
                else:
                    output_fn(error_msg)
                # Continue session

        except (KeyboardInterrupt, EOFError):
            msg = "\nBye!\n"
            if ui is not None:
                ui.write(msg)
            else:
                output_fn(msg)
            break


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the linesh CLI."""
    args = sys.argv[1:] if argv is None else argv
    try:
        opts = parse_args(args)
    except ValueError as e:
        print(f"linesh: {e}", file=sys.stderr)
        raise SystemExit(2)

    try:
        cfg = config.load_config(opts.config_file)
        script = (
            opts.script_file.read_text(encoding="utf-8")
            if opts.script_file is not None else None
        )
        engine = build_engine(cfg, policy=opts.policy)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"linesh: {e}", file=sys.stderr)
        raise SystemExit(2)

    title = cfg.get_path("menu.title", "") or DEFAULT_TITLE

    if opts.interactive:
        from .ui import PromptToolkitUI

        ui = PromptToolkitUI(engine, config=cfg)
        engine.output_fn = ui.write
        engine.error_fn = ui.write
        ctx = engine.new_context(on_failure=ContinueRunning(ui.write))
        ui.ctx = ctx
        run_repl(engine, ctx, ui=ui, prompt=ui.prompt_text)
        return

    if script is not None:
        engine.run(script)
        return

    if opts.show_help or not opts.line:
        show_usage(engine.registry, title)
        return

    engine.run(" ".join(opts.line))
