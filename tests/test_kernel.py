# tests/test_kernel.py
"""
Engine tests with dependency injection.
The engine only classifies and dispatches lines; processes are faked.
"""
from __future__ import annotations

import os
from pathlib import Path

import pytest

import linesh.kernel as kernel_mod
from linesh.errors import ProcessError, ScriptFailure
from linesh.kernel import Engine, EngineState, ScriptContext, run
from linesh.policies import AbortScript, FailureCollector
from linesh.registry import CommandRegistry

# ----------------------------------------------------------------
# Boundary tests
# ----------------------------------------------------------------


def test_kernel_module_does_not_load_yaml() -> None:
    """Engine consumes injected values; config loading lives in config.py."""
    text = Path(kernel_mod.__file__).read_text(encoding="utf-8")
    for forbidden in ["import yaml", "load_config", "load_defaults_yaml"]:
        assert forbidden not in text


# ----------------------------------------------------------------
# Fakes
# ----------------------------------------------------------------


class FakeExecutor:
    """Records every program the engine would start."""

    def __init__(self, fail_on: set[str] | None = None):
        self.calls: list[dict] = []
        self.fail_on = fail_on or set()

    def run(self, argv, cwd, env):
        self.calls.append({"argv": list(argv), "cwd": cwd, "env": dict(env)})
        if argv[0] in self.fail_on:
            raise ProcessError(argv, 2)
        return None


class FakeStreamingExecutor(FakeExecutor):
    def run_stream(self, argv, cwd, env, on_stdout=None, on_stderr=None):
        self.calls.append({"argv": list(argv), "cwd": cwd, "stream": True})
        on_stdout("streamed out\n")
        on_stderr("streamed err\n")


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def output() -> list[str]:
    return []


@pytest.fixture
def engine(executor: FakeExecutor, output: list[str]) -> Engine:
    return Engine(
        executor=executor,
        failure_policy=AbortScript(),
        output_fn=output.append,
    )


@pytest.fixture
def ctx(engine: Engine, tmp_path: Path) -> ScriptContext:
    return engine.new_context(variables={"HOME": "/home/me"}, cwd=str(tmp_path))


# ----------------------------------------------------------------
# Skipping
# ----------------------------------------------------------------


def test_blank_and_comment_lines_do_nothing(engine, executor, ctx, output):
    before_vars = dict(ctx.variables)
    before_dirs = list(ctx.dirs)

    engine.run("\n   \n\t\n# comment\n// also comment\n   # indented\n", ctx)

    assert executor.calls == []
    assert output == []
    assert ctx.variables == before_vars
    assert list(ctx.dirs) == before_dirs


def test_custom_comment_prefixes(executor, output, tmp_path):
    engine = Engine(
        executor=executor,
        failure_policy=AbortScript(),
        comment_prefixes=("--",),
        output_fn=output.append,
    )
    ctx = engine.new_context(variables={}, cwd=str(tmp_path))
    engine.run("-- skipped\n# not-a-comment-here", ctx)

    assert [c["argv"] for c in executor.calls] == [["#", "not-a-comment-here"]]


# ----------------------------------------------------------------
# Expansion + dispatch
# ----------------------------------------------------------------


def test_set_then_echo_expands_variable(engine, ctx, output):
    engine.run("""
        set name = world
        echo Hello ${name}
    """, ctx)

    assert output == ["Hello world\n"]


def test_missing_variable_expands_to_empty(engine, ctx, output):
    engine.run("echo [${missing}]", ctx)
    assert output == ["[]\n"]


def test_command_name_can_come_from_variable(engine, executor, ctx):
    ctx.variables["tool"] = "make"
    engine.run("${tool} all", ctx)
    assert executor.calls[0]["argv"] == ["make", "all"]


def test_dispatch_is_case_insensitive(executor, tmp_path):
    seen = []
    registry = CommandRegistry()
    registry.add("Cd", lambda ctx, text: seen.append(text))
    engine = Engine(registry=registry, executor=executor,
                    failure_policy=AbortScript())
    ctx = engine.new_context(variables={}, cwd=str(tmp_path))

    engine.run("cd one\nCD two\ncD three", ctx)

    assert seen == ["one", "two", "three"]
    assert executor.calls == []


def test_handler_receives_raw_rest_of_line(executor, tmp_path):
    seen = []
    registry = CommandRegistry()
    registry.add("say", lambda text: seen.append(text))
    engine = Engine(registry=registry, executor=executor,
                    failure_policy=AbortScript())
    engine.run('say "quoted stays"  spaced', engine.new_context(variables={}))

    assert seen == ['"quoted stays"  spaced']


def test_plain_handler_gets_no_arguments(executor):
    calls = []
    registry = CommandRegistry()
    registry.add("ping", lambda: calls.append("pong"))
    engine = Engine(registry=registry, executor=executor,
                    failure_policy=AbortScript())
    engine.run("ping with ignored args", engine.new_context(variables={}))

    assert calls == ["pong"]


def test_query_handler_result_is_written(engine, ctx, output, tmp_path):
    engine.run("getwd", ctx)
    assert output == [f"{tmp_path}\n"]


def test_crlf_line_endings_are_accepted(engine, executor, ctx, output):
    engine.run("echo a\r\n\r\n// note\r\necho b\r\n", ctx)

    assert output == ["a\n", "b\n"]
    assert executor.calls == []


def test_tabs_inside_line_become_spaces(engine, ctx, output):
    engine.run("echo\ta\tb", ctx)
    assert output == ["a b\n"]


# ----------------------------------------------------------------
# External programs
# ----------------------------------------------------------------


def test_unregistered_word_runs_as_program(engine, executor, ctx, tmp_path):
    engine.run("ls -la", ctx)

    assert executor.calls == [
        {"argv": ["ls", "-la"], "cwd": str(tmp_path),
         "env": {"HOME": "/home/me"}}
    ]


def test_program_runs_in_stack_head(engine, executor, ctx, tmp_path):
    engine.run("""
        pushd build
        cmake ..
        popd
        git status
    """, ctx)

    assert executor.calls[0]["cwd"] == str(tmp_path / "build")
    assert executor.calls[1]["cwd"] == str(tmp_path)


def test_program_environment_is_variable_table(engine, executor, ctx):
    engine.run("set MODE = release\nbuild", ctx)

    env = executor.calls[0]["env"]
    assert env == {"HOME": "/home/me", "MODE": "release"}


def test_program_line_is_tokenized_with_quotes(engine, executor, ctx):
    engine.run('cp "my file.txt" dest', ctx)
    assert executor.calls[0]["argv"] == ["cp", "my file.txt", "dest"]


def test_streaming_used_when_output_hook_set(output, tmp_path):
    executor = FakeStreamingExecutor()
    errors: list[str] = []
    engine = Engine(executor=executor, failure_policy=AbortScript(),
                    output_fn=output.append, error_fn=errors.append)
    engine.run("make", engine.new_context(variables={}, cwd=str(tmp_path)))

    assert executor.calls[0]["stream"] is True
    assert output == ["streamed out\n"]
    assert errors == ["streamed err\n"]


def test_no_streaming_without_output_hook(tmp_path):
    executor = FakeStreamingExecutor()
    engine = Engine(executor=executor, failure_policy=AbortScript())
    engine.run("make", engine.new_context(variables={}, cwd=str(tmp_path)))

    assert "stream" not in executor.calls[0]


def test_line_expanding_to_nothing_is_process_failure(engine, ctx):
    with pytest.raises(ScriptFailure) as exc_info:
        engine.run("${nothing}", ctx)

    failure = exc_info.value
    assert failure.kind == "process"
    assert isinstance(failure.cause, ProcessError)
    assert "empty command" in str(failure.cause)


# ----------------------------------------------------------------
# Failures + policies
# ----------------------------------------------------------------


def test_default_policy_exits_after_failing_line(
    tmp_path, monkeypatch: pytest.MonkeyPatch, capsys
):
    monkeypatch.setenv("LINESH_DATA_HOME", str(tmp_path / "data"))
    executor = FakeExecutor(fail_on={"broken"})
    engine = Engine(executor=executor)
    ctx = engine.new_context(variables={}, cwd=str(tmp_path))

    with pytest.raises(SystemExit) as exc_info:
        engine.run("first\nbroken arg\nthird", ctx)

    assert exc_info.value.code == 1
    assert [c["argv"][0] for c in executor.calls] == ["first", "broken"]
    err = capsys.readouterr().err
    assert "FAIL:" in err
    assert "line 2" in err
    assert "[broken arg]" in err
    assert engine.state == EngineState.FAILED


def test_default_policy_exits_after_failing_handler(
    tmp_path, monkeypatch: pytest.MonkeyPatch, capsys
):
    monkeypatch.setenv("LINESH_DATA_HOME", str(tmp_path / "data"))
    executor = FakeExecutor()
    registry = CommandRegistry.with_builtins()

    def explode(text):
        raise RuntimeError("kaput")

    registry.add("explode", explode)
    engine = Engine(registry=registry, executor=executor)
    ctx = engine.new_context(variables={}, cwd=str(tmp_path))

    with pytest.raises(SystemExit) as exc_info:
        engine.run("first\nexplode now\nthird", ctx)

    assert exc_info.value.code == 1
    assert [c["argv"][0] for c in executor.calls] == ["first"]
    err = capsys.readouterr().err
    assert "error in handler, line 2" in err
    assert "kaput" in err
    assert (tmp_path / "data" / "linesh" / "logs" / "crash.log").exists()
    assert engine.state == EngineState.FAILED


def test_abort_policy_raises_with_line_details(engine, executor, ctx):
    executor.fail_on.add("broken")

    with pytest.raises(ScriptFailure) as exc_info:
        engine.run("echo one\nbroken  thing\necho three", ctx)

    failure = exc_info.value
    assert failure.line_number == 2
    assert failure.line == "broken  thing"
    assert failure.kind == "process"
    assert failure.__cause__ is failure.cause
    assert engine.state == EngineState.FAILED


def test_handler_exception_is_wrapped(executor, output):
    registry = CommandRegistry.with_builtins()

    def explode(text):
        raise PermissionError("denied: " + text)

    registry.add("explode", explode)
    engine = Engine(registry=registry, executor=executor,
                    failure_policy=AbortScript(), output_fn=output.append)

    with pytest.raises(ScriptFailure) as exc_info:
        engine.run("echo before\nexplode now\necho after",
                   engine.new_context(variables={}))

    failure = exc_info.value
    assert failure.kind == "handler"
    assert failure.line_number == 2
    assert isinstance(failure.cause, PermissionError)
    assert output == ["before\n"]


def test_line_numbers_count_skipped_lines(engine, executor, ctx):
    executor.fail_on.add("bad")

    with pytest.raises(ScriptFailure) as exc_info:
        engine.run("# header\n\necho ok\nbad", ctx)

    assert exc_info.value.line_number == 4


def test_line_text_in_failure_is_expanded(engine, executor, ctx):
    executor.fail_on.add("bad")
    ctx.variables["x"] = "value"

    with pytest.raises(ScriptFailure) as exc_info:
        engine.run("bad ${x}", ctx)

    assert exc_info.value.line == "bad value"


def test_collector_policy_runs_every_line(executor, tmp_path):
    executor.fail_on.update({"bad1", "bad2"})
    collector = FailureCollector()
    engine = Engine(executor=executor, failure_policy=collector)
    ctx = engine.new_context(variables={}, cwd=str(tmp_path))

    engine.run("bad1\ngood\nbad2\nfine", ctx)

    assert [c["argv"][0] for c in executor.calls] == [
        "bad1", "good", "bad2", "fine"
    ]
    assert [f.line_number for f in collector.failures] == [1, 3]
    assert engine.state == EngineState.DONE


def test_policy_can_be_overridden_per_context(engine, executor, tmp_path):
    executor.fail_on.add("bad")
    collector = FailureCollector()
    ctx = engine.new_context(variables={}, cwd=str(tmp_path),
                             on_failure=collector)

    engine.run("bad\nok", ctx)

    assert len(collector) == 1


# ----------------------------------------------------------------
# Context lifecycle
# ----------------------------------------------------------------


def test_new_context_seeds_from_environment(engine, monkeypatch):
    monkeypatch.setenv("LINESH_TEST_VAR", "seeded")
    ctx = engine.new_context()

    assert ctx.variables["LINESH_TEST_VAR"] == "seeded"
    assert ctx.getwd() == os.getcwd()
    assert ctx.engine is engine


def test_context_variables_are_a_copy_of_environment(engine, monkeypatch):
    monkeypatch.setenv("LINESH_TEST_VAR", "seeded")
    ctx = engine.new_context()
    engine.run("set LINESH_TEST_VAR = changed", ctx)

    assert os.environ["LINESH_TEST_VAR"] == "seeded"


def test_run_without_context_creates_one(engine, output):
    ctx = engine.run("set a = 1")
    assert ctx.variables["a"] == "1"
    assert engine.state == EngineState.DONE


def test_nested_run_shares_context(executor, output, tmp_path):
    registry = CommandRegistry.with_builtins()
    registry.add("Nested", lambda ctx, text: ctx.run(
        "set inner = ${outer}\npushd sub"
    ))
    engine = Engine(registry=registry, executor=executor,
                    failure_policy=AbortScript(), output_fn=output.append)
    ctx = engine.new_context(variables={}, cwd=str(tmp_path))

    engine.run("set outer = yes\nnested\necho ${inner}\nls", ctx)

    assert output == ["yes\n"]
    assert executor.calls[0]["cwd"] == str(tmp_path / "sub")
    assert engine.state == EngineState.DONE


def test_nested_failure_is_not_wrapped_twice(executor, tmp_path):
    executor.fail_on.add("bad")
    registry = CommandRegistry.with_builtins()
    registry.add("Nested", lambda ctx, text: ctx.run("echo x\nbad"))
    engine = Engine(registry=registry, executor=executor,
                    failure_policy=AbortScript(), output_fn=lambda s: None)

    with pytest.raises(ScriptFailure) as exc_info:
        engine.run("echo start\nnested", engine.new_context(variables={}))

    assert exc_info.value.line == "bad"
    assert exc_info.value.line_number == 2
    assert isinstance(exc_info.value.cause, ProcessError)


def test_caught_nested_failure_still_finishes_done(executor, output):
    executor.fail_on.add("bad")
    registry = CommandRegistry.with_builtins()

    def guarded(ctx, text):
        try:
            ctx.run("echo inner\nbad")
        except ScriptFailure:
            ctx.write("recovered")

    registry.add("guarded", guarded)
    engine = Engine(registry=registry, executor=executor,
                    failure_policy=AbortScript(), output_fn=output.append)

    engine.run("guarded\necho after", engine.new_context(variables={}))

    assert output == ["inner\n", "recovered\n", "after\n"]
    assert engine.state == EngineState.DONE


def test_context_run_requires_engine():
    ctx = ScriptContext(variables={})
    with pytest.raises(Exception, match="not attached"):
        ctx.run("echo hi")


def test_module_run_uses_builtins(capsys):
    ctx = run("""
        set greeting = hi
        echo ${greeting} there
    """)

    assert capsys.readouterr().out == "hi there\n"
    assert ctx.variables["greeting"] == "hi"
