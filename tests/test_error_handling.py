from __future__ import annotations

import io
from textwrap import dedent

import pytest

from tests.support.harness import (
    EvalError,
    Interpreter,
    InvocationError,
    ResolutionError,
    TargetError,
    ThrownValue,
    UndefinedVariableError,
    run_runtime_case,
)
from hostscript.errors import ErrorKind, classify_exception, interpreter_failure

SCENARIOS = [
    pytest.param(
        dedent(
            """\
            class Oops { }
            try { throw new Oops(); } catch (Oops e) { "script"; }
        """
        ),
        ("string", "script"),
        None,
        id="catch-script-class",
    ),
    pytest.param(
        dedent(
            """\
            try { throw "x"; } catch (ValueError e) { 1; }
        """
        ),
        None,
        TargetError,
        id="unmatched-catch-rethrows",
    ),
    pytest.param(
        dedent(
            """\
            try { throw "x"; } catch (e) { e; }
        """
        ),
        ("string", "x"),
        None,
        id="catch-all-binds-thrown-value",
    ),
    pytest.param(
        dedent(
            """\
            int n = 0;
            try { n = 1; } finally { n = n + 10; }
            n;
        """
        ),
        ("number", 11),
        None,
        id="finally-runs",
    ),
    pytest.param(
        dedent(
            """\
            int n = 0;
            try { throw "boom"; } catch (e) { n = 1; } finally { n = n + 10; }
            n;
        """
        ),
        ("number", 11),
        None,
        id="finally-after-catch",
    ),
    pytest.param(
        dedent(
            """\
            try { 1 / 0; } catch (ArithmeticError e) { "div"; }
        """
        ),
        ("string", "div"),
        None,
        id="division-by-zero-caught",
    ),
    pytest.param(
        dedent(
            """\
            try { throw new ValueError("bad"); } catch (ValueError e) { "host"; }
        """
        ),
        ("string", "host"),
        None,
        id="throw-host-exception",
    ),
    pytest.param(
        dedent(
            """\
            try { missing; } catch (e) { 1; }
        """
        ),
        None,
        UndefinedVariableError,
        id="resolution-error-not-catchable",
    ),
    pytest.param("throw null;", None, EvalError, id="throw-null"),
    pytest.param('1 + null;', None, EvalError, id="null-operand"),
    pytest.param('"a" * 2;', None, EvalError, id="bad-operand-types"),
]


@pytest.mark.parametrize("source, expectation, expected_exc", SCENARIOS)
def test_error_handling(source: str, expectation, expected_exc) -> None:
    run_runtime_case(source, expectation, expected_exc)


def _deeper() -> None:
    raise ValueError("exploded in host code")


def explode() -> None:
    _deeper()


@pytest.fixture
def host_interp() -> Interpreter:
    interp = Interpreter()
    interp.declare("explode", explode)
    return interp


def test_get_target_unwraps_one_invocation_layer() -> None:
    inner = KeyError("inner")
    real = ValueError("real")
    real.__cause__ = inner
    wrapper = InvocationError("m", real)

    err = TargetError("Method Invocation m", wrapper, in_native_code=True)

    assert err.get_target() is real


def test_get_target_without_invocation_layer() -> None:
    real = RuntimeError("direct")

    assert TargetError("x", real).get_target() is real
    assert TargetError("x").get_target() is None


def test_message_lists_cause_chain() -> None:
    inner = KeyError("inner")
    real = ValueError("real")
    real.__cause__ = inner
    err = TargetError("Method Invocation m", InvocationError("m", real))

    assert str(err).splitlines() == [
        "Method Invocation m",
        "Caused by: InvocationError: invocation of m failed",
        "ValueError: real",
        "KeyError: 'inner'",
    ]


def test_message_without_cause() -> None:
    assert str(TargetError("plain")) == "plain"


def test_host_exception_from_script_call(host_interp: Interpreter) -> None:
    with pytest.raises(TargetError) as exc_info:
        host_interp.eval("explode();")

    err = exc_info.value
    assert err.in_native_code
    assert err.catchable
    assert err.kind is ErrorKind.TARGET
    target = err.get_target()
    assert isinstance(target, ValueError)
    assert str(target) == "exploded in host code"


def test_native_trace_stops_at_dispatch(host_interp: Interpreter) -> None:
    with pytest.raises(TargetError) as exc_info:
        host_interp.eval("explode();")

    trace = exc_info.value.target_trace()

    assert len(trace) == 2
    assert "at _deeper (" in trace[0]
    assert "at explode (" in trace[1]
    assert all("host.py" not in line for line in trace)


def test_script_origin_has_no_native_trace() -> None:
    interp = Interpreter()

    with pytest.raises(TargetError) as exc_info:
        interp.eval('throw "boom";')

    err = exc_info.value
    assert not err.in_native_code
    assert isinstance(err.get_target(), ThrownValue)
    assert err.target_trace() == []

    out = io.StringIO()
    err.print_stack_trace(out=out)
    assert out.getvalue() == ""


def test_print_stack_trace(host_interp: Interpreter) -> None:
    with pytest.raises(TargetError) as exc_info:
        host_interp.eval("explode();")

    plain = io.StringIO()
    exc_info.value.print_stack_trace(out=plain)
    assert plain.getvalue().splitlines()[0].strip().startswith("at _deeper")

    verbose = io.StringIO()
    exc_info.value.print_stack_trace(debug=True, out=verbose)
    text = verbose.getvalue()
    assert "--- Target Stack Trace ---" in text
    assert text.index("--- Target Stack Trace ---") < text.index("at _deeper")


def test_catch_binds_unwrapped_host_exception(host_interp: Interpreter) -> None:
    caught = host_interp.eval("try { explode(); } catch (ValueError e) { e; }")

    assert isinstance(caught, ValueError)


def test_error_location_is_attached() -> None:
    interp = Interpreter()

    with pytest.raises(UndefinedVariableError) as exc_info:
        interp.eval("int a = 1;\nmissing;")

    assert "(line 2, col 1)" in str(exc_info.value)


def test_call_stack_snapshot_recorded() -> None:
    interp = Interpreter()
    interp.eval("class K { Object run() { return missing; } }")

    with pytest.raises(UndefinedVariableError) as exc_info:
        interp.eval("new K().run();")

    assert exc_info.value.call_stack[0] == "K.run()"
    assert exc_info.value.call_stack[-1] == "global"


def test_classify_keeps_eval_errors() -> None:
    err = ResolutionError("nothing here")

    assert classify_exception(err) is err


def test_classify_wraps_host_exceptions() -> None:
    exc = RuntimeError("r")

    wrapped = classify_exception(exc)

    assert isinstance(wrapped, TargetError)
    assert wrapped.in_native_code
    assert wrapped.message == "Exception in native code: RuntimeError"
    assert wrapped.get_target() is exc


def test_classify_names_invoked_member() -> None:
    exc = KeyError("k")

    wrapped = classify_exception(InvocationError("lookup", exc))

    assert wrapped.message == "Method Invocation lookup"
    assert wrapped.get_target() is exc


RUNAWAY = dedent(
    """\
    int f(int n) { return f(n + 1); }
"""
)


def test_stack_overflow_is_not_catchable() -> None:
    interp = Interpreter()

    with pytest.raises(EvalError, match="Stack overflow in f") as exc_info:
        interp.eval(RUNAWAY + 'try { f(0); } catch (e) { "swallowed"; }')

    err = exc_info.value
    assert not isinstance(err, TargetError)
    assert not err.catchable
    assert isinstance(err.__cause__, RecursionError)


def test_interpreter_usable_after_stack_overflow() -> None:
    interp = Interpreter()
    interp.eval(RUNAWAY)

    with pytest.raises(EvalError):
        interp.eval("f(0);")

    assert len(interp.call_stack) == 1
    assert interp.eval("1 + 1;") == 2


def test_interpreter_failure_is_general_eval_error() -> None:
    err = interpreter_failure(ValueError("x"), "Box.run")

    assert type(err) is EvalError
    assert err.kind is ErrorKind.EVAL
    assert err.message == "Internal error in Box.run: ValueError: x"
    assert interpreter_failure(err, "Box.run") is err
