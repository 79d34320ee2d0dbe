from __future__ import annotations

from textwrap import dedent

import pytest

from tests.support.harness import (
    NOT_FOUND,
    AssignPolicy,
    Interpreter,
    ResolutionError,
    Scope,
    ScopeReleasedError,
    UndefinedVariableError,
    make_scope_chain,
    run_runtime_case,
)

SCENARIOS = [
    pytest.param(
        dedent(
            """\
            int x = 42;
            { { x = 4711; } }
            x;
        """
        ),
        ("number", 4711),
        None,
        id="assign-reaches-root-from-nested-block",
    ),
    pytest.param(
        dedent(
            """\
            int x = 42;
            { int x = 1; x = 2; }
            x;
        """
        ),
        ("number", 42),
        None,
        id="typed-declaration-shadows",
    ),
    pytest.param(
        dedent(
            """\
            { y = 5; }
            y;
        """
        ),
        None,
        UndefinedVariableError,
        id="undeclared-assignment-stays-local",
    ),
    pytest.param(
        dedent(
            """\
            int counter = 0;
            void bump() { counter = counter + 1; }
            bump();
            bump();
            counter;
        """
        ),
        ("number", 2),
        None,
        id="method-assigns-global",
    ),
    pytest.param(
        dedent(
            """\
            int twice(int a) { a * 2; }
            twice(21);
        """
        ),
        ("number", 42),
        None,
        id="method-returns-last-value",
    ),
    pytest.param(
        dedent(
            """\
            void nothing() { 5; }
            nothing();
        """
        ),
        ("null", None),
        None,
        id="void-method-returns-null",
    ),
    pytest.param(
        dedent(
            """\
            int x = 1;
            return x + 1;
            x = 100;
        """
        ),
        ("number", 2),
        None,
        id="top-level-return",
    ),
    pytest.param(
        dedent(
            """\
            int a = 3;
            int shadow(int a) { a = a + 1; a; }
            shadow(10);
            a;
        """
        ),
        ("number", 3),
        None,
        id="parameter-shadows-global",
    ),
    pytest.param(
        dedent(
            """\
            Object o = null;
            o;
        """
        ),
        ("null", None),
        None,
        id="null-declaration",
    ),
    pytest.param(
        dedent(
            """\
            int n;
            boolean b;
            if (b) { n = 1; } else { n = n + 7; }
            n;
        """
        ),
        ("number", 7),
        None,
        id="primitive-defaults",
    ),
    pytest.param("missing;", None, ResolutionError, id="undefined-name"),
]


@pytest.mark.parametrize("source, expectation, expected_exc", SCENARIOS)
def test_scoping(source: str, expectation, expected_exc) -> None:
    run_runtime_case(source, expectation, expected_exc)


def test_root_binding_visible_at_depth() -> None:
    root, *_, leaf = make_scope_chain(3)
    root.declare_local("a", 1)

    assert leaf.get("a") == 1
    assert leaf.has("a")
    assert not leaf.has_local("a")
    assert leaf.find("a") is root


def test_set_existing_rebinds_ancestor_slot() -> None:
    root, child, grandchild = make_scope_chain(2)
    root.declare_local("x", 42)

    written = grandchild.set_existing("x", 4711)

    assert written is root
    assert root.lookup_local("x") == 4711
    assert child.lookup_local("x") is NOT_FOUND
    assert grandchild.lookup_local("x") is NOT_FOUND


def test_declare_local_shadows_without_touching_parent() -> None:
    root, child = make_scope_chain(1)
    root.declare_local("x", 42)

    child.declare_local("x", 4711)

    assert child.get("x") == 4711
    assert root.get("x") == 42

    child.set_existing("x", 1)
    assert child.get("x") == 1
    assert root.get("x") == 42


def test_set_existing_unbound_declares_locally_by_default() -> None:
    root, child = make_scope_chain(1)

    written = child.set_existing("fresh", 9)

    assert written is child
    assert root.lookup_local("fresh") is NOT_FOUND


def test_fail_policy_rejects_unbound_assignment() -> None:
    root = Scope(name="root", assign_policy=AssignPolicy.FAIL)
    child = Scope(parent=root, name="child")

    assert child.assign_policy is AssignPolicy.FAIL
    with pytest.raises(UndefinedVariableError, match="Undefined variable: nope"):
        child.set_existing("nope", 1)

    written = child.set_existing("nope", 1, policy=AssignPolicy.DECLARE_LOCAL)
    assert written is child


def test_fail_policy_through_interpreter() -> None:
    interp = Interpreter(assign_policy=AssignPolicy.FAIL)
    interp.eval("int known = 1;")

    assert interp.eval("known = 2;") == 2
    with pytest.raises(UndefinedVariableError):
        interp.eval("unknown = 2;")


def test_get_missing_raises() -> None:
    _, child = make_scope_chain(1)

    with pytest.raises(UndefinedVariableError) as exc_info:
        child.get("zz")

    assert exc_info.value.name == "zz"
    assert child.lookup("zz") is NOT_FOUND


def test_released_scope_is_detected() -> None:
    root, child = make_scope_chain(1)
    root.declare_local("a", 1)

    root.release()

    assert root.released
    with pytest.raises(ScopeReleasedError):
        child.get("a")
    with pytest.raises(ScopeReleasedError):
        root.declare_local("b", 2)


def test_interpreter_set_from_child_scope(interp: Interpreter) -> None:
    interp.declare("x", 42)
    child = interp.child_scope("worker")

    interp.eval("x = 4711;", child)

    assert interp.get("x") == 4711
    assert not child.has_local("x")
    assert child.context is interp


def test_interpreter_set_and_declare(interp: Interpreter) -> None:
    interp.declare("name", None)
    assert interp.get("name") is None

    written = interp.set("name", "value")
    assert written is interp.global_scope
    assert interp.eval("name;") == "value"
