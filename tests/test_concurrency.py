from __future__ import annotations

import threading
from typing import Dict, List

from tests.support.harness import Interpreter, Scope, make_scope_chain

THREADS = 8
ROUNDS = 200


def _run_threads(target, count: int = THREADS) -> None:
    barrier = threading.Barrier(count)
    errors: List[BaseException] = []

    def worker(index: int) -> None:
        barrier.wait()
        try:
            target(index)
        except BaseException as exc:  # surfaced to the main thread below
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert not errors, errors


def test_concurrent_declares_and_rebinds_on_shared_chain() -> None:
    root, child = make_scope_chain(1)
    root.declare_local("shared", 0)

    def work(index: int) -> None:
        for k in range(ROUNDS):
            child.set_existing("shared", (index, k))
            child.declare_local(f"t{index}_{k}", k)

    _run_threads(work)

    assert not child.has_local("shared")
    assert isinstance(root.lookup_local("shared"), tuple)
    assert len(child.local_names()) == THREADS * ROUNDS


def test_concurrent_children_of_one_parent() -> None:
    root = Scope(name="root")
    root.declare_local("total", 0)
    results: Dict[int, int] = {}
    lock = threading.Lock()

    def work(index: int) -> None:
        scope = Scope(parent=root, name=f"worker{index}")
        scope.declare_local("mine", index)
        for _ in range(ROUNDS):
            scope.set_existing("mine", scope.get("mine") + 1)
        with lock:
            results[index] = scope.get("mine")

    _run_threads(work)

    assert results == {i: i + ROUNDS for i in range(THREADS)}
    assert root.get("total") == 0


def test_concurrent_eval_on_shared_namespace() -> None:
    ns: Dict[str, object] = {}
    interp = Interpreter(ns)

    def work(index: int) -> None:
        interp.eval(f"int v{index} = {index} * 2;")

    _run_threads(work)

    assert ns == {f"v{i}": i * 2 for i in range(THREADS)}


def test_call_stacks_are_per_thread() -> None:
    interp = Interpreter()
    interp.declare("probe", lambda: interp.call_stack.snapshot())
    interp.eval("class W { Object run() { return probe(); } }")
    seen: Dict[int, object] = {}
    lock = threading.Lock()

    def work(index: int) -> None:
        for _ in range(20):
            snapshot = interp.eval("new W().run();")
            with lock:
                seen[index] = snapshot
            assert snapshot == ("W.run()", "global")

    _run_threads(work)

    assert len(seen) == THREADS
    assert len(interp.call_stack) == 1
