from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, MutableMapping, Optional

from .errors import EvalError, TargetError
from .runtime import Interpreter
from .scope import AssignPolicy

def run(
    source: str,
    namespace: Optional[MutableMapping[str, Any]] = None,
    assign_policy: AssignPolicy = AssignPolicy.DECLARE_LOCAL,
) -> Any:
    """Evaluate `source` in a fresh interpreter, optionally backed by a host mapping."""
    return Interpreter(namespace, assign_policy=assign_policy).eval(source)

def _load_source(arg: Optional[str]) -> str:
    """
    Resolve CLI input into source text.
    - None or "-" => read stdin.
    - Existing path => read file contents.
    - Otherwise treat the argument as literal source.
    """

    if arg is None or arg == "-":
        data = sys.stdin.read()
        if not data:
            raise SystemExit("No input provided on stdin")
        return data

    candidate = Path(arg)
    if candidate.exists():
        return candidate.read_text(encoding="utf-8")

    return arg

def main() -> None:
    debug = False
    policy = AssignPolicy.DECLARE_LOCAL
    arg = None

    for token in sys.argv[1:]:
        if token == "--debug":
            debug = True
            continue

        if token == "--strict":
            policy = AssignPolicy.FAIL
            continue

        if arg is None:
            arg = token
        else:
            raise SystemExit(f"Unexpected argument: {token}")

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    source = _load_source(arg or "-")

    try:
        print(run(source, assign_policy=policy))
    except TargetError as err:
        print(err, file=sys.stderr)
        err.print_stack_trace(debug=debug)
        raise SystemExit(1) from None
    except EvalError as err:
        print(err, file=sys.stderr)
        raise SystemExit(1) from None

if __name__ == "__main__":
    main()
