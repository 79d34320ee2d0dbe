from __future__ import annotations

import threading
from pathlib import Path
from types import SimpleNamespace
from typing import Optional

from lark import Lark, Tree, UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken

from .errors import EvalError

GRAMMAR_PATH = Path(__file__).resolve().parent / "grammar.lark"

_PARSER: Optional[Lark] = None
_PARSER_LOCK = threading.Lock()

class ParseError(EvalError):
    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(message)
        self.line = line
        self.column = column

        if line is not None:
            self.hs_meta = SimpleNamespace(line=line, column=column)

def _read_grammar(grammar_path: Optional[str]) -> str:
    if grammar_path:
        p = Path(grammar_path)
        if p.exists():
            return p.read_text(encoding="utf-8")

    if GRAMMAR_PATH.exists():
        return GRAMMAR_PATH.read_text(encoding="utf-8")

    raise FileNotFoundError("grammar.lark not found. pass an explicit path")

def make_parser(grammar_path: Optional[str] = None) -> Lark:
    grammar = _read_grammar(grammar_path)

    return Lark(
        grammar,
        start="start",
        parser="earley",
        lexer="basic",
        propagate_positions=True,
    )

def get_parser() -> Lark:
    global _PARSER

    with _PARSER_LOCK:
        if _PARSER is None:
            _PARSER = make_parser()
        return _PARSER

def _describe(exc: UnexpectedInput) -> str:
    match exc:
        case UnexpectedEOF():
            return "Unexpected end of input"
        case UnexpectedToken(token=token):
            return f"Unexpected token {token.value!r}"
        case UnexpectedCharacters(char=char):
            return f"Unexpected character {char!r}"
        case _:
            return "Syntax error"

def parse_source(source: str) -> Tree:
    try:
        return get_parser().parse(source)
    except UnexpectedInput as exc:
        line = getattr(exc, "line", None)
        column = getattr(exc, "column", None)

        if line is not None and line < 0:
            line, column = None, None

        raise ParseError(_describe(exc), line, column) from exc
