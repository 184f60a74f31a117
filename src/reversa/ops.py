"""Reversible operator table."""

from __future__ import annotations

from .ast import Pos
from .errors import NonInvertibleOperator

INVERSES: dict[str, str] = {
    "+=": "-=",
    "-=": "+=",
    "^=": "^=",
}


def check_op(op: str, pos: Pos | None = None) -> str:
    """Return op unchanged if it is one of the reversible compound operators."""
    if op not in INVERSES:
        raise NonInvertibleOperator(op, pos)
    return op


def invert(op: str, pos: Pos | None = None) -> str:
    """+= <-> -=, ^= is its own inverse."""
    if op not in INVERSES:
        raise NonInvertibleOperator(op, pos)
    return INVERSES[op]


def apply_op(op: str, current: int, operand: int) -> int:
    if op == "+=":
        return current + operand
    if op == "-=":
        return current - operand
    if op == "^=":
        return current ^ operand
    raise NonInvertibleOperator(op)
