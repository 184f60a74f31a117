"""Alias checker.

A compound assignment whose operand reads the storage it updates destroys
the information its inverse needs (x -= x always yields 0). The transformers
insert an RAliasCheck ahead of every compound assignment; the runtime
resolves the target and every place the operand reads, then compares
identities here.
"""

from __future__ import annotations

from typing import Sequence

from .ast import Pos, RBinaryOp, RExpr, RIndex, RUnaryOp, RVar
from .errors import AliasViolation


class Ref:
    """A resolved place: something that can be read, written, and identified."""

    def get(self) -> object:  # pragma: no cover
        raise NotImplementedError

    def set(self, value: object) -> None:  # pragma: no cover
        raise NotImplementedError

    def key(self) -> tuple:  # pragma: no cover
        raise NotImplementedError


class Cell(Ref):
    """Mutable storage for a single value.

    Callers pass Cells for scalar parameters; locals are Cells owned by the
    block that declared them.
    """

    def __init__(self, value: object):
        self.value = value

    def get(self) -> object:
        return self.value

    def set(self, value: object) -> None:
        self.value = value

    def key(self) -> tuple:
        return ("cell", id(self))

    def __repr__(self) -> str:
        return f"Cell({self.value!r})"


class ElementRef(Ref):
    """One element of an array; identity is (array, index)."""

    def __init__(self, array: list, index: int):
        self.array = array
        self.index = index

    def get(self) -> object:
        return self.array[self.index]

    def set(self, value: object) -> None:
        self.array[self.index] = value

    def key(self) -> tuple:
        return ("elem", id(self.array), self.index)


def place_text(expr: RExpr) -> str:
    """Short rendering of a place for diagnostics."""
    if isinstance(expr, RVar):
        return expr.name
    if isinstance(expr, RIndex) and isinstance(expr.obj, RVar):
        return expr.obj.name + "[...]"
    return "<expr>"


def places_read(expr: RExpr) -> list[RExpr]:
    """Every place an expression reads, outermost first.

    An indexed read contributes the element and then the places its index reads.
    """
    if isinstance(expr, RVar):
        return [expr]
    if isinstance(expr, RIndex):
        return [expr] + places_read(expr.index)
    if isinstance(expr, RBinaryOp):
        return places_read(expr.left) + places_read(expr.right)
    if isinstance(expr, RUnaryOp):
        return places_read(expr.operand)
    return []


def check_distinct(
    target: RExpr,
    target_ref: Ref,
    reads: Sequence[tuple[RExpr, Ref]],
    pos: Pos,
) -> None:
    """Raise AliasViolation when any read place resolves to the target's storage.

    reads pairs each place read by the operand (and by the target's own index)
    with its resolved reference.
    """
    key = target_ref.key()
    for expr, ref in reads:
        if ref.key() == key:
            raise AliasViolation(
                "'"
                + place_text(target)
                + "' and '"
                + place_text(expr)
                + "' are aliases of each other (shared value "
                + repr(target_ref.get())
                + ")",
                pos,
            )
