"""Static checks shared by the forward and reverse transformers."""

from __future__ import annotations

from .ast import (
    RArrayLit,
    RBinaryOp,
    RCompoundAssign,
    RExpr,
    RFuncCall,
    RIndex,
    RRoutine,
    RRoutineCall,
    RSwap,
    RUnaryOp,
    RVar,
    is_place,
    is_pure,
)
from .errors import ArityMismatch, UnknownRoutine, UnsupportedConstruct


def describe(expr: RExpr) -> str:
    """Human name of an expression kind for diagnostics."""
    if isinstance(expr, RArrayLit):
        return "array literal"
    if isinstance(expr, RFuncCall):
        return "call to '" + expr.name + "' (only call/swap are allowed)"
    if isinstance(expr, RBinaryOp):
        return "binary '" + expr.op + "' expression"
    if isinstance(expr, RUnaryOp):
        return "unary '" + expr.op + "' expression"
    if isinstance(expr, (RVar, RIndex)):
        return "bare read"
    return type(expr).__name__[1:].lower()


def require_place(expr: RExpr, role: str) -> None:
    if not is_place(expr):
        raise UnsupportedConstruct(
            role + " must be a variable or an indexed variable, got " + describe(expr),
            expr.pos,
        )


def require_pure(expr: RExpr, role: str) -> None:
    if not is_pure(expr):
        raise UnsupportedConstruct(
            role + " must be a pure expression, got " + describe(expr), expr.pos
        )


def reads_var(expr: RExpr, name: str) -> bool:
    if isinstance(expr, RVar):
        return expr.name == name
    if isinstance(expr, RIndex):
        return reads_var(expr.obj, name) or reads_var(expr.index, name)
    if isinstance(expr, RBinaryOp):
        return reads_var(expr.left, name) or reads_var(expr.right, name)
    if isinstance(expr, RUnaryOp):
        return reads_var(expr.operand, name)
    return False


def check_compound_assign(expr: RCompoundAssign) -> None:
    """Target must be a place; the operand must be pure.

    An operand that mentions a bare-variable target anywhere (x += x * 2,
    i += a[i]) reads a value the assignment changes, so the inverse would read
    a different one. Only the operand x itself (x -= x) is left to the runtime
    alias check. An indexed target whose index reads its own array
    (a[a[0]] += 1) can move the element it updates.
    """
    require_place(expr.target, "assignment target")
    require_pure(expr.value, "assignment operand")
    target = expr.target
    if (
        isinstance(target, RVar)
        and not isinstance(expr.value, RVar)
        and reads_var(expr.value, target.name)
    ):
        raise UnsupportedConstruct(
            "operand of '" + expr.op + "' reads its own target '" + target.name + "'",
            expr.pos,
        )
    if (
        isinstance(target, RIndex)
        and isinstance(target.obj, RVar)
        and reads_var(target.index, target.obj.name)
    ):
        raise UnsupportedConstruct(
            "index of '" + target.obj.name + "' reads the array it updates",
            target.pos,
        )


def check_swap(expr: RSwap) -> None:
    """Both operands are places whose indices read neither operand's variable."""
    require_place(expr.left, "swap operand")
    require_place(expr.right, "swap operand")
    names = [_base_name(expr.left), _base_name(expr.right)]
    for place in (expr.left, expr.right):
        if not isinstance(place, RIndex):
            continue
        for name in names:
            if reads_var(place.index, name):
                raise UnsupportedConstruct(
                    "swap index reads the swapped variable '" + name + "'", place.pos
                )


def _base_name(place: RExpr) -> str:
    if isinstance(place, RIndex):
        place = place.obj
    assert isinstance(place, RVar)
    return place.name


def resolve_call(call: RRoutineCall, routines: dict[str, RRoutine] | None) -> None:
    """Static name lookup; arguments must be places (passed by reference)."""
    for arg in call.args:
        require_place(arg, "argument of '" + call.name + "'")
    if routines is None:
        return
    callee = routines.get(call.name)
    if callee is None:
        raise UnknownRoutine("call to unknown routine '" + call.name + "'", call.pos)
    if len(callee.params) != len(call.args):
        raise ArityMismatch(
            f"'{call.name}' takes {len(callee.params)} argument(s), got {len(call.args)}",
            call.pos,
        )
