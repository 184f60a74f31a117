"""Tests for the local-lifetime checker and the operator table."""

import pytest

from reversa.ast import Pos
from reversa.errors import (
    DuplicateLocal,
    NonInvertibleOperator,
    UnknownLocal,
    UnretiredLocals,
)
from reversa.lifetime import LocalScope
from reversa.ops import INVERSES, apply_op, check_op, invert


def _pos(line: int) -> Pos:
    return Pos(line, 1)


def test_declare_and_retire():
    scope = LocalScope()
    scope.declare("t", _pos(1))
    assert scope.is_live("t")
    scope.retire("t", _pos(2))
    assert not scope.is_live("t")
    scope.close(_pos(3))


def test_duplicate_declaration():
    scope = LocalScope()
    scope.declare("t", _pos(1))
    with pytest.raises(DuplicateLocal) as exc:
        scope.declare("t", _pos(4))
    assert exc.value.pos.line == 4
    assert "declared at line 1" in exc.value.msg


def test_retire_unknown():
    scope = LocalScope()
    with pytest.raises(UnknownLocal):
        scope.retire("t", _pos(1))


def test_retire_twice():
    scope = LocalScope()
    scope.declare("t", _pos(1))
    scope.retire("t", _pos(2))
    with pytest.raises(UnknownLocal):
        scope.retire("t", _pos(3))


def test_close_reports_live_names_in_order():
    scope = LocalScope()
    scope.declare("z", _pos(1))
    scope.declare("a", _pos(2))
    scope.declare("m", _pos(3))
    scope.retire("a", _pos(4))
    with pytest.raises(UnretiredLocals) as exc:
        scope.close(_pos(5))
    assert exc.value.names == ["z", "m"]


def test_redeclare_after_retire():
    scope = LocalScope()
    scope.declare("t", _pos(1))
    scope.retire("t", _pos(2))
    scope.declare("t", _pos(3))
    assert scope.is_live("t")


@pytest.mark.parametrize("op", ["+=", "-=", "^="])
def test_invert_is_an_involution(op):
    assert invert(invert(op)) == op
    assert check_op(op) == op


def test_inverse_table():
    assert invert("+=") == "-="
    assert invert("-=") == "+="
    assert invert("^=") == "^="
    assert set(INVERSES) == {"+=", "-=", "^="}


@pytest.mark.parametrize("op", ["=", "*=", "/=", "%=", "&=", "|=", "<<=", ">>="])
def test_other_operators_are_rejected(op):
    with pytest.raises(NonInvertibleOperator) as exc:
        invert(op)
    assert exc.value.op == op
    with pytest.raises(NonInvertibleOperator):
        check_op(op)


def test_apply_op_undone_by_inverse():
    for op in ("+=", "-=", "^="):
        value = apply_op(op, 37, 12)
        assert apply_op(invert(op), value, 12) == 37
