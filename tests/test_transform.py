"""Tests for the forward and reverse transformers."""

import pytest

from reversa import emit, parse, transform
from reversa.ast import (
    BACKWARD,
    FORWARD,
    Pos,
    RAliasCheck,
    RBlock,
    RBlockStmt,
    RCompoundAssign,
    RConditional,
    RExprStmt,
    RIntLit,
    RLocalDecl,
    RLoop,
    RRetire,
    RRoutineCall,
    RSwap,
    RVar,
)
from reversa.errors import (
    DuplicateLocal,
    NonInvertibleOperator,
    UnknownLocal,
    UnretiredLocals,
    UnsupportedConstruct,
)
from reversa.forward import transform_forward
from reversa.reverse import transform_reverse

P = Pos(1, 1)


def _body(source: str) -> RBlock:
    program = parse(source)
    return program.routines[0].body


def _kinds(block: RBlock) -> list[str]:
    out: list[str] = []
    for st in block.stmts:
        if isinstance(st, RExprStmt):
            out.append(type(st.expr).__name__)
        else:
            out.append(type(st).__name__)
    return out


def _assign(name: str, op: str, value: int) -> RExprStmt:
    return RExprStmt(P, RCompoundAssign(P, RVar(P, name), op, RIntLit(P, value)))


# ---------------------------------------------------------------------------
# Forward
# ---------------------------------------------------------------------------


def test_forward_inserts_alias_check_before_each_assignment():
    block = _body("fn F(a: int, b: int) { a += b  b -= 1 }")
    out = transform_forward(block)
    assert _kinds(out) == [
        "RAliasCheck",
        "RCompoundAssign",
        "RAliasCheck",
        "RCompoundAssign",
    ]
    check = out.stmts[0].expr
    assert isinstance(check, RAliasCheck)
    assert check.target.name == "a"
    assert check.source.name == "b"


def test_forward_keeps_operator_and_order():
    block = _body("fn F(a: int) { a += 1  a ^= 3  a -= 2 }")
    out = transform_forward(block)
    ops = [st.expr.op for st in out.stmts if isinstance(st.expr, RCompoundAssign)]
    assert ops == ["+=", "^=", "-="]


def test_forward_passes_locals_and_retires_through():
    block = _body("fn F(x: int) { local t = 2  x += t  delocal t = 2 }")
    out = transform_forward(block)
    assert isinstance(out.stmts[0], RLocalDecl)
    assert isinstance(out.stmts[-1].expr, RRetire)


def test_forward_forces_call_direction():
    call = RRoutineCall(P, "G", BACKWARD, [RVar(P, "x")])
    out = transform_forward(RBlock(P, [RExprStmt(P, call)]))
    assert out.stmts[0].expr.direction == FORWARD


def test_forward_does_not_mutate_input():
    block = _body("fn F(a: int) { a += 1 }")
    before = len(block.stmts)
    transform_forward(block)
    assert len(block.stmts) == before
    assert isinstance(block.stmts[0].expr, RCompoundAssign)


def test_forward_recurses_into_control_flow():
    block = _body(
        """
fn F(i: int, x: int) {
    if x == 0 { x += 1 } else { x -= 1 } fi x == 1
    from i == 0 do { i += 1 } loop { x += i } until i == 3
}
"""
    )
    out = transform_forward(block)
    cond = out.stmts[0].expr
    loop = out.stmts[1].expr
    assert isinstance(cond, RConditional) and cond.side == FORWARD
    assert _kinds(cond.then_body) == ["RAliasCheck", "RCompoundAssign"]
    assert _kinds(cond.else_body) == ["RAliasCheck", "RCompoundAssign"]
    assert isinstance(loop, RLoop) and loop.side == FORWARD
    assert _kinds(loop.do_body) == ["RAliasCheck", "RCompoundAssign"]


def test_forward_nested_block_scope_is_opaque():
    inner = RBlock(P, [RLocalDecl(P, "t", RIntLit(P, 0))])
    block = RBlock(P, [RBlockStmt(P, inner)])
    with pytest.raises(UnretiredLocals) as exc:
        transform_forward(block)
    assert exc.value.names == ["t"]


def test_forward_lifetime_errors():
    dup = RBlock(
        P,
        [
            RLocalDecl(P, "t", RIntLit(P, 0)),
            RLocalDecl(Pos(2, 1), "t", RIntLit(P, 0)),
        ],
    )
    with pytest.raises(DuplicateLocal) as exc:
        transform_forward(dup)
    assert "declared at line 1" in str(exc.value)
    unknown = RBlock(P, [RExprStmt(P, RRetire(P, "t", RIntLit(P, 0)))])
    with pytest.raises(UnknownLocal):
        transform_forward(unknown)


def test_forward_rejects_non_invertible_operator():
    with pytest.raises(NonInvertibleOperator) as exc:
        transform_forward(RBlock(P, [_assign("x", "*=", 2)]))
    assert exc.value.op == "*="


@pytest.mark.parametrize(
    "stmt",
    [
        "i += a[i]",
        "i -= a[i + 1] * 2",
        "i ^= a[a[i]]",
        "a[a[0]] += 1",
        "a[i + a[1]] -= i",
        "swap(a[i], i)",
        "swap(a[a[0]], i)",
    ],
)
def test_statements_reading_what_they_update_are_rejected(stmt):
    block = _body("fn F(a: [int], i: int) { " + stmt + " }")
    with pytest.raises(UnsupportedConstruct):
        transform_forward(block)
    with pytest.raises(UnsupportedConstruct):
        transform_reverse(block)


@pytest.mark.parametrize(
    "stmt", ["i -= i", "a[0] += a[i]", "a[i] += i", "swap(a[i], a[0])"]
)
def test_possible_aliases_are_left_to_the_runtime(stmt):
    block = _body("fn F(a: [int], i: int) { " + stmt + " }")
    transform_forward(block)
    transform_reverse(block)


def test_forward_rejects_reversed_control_flow():
    cond = RConditional(
        P, RVar(P, "c"), RBlock(P, []), None, RVar(P, "c"), BACKWARD
    )
    with pytest.raises(UnsupportedConstruct):
        transform_forward(RBlock(P, [RExprStmt(P, cond)]))


# ---------------------------------------------------------------------------
# Reverse
# ---------------------------------------------------------------------------


def test_reverse_reverses_order_and_inverts_operators():
    block = RBlock(P, [_assign("a", "+=", 1), _assign("b", "-=", 2), _assign("c", "^=", 3)])
    out = transform_reverse(block)
    assigns = [st.expr for st in out.stmts if isinstance(st.expr, RCompoundAssign)]
    assert [(a.target.name, a.op) for a in assigns] == [
        ("c", "^="),
        ("b", "+="),
        ("a", "-="),
    ]


def test_reverse_keeps_alias_check_ahead_of_assignment():
    block = _body("fn F(a: int, b: int) { a += b  b += 1 }")
    out = transform_reverse(block)
    assert _kinds(out) == [
        "RAliasCheck",
        "RCompoundAssign",
        "RAliasCheck",
        "RCompoundAssign",
    ]
    assert out.stmts[1].expr.target.name == "b"
    assert out.stmts[3].expr.target.name == "a"


def test_reverse_swaps_local_and_delocal():
    block = _body("fn F(x: int) { local t = 2  x += t  delocal t = 7 }")
    out = transform_reverse(block)
    first = out.stmts[0]
    last = out.stmts[-1]
    assert isinstance(first, RLocalDecl)
    assert first.name == "t" and first.init.value == 7
    assert isinstance(last.expr, RRetire)
    assert last.expr.name == "t" and last.expr.expected.value == 2


def test_reverse_retargets_calls():
    block = _body("fn F(x: int) { call G(x) }")
    out = transform_reverse(block)
    assert out.stmts[0].expr.direction == BACKWARD


def test_reverse_rejects_non_forward_call():
    call = RRoutineCall(P, "G", BACKWARD, [RVar(P, "x")])
    with pytest.raises(UnsupportedConstruct) as exc:
        transform_reverse(RBlock(P, [RExprStmt(P, call)]))
    assert "not directed forward" in str(exc.value)


def test_reverse_swap_is_self_inverse():
    block = _body("fn F(a: int, b: int) { swap(a, b) }")
    out = transform_reverse(block)
    assert isinstance(out.stmts[0].expr, RSwap)


def test_reverse_nested_blocks_are_reversed_structurally():
    block = _body(
        """
fn F(x: int, y: int) {
    x += 1
    {
        y += 1
        y += 2
    }
    x += 3
}
"""
    )
    out = transform_reverse(block)
    assert out.stmts[1].expr.value.value == 3
    nested = out.stmts[2]
    assert isinstance(nested, RBlockStmt)
    values = [
        st.expr.value.value
        for st in nested.block.stmts
        if isinstance(st.expr, RCompoundAssign)
    ]
    assert values == [2, 1]
    assert out.stmts[-1].expr.value.value == 1


def test_reverse_control_flow_runs_on_backward_side():
    block = _body(
        """
fn F(i: int) {
    from i == 0 do { i += 1 } loop { i += 2 } until i == 7
}
"""
    )
    out = transform_reverse(block)
    loop = out.stmts[0].expr
    assert isinstance(loop, RLoop)
    assert loop.side == BACKWARD
    assert loop.do_body.stmts[1].expr.op == "-="
    assert loop.body.stmts[1].expr.op == "-="


def test_reverse_lifetime_checked_on_rewritten_stream():
    block = _body("fn F(x: int) { delocal t = 0  local t = 0 }")
    with pytest.raises(UnknownLocal):
        transform_forward(block)
    # rewritten and reversed: delocal t, then local t
    with pytest.raises(UnknownLocal):
        transform_reverse(block)


def test_reverse_rejects_bare_expression():
    block = _body("fn F(x: int) { x * 2 }")
    with pytest.raises(UnsupportedConstruct):
        transform_reverse(block)


# ---------------------------------------------------------------------------
# Program driver
# ---------------------------------------------------------------------------


def test_transform_produces_both_programs():
    program = parse("-- pragma int-width 16\nfn A(x: int) { x += 1 }\nfn B(x: int) { call A(x) }")
    forward, backward = transform(program)
    assert [r.name for r in forward.routines] == ["A", "B"]
    assert [r.name for r in backward.routines] == ["A", "B"]
    assert forward.int_width == 16 and backward.int_width == 16
    assert backward.routines[0].params[0].name == "x"


def test_transform_error_carries_routine_name():
    program = parse("fn Good(x: int) { }\nfn Bad(x: int) { x *= 2 }")
    with pytest.raises(NonInvertibleOperator) as exc:
        transform(program)
    assert exc.value.routine == "Bad"
    assert str(exc.value).startswith("Bad: operator '*=' has no inverse")


def test_expanded_programs_render():
    program = parse(
        """
fn F(x: int, y: int) {
    if x == 0 { y += 1 } fi y == 1
    call F(x, y)
}
"""
    )
    forward, backward = transform(program)
    fwd = emit(forward)
    bwd = emit(backward)
    assert "distinct(y, 1)" in fwd
    assert "call F(x, y)" in fwd
    assert "uncall F(x, y)" in bwd
    assert "if y == 1 {" in bwd
    assert "} fi x == 0" in bwd
    assert "y -= 1" in bwd
