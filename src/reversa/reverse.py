"""Reverse transformer.

Derives the exact inverse of a routine body from its parsed tree
(never from the forward output). Every statement is rewritten to its inverse,
then the block's statements are put in reverse order. Nested blocks and
control-flow bodies go through the same rewrite, so reversal is structural at
every depth.

    local n = e        ->  delocal n = e
    delocal n = e      ->  local n = e
    t op= s            ->  distinct(t, s); t invert(op)= s
    call F(args)       ->  uncall F(args)
    if/from ... fi/until  -> same node, reversed bodies, run on the backward side
    swap(a, b)         ->  swap(a, b)
"""

from __future__ import annotations

from .ast import (
    BACKWARD,
    FORWARD,
    RAliasCheck,
    RBlock,
    RBlockStmt,
    RCompoundAssign,
    RConditional,
    RExprStmt,
    RLocalDecl,
    RLoop,
    RRetire,
    RRoutine,
    RRoutineCall,
    RStmt,
    RSwap,
)
from .errors import UnsupportedConstruct
from .lifetime import LocalScope
from .ops import invert
from .validate import (
    check_compound_assign,
    check_swap,
    describe,
    require_place,
    require_pure,
    resolve_call,
)


def transform_reverse(
    block: RBlock, routines: dict[str, RRoutine] | None = None
) -> RBlock:
    """Reverse-transform a block. Raises TransformError on the first violation."""
    return _Reverse(routines).block(block)


class _Reverse:
    def __init__(self, routines: dict[str, RRoutine] | None):
        self.routines = routines

    def block(self, block: RBlock) -> RBlock:
        groups = [self.stmt(st) for st in block.stmts]
        groups.reverse()
        out: list[RStmt] = []
        for group in groups:
            out.extend(group)
        self.check_lifetimes(out, block)
        return RBlock(block.pos, out)

    def check_lifetimes(self, stmts: list[RStmt], block: RBlock) -> None:
        # Rewritten statements, in the order the backward program runs them.
        scope = LocalScope()
        for st in stmts:
            if isinstance(st, RLocalDecl):
                scope.declare(st.name, st.pos)
            elif isinstance(st, RExprStmt) and isinstance(st.expr, RRetire):
                scope.retire(st.expr.name, st.expr.pos)
        scope.close(block.pos)

    def stmt(self, st: RStmt) -> list[RStmt]:
        if isinstance(st, RLocalDecl):
            require_pure(st.init, "initializer of '" + st.name + "'")
            return [RExprStmt(st.pos, RRetire(st.pos, st.name, st.init))]
        if isinstance(st, RBlockStmt):
            return [RBlockStmt(st.pos, self.block(st.block))]
        if isinstance(st, RExprStmt):
            return self.expr_stmt(st)
        raise UnsupportedConstruct("unsupported statement", st.pos)

    def expr_stmt(self, st: RExprStmt) -> list[RStmt]:
        e = st.expr
        if isinstance(e, RRetire):
            require_pure(e.expected, "expected value of '" + e.name + "'")
            return [RLocalDecl(st.pos, e.name, e.expected)]
        if isinstance(e, RCompoundAssign):
            op = invert(e.op, e.pos)
            check_compound_assign(e)
            return [
                RExprStmt(st.pos, RAliasCheck(e.pos, e.target, e.value)),
                RExprStmt(st.pos, RCompoundAssign(e.pos, e.target, op, e.value)),
            ]
        if isinstance(e, RRoutineCall):
            if e.direction != FORWARD:
                raise UnsupportedConstruct(
                    "call to '" + e.name + "' is not directed forward", e.pos
                )
            resolve_call(e, self.routines)
            return [RExprStmt(st.pos, RRoutineCall(e.pos, e.name, BACKWARD, list(e.args)))]
        if isinstance(e, RSwap):
            check_swap(e)
            return [RExprStmt(st.pos, RSwap(e.pos, e.left, e.right))]
        if isinstance(e, RConditional):
            if e.side != FORWARD:
                raise UnsupportedConstruct("conditional is already reversed", e.pos)
            require_pure(e.before, "entry guard")
            require_pure(e.after, "exit assertion")
            else_body = self.block(e.else_body) if e.else_body is not None else None
            cond = RConditional(
                e.pos, e.before, self.block(e.then_body), else_body, e.after, BACKWARD
            )
            return [RExprStmt(st.pos, cond)]
        if isinstance(e, RLoop):
            if e.side != FORWARD:
                raise UnsupportedConstruct("loop is already reversed", e.pos)
            require_pure(e.from_cond, "entry assertion")
            require_pure(e.until, "exit guard")
            do_body = self.block(e.do_body) if e.do_body is not None else None
            loop = RLoop(
                e.pos, e.from_cond, do_body, self.block(e.body), e.until, BACKWARD
            )
            return [RExprStmt(st.pos, loop)]
        raise UnsupportedConstruct(
            describe(e) + " cannot be used as a statement", e.pos
        )
