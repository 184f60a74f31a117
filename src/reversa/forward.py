"""Forward transformer.

Produces the directly runnable form of a routine body: the same statements,
with an alias check inserted ahead of every compound assignment, calls
directed at the callee's forward entry, and local lifetimes validated.
"""

from __future__ import annotations

from .ast import (
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
from .ops import check_op
from .validate import (
    check_compound_assign,
    check_swap,
    describe,
    require_place,
    require_pure,
    resolve_call,
)


def transform_forward(
    block: RBlock, routines: dict[str, RRoutine] | None = None
) -> RBlock:
    """Forward-transform a block. Raises TransformError on the first violation."""
    return _Forward(routines).block(block)


class _Forward:
    def __init__(self, routines: dict[str, RRoutine] | None):
        self.routines = routines

    def block(self, block: RBlock) -> RBlock:
        scope = LocalScope()
        out: list[RStmt] = []
        for st in block.stmts:
            out.extend(self.stmt(st, scope))
        scope.close(block.pos)
        return RBlock(block.pos, out)

    def stmt(self, st: RStmt, scope: LocalScope) -> list[RStmt]:
        if isinstance(st, RLocalDecl):
            require_pure(st.init, "initializer of '" + st.name + "'")
            scope.declare(st.name, st.pos)
            return [RLocalDecl(st.pos, st.name, st.init)]
        if isinstance(st, RBlockStmt):
            return [RBlockStmt(st.pos, self.block(st.block))]
        if isinstance(st, RExprStmt):
            return self.expr_stmt(st, scope)
        raise UnsupportedConstruct("unsupported statement", st.pos)

    def expr_stmt(self, st: RExprStmt, scope: LocalScope) -> list[RStmt]:
        e = st.expr
        if isinstance(e, RRetire):
            require_pure(e.expected, "expected value of '" + e.name + "'")
            scope.retire(e.name, e.pos)
            return [RExprStmt(st.pos, RRetire(e.pos, e.name, e.expected))]
        if isinstance(e, RCompoundAssign):
            check_op(e.op, e.pos)
            check_compound_assign(e)
            return [
                RExprStmt(st.pos, RAliasCheck(e.pos, e.target, e.value)),
                RExprStmt(st.pos, RCompoundAssign(e.pos, e.target, e.op, e.value)),
            ]
        if isinstance(e, RRoutineCall):
            resolve_call(e, self.routines)
            return [RExprStmt(st.pos, RRoutineCall(e.pos, e.name, FORWARD, list(e.args)))]
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
                e.pos, e.before, self.block(e.then_body), else_body, e.after, FORWARD
            )
            return [RExprStmt(st.pos, cond)]
        if isinstance(e, RLoop):
            if e.side != FORWARD:
                raise UnsupportedConstruct("loop is already reversed", e.pos)
            require_pure(e.from_cond, "entry assertion")
            require_pure(e.until, "exit guard")
            do_body = self.block(e.do_body) if e.do_body is not None else None
            loop = RLoop(
                e.pos, e.from_cond, do_body, self.block(e.body), e.until, FORWARD
            )
            return [RExprStmt(st.pos, loop)]
        raise UnsupportedConstruct(
            describe(e) + " cannot be used as a statement", e.pos
        )
