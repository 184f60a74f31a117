"""Reversa AST for the restricted reversible dialect.

Statements and expressions are closed sets of dataclasses. Only the effectful
expressions below may appear as statements; pure expressions are operands.
"""

from __future__ import annotations

from dataclasses import dataclass


FORWARD: str = "forward"
BACKWARD: str = "backward"


# ============================================================
# POSITION
# ============================================================


@dataclass
class Pos:
    """Source position, 1-indexed."""

    line: int
    col: int


# ============================================================
# PROGRAM
# ============================================================


@dataclass
class RParam:
    """Routine parameter: a mutable reference to an int, bool, or [int]."""

    pos: Pos
    name: str
    typ: str


@dataclass
class RBlock:
    """{ stmts }. Introduces its own scope for locals."""

    pos: Pos
    stmts: list[RStmt]


@dataclass
class RRoutine:
    """fn Name(params) { body }."""

    pos: Pos
    name: str
    params: list[RParam]
    body: RBlock


@dataclass
class RProgram:
    """Top-level program: list of routines."""

    routines: list[RRoutine]
    int_width: int | None = None

    def find(self, name: str) -> RRoutine | None:
        for r in self.routines:
            if r.name == name:
                return r
        return None


# ============================================================
# STATEMENTS
# ============================================================


@dataclass
class RStmt:
    """Base for all statements."""

    pos: Pos


@dataclass
class RLocalDecl(RStmt):
    """local name = init."""

    name: str
    init: RExpr


@dataclass
class RExprStmt(RStmt):
    """Expression evaluated for effect."""

    expr: RExpr


@dataclass
class RBlockStmt(RStmt):
    """Nested block."""

    block: RBlock


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass
class RExpr:
    """Base for all expressions."""

    pos: Pos


@dataclass
class RIntLit(RExpr):
    """Integer literal."""

    value: int


@dataclass
class RBoolLit(RExpr):
    """true or false."""

    value: bool


@dataclass
class RVar(RExpr):
    """Variable reference."""

    name: str


@dataclass
class RIndex(RExpr):
    """obj[index]."""

    obj: RExpr
    index: RExpr


@dataclass
class RBinaryOp(RExpr):
    """left op right."""

    op: str
    left: RExpr
    right: RExpr


@dataclass
class RUnaryOp(RExpr):
    """op operand."""

    op: str
    operand: RExpr


@dataclass
class RArrayLit(RExpr):
    """[elements]. Parsed, never invertible."""

    elements: list[RExpr]


@dataclass
class RFuncCall(RExpr):
    """name(args) without call/uncall. Parsed, never invertible."""

    name: str
    args: list[RExpr]


# ── Effectful ───────────────────────────────────────────────


@dataclass
class RCompoundAssign(RExpr):
    """target op= value."""

    target: RExpr
    op: str
    value: RExpr


@dataclass
class RRoutineCall(RExpr):
    """call Name(args) / uncall Name(args)."""

    name: str
    direction: str
    args: list[RExpr]


@dataclass
class RConditional(RExpr):
    """if before { then } else { else } fi after."""

    before: RExpr
    then_body: RBlock
    else_body: RBlock | None
    after: RExpr
    side: str = FORWARD


@dataclass
class RLoop(RExpr):
    """from from_cond do { do } loop { body } until until."""

    from_cond: RExpr
    do_body: RBlock | None
    body: RBlock
    until: RExpr
    side: str = FORWARD


@dataclass
class RRetire(RExpr):
    """delocal name = expected."""

    name: str
    expected: RExpr


@dataclass
class RSwap(RExpr):
    """swap(left, right)."""

    left: RExpr
    right: RExpr


@dataclass
class RAliasCheck(RExpr):
    """Inserted by the transformers ahead of every compound assignment."""

    target: RExpr
    source: RExpr


def is_place(expr: RExpr) -> bool:
    """A bare variable or a single-level index of one."""
    if isinstance(expr, RVar):
        return True
    return isinstance(expr, RIndex) and isinstance(expr.obj, RVar)


def is_pure(expr: RExpr) -> bool:
    """True when evaluating expr can never mutate storage."""
    if isinstance(expr, (RIntLit, RBoolLit, RVar)):
        return True
    if isinstance(expr, RIndex):
        return is_pure(expr.obj) and is_pure(expr.index)
    if isinstance(expr, RBinaryOp):
        return is_pure(expr.left) and is_pure(expr.right)
    if isinstance(expr, RUnaryOp):
        return is_pure(expr.operand)
    return False

