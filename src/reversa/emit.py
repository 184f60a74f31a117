"""Reversa emitter: converts a program back into Reversa textual syntax.

Source programs round-trip through the parser. Transformed programs also
render: alias checks print as `distinct(t, s)`, backward calls as `uncall`,
and backward-side control flow with its guards in dispatch order.
"""

from __future__ import annotations

from .ast import (
    BACKWARD,
    RAliasCheck,
    RArrayLit,
    RBinaryOp,
    RBlock,
    RBlockStmt,
    RBoolLit,
    RCompoundAssign,
    RConditional,
    RExpr,
    RExprStmt,
    RFuncCall,
    RIndex,
    RIntLit,
    RLocalDecl,
    RLoop,
    RParam,
    RProgram,
    RRetire,
    RRoutine,
    RRoutineCall,
    RStmt,
    RSwap,
    RUnaryOp,
    RVar,
)


def to_source(program: RProgram) -> str:
    """Render an `RProgram` as Reversa source text."""
    return _Emitter().emit_program(program)


class _Emitter:
    _INDENT: str = "    "

    # Expression precedence (higher binds tighter)
    _PREC_LOWEST: int = 1
    _PREC_OR: int = 2
    _PREC_AND: int = 3
    _PREC_COMPARE: int = 4
    _PREC_BITOR: int = 5
    _PREC_BITXOR: int = 6
    _PREC_BITAND: int = 7
    _PREC_SHIFT: int = 8
    _PREC_SUM: int = 9
    _PREC_PRODUCT: int = 10
    _PREC_UNARY: int = 11
    _PREC_POSTFIX: int = 12
    _PREC_PRIMARY: int = 13

    _BIN_PREC: dict[str, int] = {
        "||": _PREC_OR,
        "&&": _PREC_AND,
        "==": _PREC_COMPARE,
        "!=": _PREC_COMPARE,
        "<": _PREC_COMPARE,
        "<=": _PREC_COMPARE,
        ">": _PREC_COMPARE,
        ">=": _PREC_COMPARE,
        "|": _PREC_BITOR,
        "^": _PREC_BITXOR,
        "&": _PREC_BITAND,
        "<<": _PREC_SHIFT,
        ">>": _PREC_SHIFT,
        "+": _PREC_SUM,
        "-": _PREC_SUM,
        "*": _PREC_PRODUCT,
        "/": _PREC_PRODUCT,
        "%": _PREC_PRODUCT,
    }

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._indent_level: int = 0

    # ── Public ──────────────────────────────────────────────

    def emit_program(self, program: RProgram) -> str:
        self._lines = []
        self._indent_level = 0
        if program.int_width is not None:
            self._lines.append("-- pragma int-width " + str(program.int_width))
            self._lines.append("")
        first = True
        for r in program.routines:
            if not first:
                self._lines.append("")
            first = False
            self._emit_routine(r)
        text = "\n".join(self._lines)
        if text == "":
            return ""
        if not text.endswith("\n"):
            text += "\n"
        return text

    # ── Lines / Blocks ──────────────────────────────────────

    def _emit_line(self, line: str) -> None:
        self._lines.append(self._INDENT * self._indent_level + line)

    def _emit_stmt_block(self, block: RBlock) -> None:
        self._indent_level += 1
        for stmt in block.stmts:
            self._emit_stmt(stmt)
        self._indent_level -= 1

    def _emit_routine(self, r: RRoutine) -> None:
        params = self._render_param_list(r.params)
        self._emit_line("fn " + r.name + "(" + params + ") {")
        self._emit_stmt_block(r.body)
        self._emit_line("}")

    def _render_param_list(self, params: list[RParam]) -> str:
        parts: list[str] = []
        for p in params:
            parts.append(p.name + ": " + p.typ)
        return ", ".join(parts)

    # ── Statements ──────────────────────────────────────────

    def _emit_stmt(self, stmt: RStmt) -> None:
        if isinstance(stmt, RLocalDecl):
            self._emit_line(f"local {stmt.name} = {self._expr(stmt.init)}")
            return
        if isinstance(stmt, RBlockStmt):
            self._emit_line("{")
            self._emit_stmt_block(stmt.block)
            self._emit_line("}")
            return
        if not isinstance(stmt, RExprStmt):
            raise TypeError("unhandled stmt type")
        e = stmt.expr
        if isinstance(e, RConditional):
            self._emit_conditional(e)
            return
        if isinstance(e, RLoop):
            self._emit_loop(e)
            return
        self._emit_line(self._render_effect(e))

    def _emit_conditional(self, c: RConditional) -> None:
        entry, exit_ = c.before, c.after
        if c.side == BACKWARD:
            entry, exit_ = c.after, c.before
        self._emit_line(f"if {self._expr(entry)} {{")
        self._emit_stmt_block(c.then_body)
        if c.else_body is not None:
            self._emit_line("} else {")
            self._emit_stmt_block(c.else_body)
        self._emit_line(f"}} fi {self._expr(exit_)}")

    def _emit_loop(self, lp: RLoop) -> None:
        entry, stop = lp.from_cond, lp.until
        if lp.side == BACKWARD:
            entry, stop = lp.until, lp.from_cond
        if lp.do_body is not None:
            self._emit_line(f"from {self._expr(entry)} do {{")
            self._emit_stmt_block(lp.do_body)
            self._emit_line("} loop {")
        else:
            self._emit_line(f"from {self._expr(entry)} {{")
        self._emit_stmt_block(lp.body)
        self._emit_line(f"}} until {self._expr(stop)}")

    def _render_effect(self, e: RExpr) -> str:
        if isinstance(e, RCompoundAssign):
            return f"{self._expr(e.target)} {e.op} {self._expr(e.value)}"
        if isinstance(e, RRetire):
            return f"delocal {e.name} = {self._expr(e.expected)}"
        if isinstance(e, RRoutineCall):
            keyword = "uncall" if e.direction == BACKWARD else "call"
            return f"{keyword} {e.name}({self._render_args(e.args)})"
        if isinstance(e, RSwap):
            return f"swap({self._expr(e.left)}, {self._expr(e.right)})"
        if isinstance(e, RAliasCheck):
            return f"distinct({self._expr(e.target)}, {self._expr(e.source)})"
        return self._expr(e)

    def _render_args(self, args: list[RExpr]) -> str:
        parts: list[str] = []
        for a in args:
            parts.append(self._expr(a))
        return ", ".join(parts)

    # ── Expressions ─────────────────────────────────────────

    def _expr(self, expr: RExpr) -> str:
        return self._render_expr(expr, self._PREC_LOWEST)

    def _expr_prec(self, expr: RExpr) -> int:
        if isinstance(expr, RBinaryOp):
            return self._BIN_PREC[expr.op]
        if isinstance(expr, RUnaryOp):
            return self._PREC_UNARY
        if isinstance(expr, RIntLit) and expr.value < 0:
            return self._PREC_UNARY
        if isinstance(expr, RIndex):
            return self._PREC_POSTFIX
        return self._PREC_PRIMARY

    def _render_expr(self, expr: RExpr, parent_prec: int, side: str = "") -> str:
        prec = self._expr_prec(expr)
        text = self._render_expr_inner(expr)

        need_parens = False
        if prec < parent_prec:
            need_parens = True
        elif prec == parent_prec and side == "right" and prec < self._PREC_UNARY:
            need_parens = True
        elif prec == parent_prec and side != "" and prec == self._PREC_COMPARE:
            need_parens = True

        if need_parens:
            return f"({text})"
        return text

    def _render_expr_inner(self, expr: RExpr) -> str:
        if isinstance(expr, RIntLit):
            return str(expr.value)
        if isinstance(expr, RBoolLit):
            return "true" if expr.value else "false"
        if isinstance(expr, RVar):
            return expr.name
        if isinstance(expr, RUnaryOp):
            operand = self._render_expr(expr.operand, self._PREC_UNARY, "right")
            # "--" opens a comment
            if expr.op == "-" and operand.startswith("-"):
                operand = f"({operand})"
            return f"{expr.op}{operand}"
        if isinstance(expr, RBinaryOp):
            op_prec = self._BIN_PREC[expr.op]
            left = self._render_expr(expr.left, op_prec, "left")
            right = self._render_expr(expr.right, op_prec, "right")
            return f"{left} {expr.op} {right}"
        if isinstance(expr, RIndex):
            obj = self._render_expr(expr.obj, self._PREC_POSTFIX, "left")
            return f"{obj}[{self._expr(expr.index)}]"
        if isinstance(expr, RArrayLit):
            return f"[{self._render_args(expr.elements)}]"
        if isinstance(expr, RFuncCall):
            return f"{expr.name}({self._render_args(expr.args)})"
        if isinstance(
            expr, (RCompoundAssign, RRoutineCall, RSwap, RRetire, RAliasCheck)
        ):
            return self._render_effect(expr)
        raise TypeError("unhandled expr type")
