"""Reversa runtime: executes transformed forward and backward programs.

Parameters are references, never copies. Scalars travel in `Cell`s owned by
the caller; arrays are plain lists mutated in place. Every routine exposes a
forward and a backward entry sharing one parameter list.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Sequence

from .alias import Cell, ElementRef, Ref, check_distinct, places_read
from .ast import (
    BACKWARD,
    FORWARD,
    Pos,
    RAliasCheck,
    RBinaryOp,
    RBlock,
    RBlockStmt,
    RBoolLit,
    RCompoundAssign,
    RConditional,
    RExpr,
    RExprStmt,
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
from .errors import RetireMismatch, RuntimeFault
from .ops import apply_op
from .protocols import run_conditional, run_loop

INT_WIDTHS: set[int] = {8, 16, 32, 64}

# Interpreter frames one routine call may spend when nested in control flow.
_FRAMES_PER_CALL = 16


@dataclass
class RuntimeConfig:
    int_width: int | None = None
    max_depth: int = 256


# ============================================================
# Environment
# ============================================================


class _Env:
    def __init__(self) -> None:
        self._scopes: list[dict[str, Ref]] = []

    def push_scope(self) -> None:
        self._scopes.append({})

    def pop_scope(self) -> None:
        self._scopes.pop()

    def bind(self, name: str, ref: Ref) -> None:
        if not self._scopes:
            raise RuntimeError("no scope")
        self._scopes[-1][name] = ref

    def unbind(self, name: str, pos: Pos) -> Ref:
        scope = self._scopes[-1]
        if name not in scope:
            raise RuntimeFault(f"'{name}' is not a local of this block", pos)
        return scope.pop(name)

    def lookup(self, name: str, pos: Pos) -> Ref:
        for scope in reversed(self._scopes):
            if name in scope:
                return scope[name]
        raise RuntimeFault(f"unknown name '{name}'", pos)


def _is_int(v: object) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _same_value(a: object, b: object) -> bool:
    return type(a) is type(b) and a == b


def _int_divmod_trunc(a: int, b: int) -> tuple[int, int]:
    q = abs(a) // abs(b)
    if (a < 0) != (b < 0):
        q = -q
    return q, a - q * b


def format_value(v: object) -> str:
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, list):
        return "[" + ", ".join(format_value(x) for x in v) + "]"
    return str(v)


# ============================================================
# Entry points
# ============================================================


class Entry:
    """The two callable forms of one routine."""

    def __init__(self, runtime: Runtime, name: str, params: list[RParam]):
        self._runtime = runtime
        self.name = name
        self.params = params

    def forward(self, *args: object) -> None:
        self._runtime.invoke(self.name, FORWARD, args)

    def backward(self, *args: object) -> None:
        self._runtime.invoke(self.name, BACKWARD, args)

    def __repr__(self) -> str:
        return f"<routine {self.name}>"


class Runtime:
    def __init__(
        self,
        forward: RProgram,
        backward: RProgram,
        config: RuntimeConfig | None = None,
    ):
        self.config = config if config is not None else RuntimeConfig()
        self.int_width = (
            self.config.int_width
            if self.config.int_width is not None
            else forward.int_width
        )
        if self.int_width is not None and self.int_width not in INT_WIDTHS:
            raise ValueError(f"unsupported int width {self.int_width}")
        self._bodies: dict[str, dict[str, RRoutine]] = {
            FORWARD: {r.name: r for r in forward.routines},
            BACKWARD: {r.name: r for r in backward.routines},
        }
        self._depth = 0

    # ---- Entry points ------------------------------------------------------

    def routine(self, name: str) -> Entry:
        r = self._bodies[FORWARD].get(name)
        if r is None:
            raise KeyError(name)
        return Entry(self, name, r.params)

    def names(self) -> list[str]:
        return list(self._bodies[FORWARD])

    def invoke(self, name: str, direction: str, args: Sequence[object]) -> None:
        """Run one entry of a routine on caller-owned storage."""
        if direction not in self._bodies:
            raise ValueError(f"unknown direction {direction!r}")
        r = self._bodies[direction].get(name)
        if r is None:
            raise RuntimeFault(f"unknown routine '{name}'")
        if len(args) != len(r.params):
            raise RuntimeFault(
                f"'{name}' takes {len(r.params)} argument(s), got {len(args)}", r.pos
            )
        refs: list[Ref] = []
        for p, a in zip(r.params, args):
            if isinstance(a, Ref):
                refs.append(a)
            elif isinstance(a, list) and p.typ == "[int]":
                refs.append(Cell(a))
            else:
                raise RuntimeFault(
                    f"parameter '{p.name}' needs a Cell or list, got {a!r}", p.pos
                )
        if self._depth:
            self._call(r, refs)
            return
        # The interpreter's own limit must admit max_depth nested calls.
        limit = sys.getrecursionlimit()
        sys.setrecursionlimit(limit + self.config.max_depth * _FRAMES_PER_CALL)
        try:
            self._call(r, refs)
        except RecursionError:
            raise RuntimeFault(
                f"'{name}' nests control flow too deeply to run", r.pos
            ) from None
        finally:
            sys.setrecursionlimit(limit)

    # ---- Calls -------------------------------------------------------------

    def _check_arg(self, routine: str, p: RParam, ref: Ref) -> None:
        v = ref.get()
        if p.typ == "int":
            ok = _is_int(v)
        elif p.typ == "bool":
            ok = isinstance(v, bool)
        else:
            ok = isinstance(v, list) and all(_is_int(x) for x in v)
        if not ok:
            raise RuntimeFault(
                f"argument '{p.name}' of '{routine}' must be {p.typ}, got {format_value(v)}",
                p.pos,
            )

    def _call(self, r: RRoutine, refs: list[Ref]) -> None:
        if self._depth >= self.config.max_depth:
            raise RuntimeFault(
                f"call depth exceeds {self.config.max_depth} in '{r.name}'", r.pos
            )
        env = _Env()
        env.push_scope()
        for p, ref in zip(r.params, refs):
            self._check_arg(r.name, p, ref)
            env.bind(p.name, ref)
        self._depth += 1
        try:
            self._eval_block(r.body, env)
        except RuntimeFault as e:
            if e.routine is None:
                e.routine = r.name
            raise
        finally:
            self._depth -= 1

    # ---- Statements --------------------------------------------------------

    def _eval_block(self, block: RBlock, env: _Env) -> None:
        env.push_scope()
        try:
            for st in block.stmts:
                self._eval_stmt(st, env)
        finally:
            env.pop_scope()

    def _eval_stmt(self, st: RStmt, env: _Env) -> None:
        if isinstance(st, RLocalDecl):
            val = self._eval_expr(st.init, env)
            self._check_width(val, st.pos)
            env.bind(st.name, Cell(val))
            return

        if isinstance(st, RBlockStmt):
            self._eval_block(st.block, env)
            return

        if not isinstance(st, RExprStmt):
            raise RuntimeFault("unsupported statement", st.pos)
        e = st.expr

        if isinstance(e, RAliasCheck):
            target_ref = self._resolve_place(e.target, env)
            read = places_read(e.source)
            if isinstance(e.target, RIndex):
                read += places_read(e.target.index)
            reads = [(p, self._resolve_place(p, env)) for p in read]
            check_distinct(e.target, target_ref, reads, e.pos)
            return

        if isinstance(e, RCompoundAssign):
            ref = self._resolve_place(e.target, env)
            cur = ref.get()
            rhs = self._eval_expr(e.value, env)
            if not _is_int(cur) or not _is_int(rhs):
                raise RuntimeFault(
                    f"'{e.op}' needs int operands, got {format_value(cur)} and {format_value(rhs)}",
                    e.pos,
                )
            res = apply_op(e.op, cur, rhs)
            self._check_width(res, e.pos)
            ref.set(res)
            return

        if isinstance(e, RRetire):
            actual = env.lookup(e.name, e.pos).get()
            expected = self._eval_expr(e.expected, env)
            if not _same_value(actual, expected):
                raise RetireMismatch(
                    f"delocal {e.name}: expected {format_value(expected)}, found {format_value(actual)}",
                    e.pos,
                )
            env.unbind(e.name, e.pos)
            return

        if isinstance(e, RRoutineCall):
            callee = self._bodies[e.direction].get(e.name)
            if callee is None:
                raise RuntimeFault(f"unknown routine '{e.name}'", e.pos)
            refs = [self._resolve_place(a, env) for a in e.args]
            self._call(callee, refs)
            return

        if isinstance(e, RSwap):
            left = self._resolve_place(e.left, env)
            right = self._resolve_place(e.right, env)
            lv = left.get()
            left.set(right.get())
            right.set(lv)
            return

        if isinstance(e, RConditional):
            else_body = e.else_body
            run_conditional(
                e.side,
                lambda: self._eval_expr(e.before, env),
                lambda: self._eval_block(e.then_body, env),
                (lambda: self._eval_block(else_body, env)) if else_body is not None else None,
                lambda: self._eval_expr(e.after, env),
                e.pos,
            )
            return

        if isinstance(e, RLoop):
            do_body = e.do_body
            run_loop(
                e.side,
                lambda: self._eval_expr(e.from_cond, env),
                (lambda: self._eval_block(do_body, env)) if do_body is not None else None,
                lambda: self._eval_block(e.body, env),
                lambda: self._eval_expr(e.until, env),
                e.pos,
            )
            return

        raise RuntimeFault("expression cannot be run as a statement", e.pos)

    def _check_width(self, v: object, pos: Pos) -> None:
        if self.int_width is None or not _is_int(v):
            return
        bound = 1 << (self.int_width - 1)
        if v < -bound or v >= bound:
            raise RuntimeFault(
                f"integer overflow: {v} does not fit in {self.int_width} bits", pos
            )

    # ---- Places ------------------------------------------------------------

    def _resolve_place(self, expr: RExpr, env: _Env) -> Ref:
        if isinstance(expr, RVar):
            return env.lookup(expr.name, expr.pos)
        if isinstance(expr, RIndex) and isinstance(expr.obj, RVar):
            arr = env.lookup(expr.obj.name, expr.obj.pos).get()
            idx = self._eval_expr(expr.index, env)
            self._check_index(arr, idx, expr.pos)
            return ElementRef(arr, idx)
        raise RuntimeFault("not a place", expr.pos)

    def _check_index(self, arr: object, idx: object, pos: Pos) -> None:
        if not isinstance(arr, list):
            raise RuntimeFault(f"cannot index {format_value(arr)}", pos)
        if not _is_int(idx):
            raise RuntimeFault(f"index must be int, got {format_value(idx)}", pos)
        if idx < 0 or idx >= len(arr):
            raise RuntimeFault(
                f"index {idx} out of range for array of length {len(arr)}", pos
            )

    # ---- Expressions -------------------------------------------------------

    def _eval_expr(self, expr: RExpr, env: _Env) -> object:
        if isinstance(expr, RIntLit):
            return expr.value
        if isinstance(expr, RBoolLit):
            return expr.value
        if isinstance(expr, RVar):
            return env.lookup(expr.name, expr.pos).get()
        if isinstance(expr, RIndex):
            arr = self._eval_expr(expr.obj, env)
            idx = self._eval_expr(expr.index, env)
            self._check_index(arr, idx, expr.pos)
            return arr[idx]
        if isinstance(expr, RUnaryOp):
            v = self._eval_expr(expr.operand, env)
            if expr.op == "!" and isinstance(v, bool):
                return not v
            if expr.op == "-" and _is_int(v):
                return -v
            if expr.op == "~" and _is_int(v):
                return ~v
            raise RuntimeFault(f"bad operand for '{expr.op}': {format_value(v)}", expr.pos)
        if isinstance(expr, RBinaryOp):
            if expr.op == "&&" or expr.op == "||":
                return self._eval_logical(expr, env)
            left = self._eval_expr(expr.left, env)
            right = self._eval_expr(expr.right, env)
            return self._eval_binary(expr.op, left, right, expr.pos)
        raise RuntimeFault("not a pure expression", expr.pos)

    def _eval_logical(self, expr: RBinaryOp, env: _Env) -> bool:
        left = self._eval_expr(expr.left, env)
        if not isinstance(left, bool):
            raise RuntimeFault(f"'{expr.op}' needs bool operands", expr.pos)
        if expr.op == "&&" and not left:
            return False
        if expr.op == "||" and left:
            return True
        right = self._eval_expr(expr.right, env)
        if not isinstance(right, bool):
            raise RuntimeFault(f"'{expr.op}' needs bool operands", expr.pos)
        return right

    def _eval_binary(self, op: str, left: object, right: object, pos: Pos) -> object:
        if op == "==":
            return _same_value(left, right)
        if op == "!=":
            return not _same_value(left, right)
        if not _is_int(left) or not _is_int(right):
            raise RuntimeFault(
                f"'{op}' needs int operands, got {format_value(left)} and {format_value(right)}",
                pos,
            )
        a = left
        b = right
        if op == "<":
            return a < b
        if op == "<=":
            return a <= b
        if op == ">":
            return a > b
        if op == ">=":
            return a >= b
        if op == "+":
            return a + b
        if op == "-":
            return a - b
        if op == "*":
            return a * b
        if op == "/" or op == "%":
            if b == 0:
                raise RuntimeFault("division by zero", pos)
            q, r = _int_divmod_trunc(a, b)
            return q if op == "/" else r
        if op == "&":
            return a & b
        if op == "|":
            return a | b
        if op == "^":
            return a ^ b
        if op == "<<" or op == ">>":
            if b < 0:
                raise RuntimeFault("negative shift count", pos)
            return a << b if op == "<<" else a >> b
        raise RuntimeFault(f"unknown operator '{op}'", pos)
