"""Reversa diagnostics: transform-time and run-time errors."""

from __future__ import annotations

from .ast import Pos


class ReversaError(Exception):
    """Base error for transformation and execution."""

    def __init__(self, msg: str, pos: Pos | None = None):
        super().__init__(msg)
        self.msg = msg
        self.pos = pos
        self.routine: str | None = None

    def __str__(self) -> str:
        text = self.msg
        if self.routine is not None:
            text = f"{self.routine}: {text}"
        if self.pos is not None:
            text = f"{text} at line {self.pos.line} col {self.pos.col}"
        return text


# ============================================================
# Transform-time
# ============================================================


class TransformError(ReversaError):
    """Static error; no program is produced."""

    kind: str = "transform"


class DuplicateLocal(TransformError):
    kind = "duplicate local"


class UnknownLocal(TransformError):
    kind = "unknown local"


class UnretiredLocals(TransformError):
    kind = "unretired locals"

    def __init__(self, names: list[str], pos: Pos | None = None):
        super().__init__(
            "local(s) must be retired by delocal before the block ends: "
            + ", ".join(names),
            pos,
        )
        self.names = names


class NonInvertibleOperator(TransformError):
    kind = "non-invertible operator"

    def __init__(self, op: str, pos: Pos | None = None):
        super().__init__(f"operator '{op}' has no inverse", pos)
        self.op = op


class UnsupportedConstruct(TransformError):
    kind = "unsupported construct"


class UnknownRoutine(TransformError):
    kind = "unknown routine"


class DuplicateRoutine(TransformError):
    kind = "duplicate routine"


class ArityMismatch(TransformError):
    kind = "arity mismatch"


# ============================================================
# Run-time
# ============================================================


class RuntimeFault(ReversaError):
    """Fatal error while executing a forward or backward program."""

    kind: str = "runtime"


class AliasViolation(RuntimeFault):
    kind = "alias violation"


class RetireMismatch(RuntimeFault):
    kind = "retire mismatch"


class GuardViolation(RuntimeFault):
    kind = "guard violation"
