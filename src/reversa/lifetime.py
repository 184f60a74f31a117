"""Local-lifetime checker.

Every `local` declared in a block must be consumed by exactly one `delocal`
in the same block. One LocalScope exists per block level; nested blocks and
control-flow bodies get their own and are opaque to the parent.
"""

from __future__ import annotations

from .ast import Pos
from .errors import DuplicateLocal, UnknownLocal, UnretiredLocals


class LocalScope:
    """Live set of declared-but-not-yet-retired names for one block."""

    def __init__(self) -> None:
        # dict keeps declaration order for the UnretiredLocals report
        self._live: dict[str, Pos] = {}

    def is_live(self, name: str) -> bool:
        return name in self._live

    def declare(self, name: str, pos: Pos) -> None:
        if name in self._live:
            prev = self._live[name]
            raise DuplicateLocal(
                f"local '{name}' is already live (declared at line {prev.line})",
                pos,
            )
        self._live[name] = pos

    def retire(self, name: str, pos: Pos) -> None:
        if name not in self._live:
            raise UnknownLocal(f"delocal of '{name}', which is not a live local", pos)
        del self._live[name]

    def close(self, pos: Pos) -> None:
        if self._live:
            raise UnretiredLocals(list(self._live), pos)
