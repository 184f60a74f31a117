"""Reversible control-flow protocols.

Both constructs are assertion-driven: the guard that picks a branch (or keeps
a loop running) on one side of time is asserted on the other. Whether the
guards really distinguish the paths is the author's obligation; it is checked
at run time and a broken guard is fatal.

Conditional `if before {then} else {else} fi after`:

    forward:  before ? (then; assert after) : (else; assert !after)
    backward: after  ? (then'; assert before) : (else'; assert !before)

Loop `from from_cond do {do} loop {body} until until`:

    forward:  assert from; do; while !until { body; assert !from; do }
    backward: assert until; do'; while !from { body'; assert !until; do' }

Bodies handed to the backward side are already reverse-transformed.
"""

from __future__ import annotations

from typing import Callable

from .ast import BACKWARD, FORWARD, Pos
from .errors import GuardViolation, RuntimeFault

Guard = Callable[[], bool]
Body = Callable[[], None]


def _test(guard: Guard, name: str, pos: Pos | None) -> bool:
    value = guard()
    if not isinstance(value, bool):
        raise RuntimeFault(f"{name} must be a bool, got {value!r}", pos)
    return value


def _expect(guard: Guard, name: str, wanted: bool, phase: str, pos: Pos | None) -> None:
    if _test(guard, name, pos) != wanted:
        raise GuardViolation(
            f"{name} should be {str(wanted).lower()} {phase}", pos
        )


def run_conditional(
    side: str,
    before: Guard,
    then_body: Body,
    else_body: Body | None,
    after: Guard,
    pos: Pos | None = None,
) -> None:
    """Run one side of the reversible conditional."""
    if side == FORWARD:
        dispatch, dispatch_name = before, "entry guard"
        check, check_name = after, "exit assertion"
    elif side == BACKWARD:
        dispatch, dispatch_name = after, "exit assertion"
        check, check_name = before, "entry guard"
    else:
        raise ValueError(f"unknown side {side!r}")
    if _test(dispatch, dispatch_name, pos):
        then_body()
        _expect(check, check_name, True, "after the then-branch", pos)
        return
    if else_body is not None:
        else_body()
    _expect(check, check_name, False, "after the else-branch", pos)


def run_loop(
    side: str,
    from_cond: Guard,
    do_body: Body | None,
    body: Body,
    until: Guard,
    pos: Pos | None = None,
) -> None:
    """Run one side of the reversible loop."""
    if side == FORWARD:
        entry, entry_name = from_cond, "entry assertion"
        stop, stop_name = until, "exit guard"
    elif side == BACKWARD:
        entry, entry_name = until, "exit guard"
        stop, stop_name = from_cond, "entry assertion"
    else:
        raise ValueError(f"unknown side {side!r}")
    _expect(entry, entry_name, True, "on loop entry", pos)
    if do_body is not None:
        do_body()
    while not _test(stop, stop_name, pos):
        body()
        _expect(entry, entry_name, False, "after an iteration", pos)
        if do_body is not None:
            do_body()
