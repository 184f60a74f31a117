"""Program-level driver: one source program in, forward and backward programs out."""

from __future__ import annotations

from .ast import RProgram, RRoutine
from .errors import DuplicateRoutine, TransformError, UnsupportedConstruct
from .forward import transform_forward
from .reverse import transform_reverse

PARAM_TYPES: set[str] = {"int", "bool", "[int]"}


def _check_params(r: RRoutine) -> None:
    seen: set[str] = set()
    for p in r.params:
        if p.name in seen:
            raise UnsupportedConstruct("duplicate parameter '" + p.name + "'", p.pos)
        if p.typ not in PARAM_TYPES:
            raise UnsupportedConstruct(
                "parameter '" + p.name + "' has unsupported type '" + p.typ + "'",
                p.pos,
            )
        seen.add(p.name)


def routine_table(program: RProgram) -> dict[str, RRoutine]:
    """Symbol table for static call resolution."""
    table: dict[str, RRoutine] = {}
    for r in program.routines:
        try:
            if r.name in table:
                raise DuplicateRoutine("routine is defined twice", r.pos)
            _check_params(r)
        except TransformError as e:
            e.routine = r.name
            raise
        table[r.name] = r
    return table


def transform(program: RProgram) -> tuple[RProgram, RProgram]:
    """Produce (forward, backward) programs. Nothing is returned on failure."""
    routines = routine_table(program)
    forward: list[RRoutine] = []
    backward: list[RRoutine] = []
    for r in program.routines:
        try:
            fbody = transform_forward(r.body, routines)
            bbody = transform_reverse(r.body, routines)
        except TransformError as e:
            e.routine = r.name
            raise
        forward.append(RRoutine(r.pos, r.name, list(r.params), fbody))
        backward.append(RRoutine(r.pos, r.name, list(r.params), bbody))
    return (
        RProgram(forward, program.int_width),
        RProgram(backward, program.int_width),
    )
