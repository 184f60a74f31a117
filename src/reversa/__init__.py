"""Reversa reversible-routine transformer: public API."""

from __future__ import annotations

from .alias import Cell as Cell
from .ast import RProgram
from .emit import to_source
from .errors import (
    ReversaError as ReversaError,
    RuntimeFault as RuntimeFault,
    TransformError as TransformError,
)
from .parse import ParseError as ParseError, Parser
from .runtime import INT_WIDTHS, Runtime as Runtime, RuntimeConfig as RuntimeConfig
from .tokens import TokenizeError as TokenizeError, tokenize
from .transform import transform as transform


def _extract_pragmas(source: str) -> int | None:
    """Scan leading comment lines for pragmas. Returns the int width, if any."""
    int_width: int | None = None
    lineno = 0
    for line in source.split("\n"):
        lineno += 1
        stripped = line.strip()
        if stripped == "":
            continue
        if not stripped.startswith("--"):
            break
        body = stripped[2:].strip()
        if body.startswith("pragma int-width"):
            value = body[len("pragma int-width") :].strip()
            if not value.isdigit() or int(value) not in INT_WIDTHS:
                raise ParseError("unsupported int width '" + value + "'", lineno, 1)
            int_width = int(value)
    return int_width


def parse(source: str) -> RProgram:
    """Parse Reversa source code into an RProgram."""
    int_width = _extract_pragmas(source)
    tokens = tokenize(source)
    parser = Parser(tokens)
    program = parser.parse_program()
    program.int_width = int_width
    return program


def check(source: str) -> list[TransformError]:
    """Parse and transform Reversa source. Returns list of errors (empty = ok)."""
    program = parse(source)
    try:
        transform(program)
    except TransformError as e:
        return [e]
    return []


def compile(
    source: str | RProgram, config: RuntimeConfig | None = None
) -> Runtime:
    """Transform a program and return a runtime exposing both entry points."""
    program = parse(source) if isinstance(source, str) else source
    forward, backward = transform(program)
    return Runtime(forward, backward, config)


def emit(program: RProgram) -> str:
    """Emit an `RProgram` to Reversa textual syntax."""
    return to_source(program)
