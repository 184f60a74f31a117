"""Reversa CLI: check, expand, and run .rv routines in either direction."""

from __future__ import annotations

import sys

from . import parse
from .alias import Cell
from .ast import RParam
from .emit import to_source
from .errors import RuntimeFault, TransformError
from .parse import ParseError
from .runtime import INT_WIDTHS, Runtime, RuntimeConfig, format_value
from .tokens import TokenizeError
from .transform import transform


USAGE: str = """\
reversa [OPTIONS] FILE [ROUTINE [ARG ...]]

Transform a Reversa (.rv) program and run one of its routines.

Arguments:
  ARG                42, -3, true, false, [1,2,3], zeros:N, fill:N:V

Options:
  --check            Transform only and report errors
  --expand           Print the forward and backward programs
  --backward         Run the backward entry instead of forward
  --roundtrip        Run forward then backward and verify the state is restored
  --int-width N      Override the integer width (8, 16, 32, 64)
  --help             Show this help message
"""


def _is_int_text(text: str) -> bool:
    if text.startswith("-"):
        text = text[1:]
    return text.isdigit()


def parse_arg(text: str, param: RParam) -> object:
    """Convert one command-line argument into a value for `param`."""
    if param.typ == "bool":
        if text == "true":
            return True
        if text == "false":
            return False
        raise ValueError("expected true or false, got '" + text + "'")
    if param.typ == "int":
        if not _is_int_text(text):
            raise ValueError("expected an integer, got '" + text + "'")
        return int(text)
    if text.startswith("zeros:"):
        return [0] * _count(text[6:], text)
    if text.startswith("fill:"):
        parts = text[5:].split(":")
        if len(parts) != 2 or not _is_int_text(parts[1]):
            raise ValueError("expected fill:N:V, got '" + text + "'")
        return [int(parts[1])] * _count(parts[0], text)
    if text.startswith("[") and text.endswith("]"):
        inner = text[1:-1].strip()
        if inner == "":
            return []
        items: list[int] = []
        for part in inner.split(","):
            part = part.strip()
            if not _is_int_text(part):
                raise ValueError("bad array element '" + part + "'")
            items.append(int(part))
        return items
    raise ValueError("expected an array, got '" + text + "'")


def _count(text: str, whole: str) -> int:
    if not text.isdigit():
        raise ValueError("bad array length in '" + whole + "'")
    return int(text)


def _snapshot(cells: list[Cell]) -> list[object]:
    result: list[object] = []
    for c in cells:
        v = c.get()
        result.append(list(v) if isinstance(v, list) else v)
    return result


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    filepath: str = ""
    routine: str = ""
    routine_args: list[str] = []
    check_only = False
    expand = False
    backward = False
    roundtrip = False
    int_width: int | None = None
    i = 0
    while i < len(args):
        arg = args[i]
        if routine != "" and _is_int_text(arg):
            routine_args.append(arg)
            i += 1
        elif arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return 0
        elif arg == "--check":
            check_only = True
            i += 1
        elif arg == "--expand":
            expand = True
            i += 1
        elif arg == "--backward":
            backward = True
            i += 1
        elif arg == "--roundtrip":
            roundtrip = True
            i += 1
        elif arg == "--int-width":
            if i + 1 >= len(args) or not args[i + 1].isdigit():
                print("reversa: --int-width needs a number", file=sys.stderr)
                return 2
            int_width = int(args[i + 1])
            if int_width not in INT_WIDTHS:
                print(
                    "reversa: unsupported int width " + str(int_width), file=sys.stderr
                )
                return 2
            i += 2
        elif arg.startswith("-"):
            print("reversa: unknown flag '" + arg + "'", file=sys.stderr)
            return 2
        elif filepath == "":
            filepath = arg
            i += 1
        elif routine == "":
            routine = arg
            i += 1
        else:
            routine_args.append(arg)
            i += 1
    if filepath == "":
        print("reversa: missing file argument", file=sys.stderr)
        return 2
    if backward and roundtrip:
        print("reversa: --backward and --roundtrip are exclusive", file=sys.stderr)
        return 2

    try:
        with open(filepath, "rb") as f:
            raw = f.read()
    except FileNotFoundError:
        print("reversa: " + filepath + ": No such file or directory", file=sys.stderr)
        return 1
    except OSError as e:
        print("reversa: " + filepath + ": " + str(e), file=sys.stderr)
        return 1
    try:
        source = raw.decode("utf-8")
    except ValueError:
        print("reversa: " + filepath + ": invalid utf-8", file=sys.stderr)
        return 1

    try:
        program = parse(source)
    except (ParseError, TokenizeError) as e:
        print("reversa: parse error: " + str(e), file=sys.stderr)
        return 1
    if int_width is not None:
        program.int_width = int_width

    try:
        forward, backward_program = transform(program)
    except TransformError as e:
        print("reversa: transform error: " + str(e), file=sys.stderr)
        return 1

    if expand:
        print("-- forward")
        print(to_source(forward), end="")
        print("")
        print("-- backward")
        print(to_source(backward_program), end="")
    if check_only or routine == "":
        return 0

    runtime = Runtime(forward, backward_program, RuntimeConfig(program.int_width))
    try:
        entry = runtime.routine(routine)
    except KeyError:
        print("reversa: unknown routine '" + routine + "'", file=sys.stderr)
        return 1
    if len(routine_args) != len(entry.params):
        print(
            "reversa: '"
            + routine
            + "' takes "
            + str(len(entry.params))
            + " argument(s), got "
            + str(len(routine_args)),
            file=sys.stderr,
        )
        return 2
    cells: list[Cell] = []
    for p, text in zip(entry.params, routine_args):
        try:
            cells.append(Cell(parse_arg(text, p)))
        except ValueError as e:
            print("reversa: argument '" + p.name + "': " + str(e), file=sys.stderr)
            return 2

    try:
        if roundtrip:
            before = _snapshot(cells)
            entry.forward(*cells)
            entry.backward(*cells)
            if _snapshot(cells) != before:
                print("reversa: roundtrip error: state not restored", file=sys.stderr)
                return 1
        elif backward:
            entry.backward(*cells)
        else:
            entry.forward(*cells)
    except RuntimeFault as e:
        print("reversa: runtime error: " + str(e), file=sys.stderr)
        return 1

    for p, c in zip(entry.params, cells):
        print(p.name + " = " + format_value(c.get()))
    return 0


if __name__ == "__main__":
    sys.exit(main())
