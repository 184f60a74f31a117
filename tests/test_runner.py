"""Data-driven test runner for Reversa programs"""

import signal
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from reversa import parse as reversa_parse, transform as reversa_transform
from reversa.alias import Cell
from reversa.cli import parse_arg
from reversa.errors import ReversaError
from reversa.runtime import Runtime, format_value

PARSE_TIMEOUT = 5
TESTS_DIR = Path(__file__).parent

TESTS = {
    "reversa_parse": {"dir": "parser", "run": "phase"},
    "reversa_transform": {"dir": "transform", "run": "phase"},
    "reversa_app": {"dir": "apps", "run": "reversa_app"},
}


# ---------------------------------------------------------------------------
# Timeout
# ---------------------------------------------------------------------------


def _timeout_handler(signum, frame):
    raise TimeoutError("parse() timed out")


signal.signal(signal.SIGALRM, _timeout_handler)


# ---------------------------------------------------------------------------
# Test file parsing
# ---------------------------------------------------------------------------


def parse_spec_file(path: Path) -> list[tuple[str, str, str]]:
    """Parse a .tests file into (name, input, expected) tuples."""
    lines = path.read_text().split("\n")
    result: list[tuple[str, str, str]] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("=== "):
            test_name = line[4:].strip()
            i += 1
            input_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                input_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            expected_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                expected_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            test_input = "\n".join(input_lines)
            expected = "\n".join(expected_lines).strip()
            result.append((test_name, test_input, expected))
        else:
            i += 1
    return result


def discover_specs(test_dir: Path) -> list[tuple[str, str, str]]:
    """Glob *.tests in test_dir, return (test_id, input, expected) tuples."""
    results = []
    for test_file in sorted(test_dir.glob("*.tests")):
        for name, input_code, expected in parse_spec_file(test_file):
            results.append((f"{test_file.stem}/{name}", input_code, expected))
    return results


def discover_reversa_apps(test_dir: Path) -> list[Path]:
    """Find all .rv files in a directory."""
    return sorted(test_dir.glob("*.rv"))


# ---------------------------------------------------------------------------
# Phase result + assertion checker
# ---------------------------------------------------------------------------


@dataclass
class PhaseResult:
    errors: list[str] = field(default_factory=list)
    data: dict | None = None


def resolve_dotpath(obj: object, path: str) -> object:
    """Resolve a dot-separated path against a nested dict/list structure."""
    current = obj
    for part in path.split("."):
        if part == "length":
            return len(current)
        if isinstance(current, list):
            current = current[int(part)]
        elif isinstance(current, dict):
            current = current[part]
        else:
            raise KeyError(
                f"cannot traverse {type(current).__name__} with key {part!r}"
            )
    return current


def to_comparable(value: object) -> str:
    """Convert a value to its string form for comparison."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def check_expected(expected: str, result: PhaseResult, phase: str) -> None:
    if expected == "ok":
        if result.errors:
            pytest.fail(f"Expected ok, got error: {result.errors[0]}")
        return
    if expected.startswith("error:"):
        expected_msg = expected[6:].strip()
        if not result.errors:
            pytest.fail(f"Expected error containing '{expected_msg}', got ok")
        found = any(expected_msg.lower() in e.lower() for e in result.errors)
        if not found:
            pytest.fail(
                f"Expected error containing '{expected_msg}', got: {result.errors}"
            )
        return
    # Dotpath assertions
    if result.errors:
        pytest.fail(f"{phase} failed: {result.errors[0]}")
    assert result.data is not None, f"No data returned from {phase}"
    for line in expected.split("\n"):
        line = line.strip()
        if not line:
            continue
        if "=" not in line:
            pytest.fail(f"Bad assertion (no '='): {line}")
        path, expected_val = line.split("=", 1)
        path = path.strip()
        expected_val = expected_val.strip()
        try:
            actual = resolve_dotpath(result.data, path)
        except (KeyError, IndexError, TypeError) as e:
            pytest.fail(f"Path '{path}' not found in result: {e}")
        actual_str = to_comparable(actual)
        if actual_str != expected_val:
            pytest.fail(
                f"Assertion failed: {path}\n"
                f"  expected: {expected_val!r}\n"
                f"  actual:   {actual_str!r}"
            )


# ---------------------------------------------------------------------------
# Phase runners
# ---------------------------------------------------------------------------


def run_reversa_parse(source: str) -> PhaseResult:
    try:
        signal.alarm(PARSE_TIMEOUT)
        program = reversa_parse(source)
        routines = []
        for r in program.routines:
            routines.append(
                {
                    "name": r.name,
                    "params": [p.name + ": " + p.typ for p in r.params],
                    "stmts": len(r.body.stmts),
                }
            )
        return PhaseResult(data={"int_width": program.int_width, "routines": routines})
    except Exception as e:
        return PhaseResult(errors=[str(e)])
    finally:
        signal.alarm(0)


def run_reversa_transform(source: str) -> PhaseResult:
    try:
        signal.alarm(PARSE_TIMEOUT)
        program = reversa_parse(source)
        reversa_transform(program)
        return PhaseResult()
    except ReversaError as e:
        return PhaseResult(errors=[e.kind + ": " + str(e)])
    except Exception as e:
        return PhaseResult(errors=[str(e)])
    finally:
        signal.alarm(0)


# ---------------------------------------------------------------------------
# App directives
# ---------------------------------------------------------------------------


def parse_app_runs(source: str) -> list[tuple[str, list[str], str]]:
    """Collect `-- run:` / `-- expect:` comment pairs from an app file."""
    runs: list[tuple[str, list[str], str]] = []
    pending: list[str] | None = None
    for line in source.split("\n"):
        stripped = line.strip()
        if stripped.startswith("-- run:"):
            pending = stripped[len("-- run:") :].split()
        elif stripped.startswith("-- expect:") and pending is not None:
            expected = stripped[len("-- expect:") :].strip()
            runs.append((pending[0], pending[1:], expected))
            pending = None
    return runs


# ---------------------------------------------------------------------------
# Parametrization
# ---------------------------------------------------------------------------


def pytest_generate_tests(metafunc):
    for name, cfg in TESTS.items():
        test_dir = TESTS_DIR / cfg["dir"]
        run = cfg["run"]
        if run == "phase":
            fixture = f"{name}_input"
            if fixture in metafunc.fixturenames:
                specs = discover_specs(test_dir)
                params = [pytest.param(inp, exp, id=tid) for tid, inp, exp in specs]
                metafunc.parametrize(f"{fixture},{name}_expected", params)
        elif run == "reversa_app" and "reversa_app" in metafunc.fixturenames:
            apps = discover_reversa_apps(test_dir)
            params = [pytest.param(p, id=p.stem) for p in apps]
            metafunc.parametrize("reversa_app", params)


# ---------------------------------------------------------------------------
# Test functions
# ---------------------------------------------------------------------------


def test_reversa_parse(reversa_parse_input, reversa_parse_expected):
    check_expected(
        reversa_parse_expected,
        run_reversa_parse(reversa_parse_input),
        "reversa_parse",
    )


def test_reversa_transform(reversa_transform_input, reversa_transform_expected):
    check_expected(
        reversa_transform_expected,
        run_reversa_transform(reversa_transform_input),
        "reversa_transform",
    )


def test_reversa_app(reversa_app: Path):
    """Run every `-- run:` line forward, check `-- expect:`, then run backward."""
    source = reversa_app.read_text()
    program = reversa_parse(source)
    forward, backward = reversa_transform(program)
    runtime = Runtime(forward, backward)
    runs = parse_app_runs(source)
    assert runs, f"{reversa_app.name} has no -- run: lines"
    for routine, args, expected in runs:
        entry = runtime.routine(routine)
        cells = [Cell(parse_arg(a, p)) for a, p in zip(args, entry.params)]
        before = [format_value(c.get()) for c in cells]
        entry.forward(*cells)
        actual = ", ".join(
            p.name + " = " + format_value(c.get()) for p, c in zip(entry.params, cells)
        )
        assert actual == expected, f"{routine} {' '.join(args)}"
        entry.backward(*cells)
        assert [format_value(c.get()) for c in cells] == before
