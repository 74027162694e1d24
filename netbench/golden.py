"""Golden-output test runner for the workbench binary."""

from __future__ import annotations

import argparse
import difflib
import re
import shlex
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Sequence, Union

DEFAULT_BINARY = "./target/release/quinn-workbench"
DEFAULT_ROOT = "golden-tests/tests"
REPLAY_LOG = "replay-log.json"

Command = Union[str, Sequence[str]]

_LINE_RE = re.compile(r"[^\n]*\n|[^\n]+")
_TOKEN_RE = re.compile(r"\w+|\s+|[^\w\s]")

_RED, _GREEN, _DIM, _BOLD, _UNDERLINE, _ON_BLACK = 31, 32, 2, 1, 4, 40
_SIGN_STYLES = {"delete": ("-", _RED), "insert": ("+", _GREEN), "equal": (" ", _DIM)}


class GoldenTestError(Exception):
    """A golden test could not be run."""


class InvalidOutput(GoldenTestError):
    """The workbench produced output that differs from the expected one."""

    def __init__(
        self,
        stderr: str,
        stdout_diff: Optional[str] = None,
        replay_log_diff: Optional[str] = None,
    ) -> None:
        super().__init__("output differs from the expected output")
        self.stderr = stderr
        self.stdout_diff = stdout_diff
        self.replay_log_diff = replay_log_diff


@dataclass
class GoldenTestCase:
    dir: Path
    name: str
    args: str
    expected_stdout: Optional[str] = None
    expected_replay_log: Optional[str] = None


@dataclass
class _Change:
    tag: str
    old_index: Optional[int]
    new_index: Optional[int]
    segments: list[tuple[bool, str]]


def _colors_enabled() -> bool:
    return sys.stdout.isatty()


def _paint(text: str, codes: Sequence[int], color: bool) -> str:
    if not color:
        return text
    return "".join(f"\x1b[{code}m" for code in codes) + text + "\x1b[0m"


def _line_number(index: Optional[int]) -> str:
    return "    " if index is None else f"{index + 1:<4}"


def _split_lines(text: str) -> list[str]:
    return _LINE_RE.findall(text)


def _segments(
    line_count: int, tokens: list[tuple[int, str]], marks: list[bool]
) -> list[list[tuple[bool, str]]]:
    lines: list[list[tuple[bool, str]]] = [[] for _ in range(line_count)]
    for (line_index, token), mark in zip(tokens, marks):
        segments = lines[line_index]
        if segments and segments[-1][0] == mark:
            segments[-1] = (mark, segments[-1][1] + token)
        else:
            segments.append((mark, token))
    return lines


def _inline(
    old_block: list[str], new_block: list[str]
) -> tuple[list[list[tuple[bool, str]]], list[list[tuple[bool, str]]]]:
    old_tokens = [
        (i, token) for i, line in enumerate(old_block) for token in _TOKEN_RE.findall(line)
    ]
    new_tokens = [
        (i, token) for i, line in enumerate(new_block) for token in _TOKEN_RE.findall(line)
    ]
    old_marks = [False] * len(old_tokens)
    new_marks = [False] * len(new_tokens)
    matcher = difflib.SequenceMatcher(
        None,
        [token for _, token in old_tokens],
        [token for _, token in new_tokens],
        autojunk=False,
    )
    if matcher.ratio() >= 0.5:
        for tag, i1, i2, j1, j2 in matcher.get_opcodes():
            if tag != "equal":
                old_marks[i1:i2] = [True] * (i2 - i1)
                new_marks[j1:j2] = [True] * (j2 - j1)
    return (
        _segments(len(old_block), old_tokens, old_marks),
        _segments(len(new_block), new_tokens, new_marks),
    )


def _group_changes(
    old_lines: list[str], new_lines: list[str], group
) -> Iterator[_Change]:
    for tag, i1, i2, j1, j2 in group:
        if tag == "equal":
            for offset, line in enumerate(old_lines[i1:i2]):
                yield _Change("equal", i1 + offset, j1 + offset, [(False, line)])
        elif tag == "delete":
            for offset, line in enumerate(old_lines[i1:i2]):
                yield _Change("delete", i1 + offset, None, [(False, line)])
        elif tag == "insert":
            for offset, line in enumerate(new_lines[j1:j2]):
                yield _Change("insert", None, j1 + offset, [(False, line)])
        else:
            old_segments, new_segments = _inline(old_lines[i1:i2], new_lines[j1:j2])
            for offset, segments in enumerate(old_segments):
                yield _Change("delete", i1 + offset, None, segments)
            for offset, segments in enumerate(new_segments):
                yield _Change("insert", None, j1 + offset, segments)


def _render(change: _Change, color: bool) -> str:
    sign, code = _SIGN_STYLES[change.tag]
    parts = [
        _paint(_line_number(change.old_index), (_DIM,), color),
        _paint(_line_number(change.new_index), (_DIM,), color),
        " |",
        _paint(sign, (code, _BOLD), color),
    ]
    for emphasized, value in change.segments:
        codes = (code, _UNDERLINE, _ON_BLACK) if emphasized else (code,)
        parts.append(_paint(value, codes, color))
    text = "".join(value for _, value in change.segments)
    if not text.endswith("\n"):
        parts.append("\n")
    return "".join(parts)


def diff_to_string(old: str, new: str) -> str:
    """Line diff of ``old`` and ``new`` with three lines of context per hunk."""
    color = _colors_enabled()
    old_lines = _split_lines(old)
    new_lines = _split_lines(new)
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)
    output: list[str] = []
    for group_index, group in enumerate(matcher.get_grouped_opcodes(3)):
        if group_index > 0:
            output.append("-" * 80 + "\n")
        output.extend(
            _render(change, color)
            for change in _group_changes(old_lines, new_lines, group)
        )
    return "".join(output)


def _read_text(path: Path, what: str) -> str:
    try:
        return path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise GoldenTestError(f"no `{what}` file found at `{path}`") from exc


def load_test_cases(
    root: Union[str, Path],
    expected_stdout_file: str,
    expected_replay_log_file: str,
    test_name: Optional[str] = None,
) -> list[GoldenTestCase]:
    """Collect the test directories under ``root``, optionally only ``test_name``."""
    root = Path(root)
    try:
        entries = sorted(root.iterdir())
    except OSError as exc:
        raise GoldenTestError("golden tests root directory not found") from exc

    cases: list[GoldenTestCase] = []
    for path in entries:
        if not path.is_dir():
            print(f"skipping path `{path}` because it's not a directory")
            continue
        if test_name is not None and path.name != test_name:
            print(f"skipping path `{path}`")
            continue

        args = _read_text(path / "args", "args")
        stdout_path = path / expected_stdout_file
        replay_log_path = path / expected_replay_log_file
        cases.append(
            GoldenTestCase(
                dir=path,
                name=str(path),
                args=args,
                expected_stdout=(
                    _read_text(stdout_path, expected_stdout_file)
                    if stdout_path.is_file()
                    else None
                ),
                expected_replay_log=(
                    _read_text(replay_log_path, expected_replay_log_file)
                    if replay_log_path.is_file()
                    else None
                ),
            )
        )
    return cases


def _command(binary: Command) -> list[str]:
    return [binary] if isinstance(binary, str) else list(binary)


def _persist(path: Path, content: str, what: str) -> None:
    try:
        path.write_bytes(content.encode("utf-8"))
    except OSError as exc:
        raise GoldenTestError(f"failed to persist {what}") from exc


def run_test_case(
    test_case: GoldenTestCase,
    binary: Command,
    expected_stdout_file: str,
    expected_replay_log_file: str,
) -> None:
    """Run one test; raise InvalidOutput on a mismatch, GoldenTestError on failure.

    Missing expected files are created from the current output.
    """
    print(f"Running `{test_case.name}`...")
    try:
        completed = subprocess.run(
            _command(binary) + test_case.args.split(), capture_output=True
        )
    except OSError as exc:
        raise GoldenTestError("workbench process crashed") from exc

    stdout = completed.stdout.decode("utf-8", errors="replace")
    stderr = completed.stderr.decode("utf-8", errors="replace")
    try:
        replay_log = Path(REPLAY_LOG).read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise GoldenTestError(f"failed to read {REPLAY_LOG}") from exc

    stdout_diff = None
    if test_case.expected_stdout is None:
        print("... expected stdout not found, persisting the current one for future tests")
        _persist(test_case.dir / expected_stdout_file, stdout, "stdout")
    elif test_case.expected_stdout != stdout:
        print("... calculating stdout diff")
        stdout_diff = diff_to_string(test_case.expected_stdout, stdout)

    replay_log_diff = None
    if test_case.expected_replay_log is None:
        print(
            "... expected replay log not found, persisting the current one for future tests"
        )
        _persist(test_case.dir / expected_replay_log_file, replay_log, "replay log")
    elif test_case.expected_replay_log != replay_log:
        print("... calculating replay log diff")
        replay_log_diff = diff_to_string(test_case.expected_replay_log, replay_log)

    if stdout_diff is not None or replay_log_diff is not None or stderr:
        raise InvalidOutput(stderr, stdout_diff, replay_log_diff)


def _describe(error: BaseException) -> str:
    text = str(error)
    if error.__cause__ is not None:
        text += f"\n\nCaused by:\n    {error.__cause__}"
    return text


def _async_runtime_name(command: list[str]) -> str:
    try:
        completed = subprocess.run(command + ["rt"], capture_output=True)
    except OSError as exc:
        raise GoldenTestError(
            "failed to obtain async runtime used to compile the workbench"
        ) from exc
    try:
        name = completed.stdout.decode("utf-8").strip()
    except UnicodeDecodeError as exc:
        raise GoldenTestError("async runtime name is not valid UTF-8") from exc
    if not name:
        stderr = completed.stderr.decode("utf-8", errors="replace")
        raise GoldenTestError(f"async runtime was empty... stderr: {stderr}")
    return name


def _report_failure(name: str, error: GoldenTestError) -> None:
    print(f"Error running golden test `{name}`")
    if isinstance(error, InvalidOutput):
        if error.replay_log_diff is not None:
            print(
                "Expected replay log differs from actual replay log:\n"
                f"{error.replay_log_diff}\n"
            )
        if error.stdout_diff is not None:
            print(f"Expected stdout differs from actual stdout:\n{error.stdout_diff}")
        if error.stderr:
            print(f"Non-empty stderr:\n{error.stderr}")
    else:
        print(_describe(error))


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run the workbench golden tests.")
    parser.add_argument("--test-name", help="only run the test in this directory")
    parser.add_argument("--binary", default=DEFAULT_BINARY, help="workbench command")
    parser.add_argument("--root", default=DEFAULT_ROOT, help="golden tests directory")
    options = parser.parse_args(argv)
    command = shlex.split(options.binary)

    try:
        runtime = _async_runtime_name(command)
        print(f"Workbench async runtime: {runtime}")
        expected_stdout_file = f"expected-stdout.{runtime}"
        expected_replay_log_file = f"expected-replay-log.{runtime}"
        cases = load_test_cases(
            options.root,
            expected_stdout_file,
            expected_replay_log_file,
            options.test_name,
        )
    except GoldenTestError as exc:
        print(f"Error: {_describe(exc)}", file=sys.stderr)
        return 1

    errored = False
    for case in cases:
        try:
            run_test_case(case, command, expected_stdout_file, expected_replay_log_file)
        except GoldenTestError as exc:
            _report_failure(case.name, exc)
            errored = True
        else:
            print(f"{case.name}: ✅")

    if errored:
        print("Error: one or more golden tests failed", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())