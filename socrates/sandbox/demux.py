"""
Cleanup and splitting of captured container logs.

The build script merges compiler diagnostics and program output into one
stream and ends it with an ``EXIT_CODE:<n>`` line. This module repairs the
byte-level artifacts of log capture, recovers the exit code and separates
diagnostics from what the program printed.
"""

from __future__ import annotations

import re

from socrates.sandbox.models import ExecutionResult
from socrates.sandbox.parser import (
    DIAGNOSTIC_CONTEXT_MARKERS,
    SOURCE_PREFIX_REGEX,
    has_compiler_signature,
    parse_compiler_error,
    repair_glued_digits,
)
from socrates.sandbox.script import EXIT_CODE_SENTINEL

# Everything below 0x20 except tab, newline and the stream ids, plus DEL. CR goes too.
CONTROL_REGEX = re.compile(r"[\x00\x03-\x08\x0b-\x1f\x7f]")
# Stream ids from Docker's multiplexed framing (1 = stdout, 2 = stderr).
FRAME_MARKER_REGEX = re.compile(r"^[\x01\x02]+|[\x01\x02]+$", re.MULTILINE)
NON_PRINTABLE_REGEX = re.compile(r"[^\x20-\x7e\n\t]")
EXIT_CODE_REGEX = re.compile(re.escape(EXIT_CODE_SENTINEL) + r"(\d+)")
# Indented caret, gutter, fix-it and include-chain lines.
CONTEXT_LINE_REGEX = re.compile(r"^\s+(?:\^|\||\d+\s+\||\+\+\+\s+\||from\s)")
# `<path>:<line>[:<col>]:` for any file gcc reports on, system headers included.
LOCATION_REGEX = re.compile(r"^[^\s:]*[./][^\s:]*:\d+(?::\d+)?:")

NO_ERROR_MESSAGE = "Compilation or execution failed with no error message"


def clean_logs(raw: bytes | str) -> str:
    text = raw.decode("utf-8", errors="ignore") if isinstance(raw, bytes) else raw
    text = CONTROL_REGEX.sub("", text)
    text = FRAME_MARKER_REGEX.sub("", text)
    text = NON_PRINTABLE_REGEX.sub("", text)
    return repair_glued_digits(text)


def extract_exit_code(text: str, fallback: int) -> tuple[int, str]:
    """Return the sentinel exit code and the text that precedes it.

    The last sentinel wins, so a program printing ``EXIT_CODE:`` itself cannot
    spoof the result. Without a sentinel ``fallback`` is used.
    """
    matches = list(EXIT_CODE_REGEX.finditer(text))
    if not matches:
        return fallback, text.strip()
    last = matches[-1]
    return int(last.group(1)), text[:last.start()].strip()


def is_error_signature(line: str) -> bool:
    if (has_compiler_signature(line)
            or SOURCE_PREFIX_REGEX.match(line)
            or LOCATION_REGEX.match(line)):
        return True
    lower = line.lower()
    return any(marker in lower for marker in DIAGNOSTIC_CONTEXT_MARKERS)


def split_output(text: str) -> tuple[list[str], list[str]]:
    """Split lines into (program output, diagnostics)."""
    output_lines: list[str] = []
    error_lines: list[str] = []
    in_section = False
    after_signature = False

    for line in text.split("\n"):
        if is_error_signature(line):
            error_lines.append(line)
            in_section = after_signature = True
        elif in_section and (not line.strip() or CONTEXT_LINE_REGEX.match(line)):
            error_lines.append(line)
            after_signature = False
        elif in_section and after_signature and "warning:" not in line:
            error_lines.append(line)
            after_signature = False
        else:
            output_lines.append(line)
            in_section = after_signature = False

    return output_lines, error_lines


def demultiplex(
    raw: bytes | str,
    fallback_exit_code: int,
    execution_time: float = 0.0,
) -> ExecutionResult:
    """Turn raw container logs into an ``ExecutionResult``."""
    text = clean_logs(raw)
    exit_code, remaining = extract_exit_code(text, fallback_exit_code)
    output_lines, error_lines = split_output(remaining)

    if error_lines:
        errors = "\n".join(error_lines).strip()
    elif exit_code != 0:
        errors = remaining or NO_ERROR_MESSAGE
    else:
        errors = ""

    return ExecutionResult(
        output="\n".join(output_lines).strip(),
        errors=errors,
        parsed_errors=parse_compiler_error(errors) if errors else [],
        exit_code=exit_code,
        execution_time=execution_time,
    )
