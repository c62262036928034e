"""
Compiler diagnostic parsing.

Parses g++/ld output into ``ParsedError`` records, categorises messages, and
rebuilds GCC-style excerpts from the exact sources that were compiled. The
signature tables below are plain data; extend them rather than the code.
"""

from __future__ import annotations

import re

from socrates.sandbox.models import ErrorKind, ParsedError

SOURCE_SUFFIXES = ("cpp", "hpp")
_SUFFIX = "|".join(SOURCE_SUFFIXES)

# Substrings (lower-cased) that mark compiler/linker failure output.
COMPILER_SIGNATURES: tuple[str, ...] = (
    "error:",
    "undefined reference",
    "collect2:",
    "ld returned",
    "cannot find",
    "no such file",
    "multiple definition",
)

# Lines that belong to a diagnostic block without being failures themselves.
DIAGNOSTIC_CONTEXT_MARKERS: tuple[str, ...] = (
    "in file included from",
    "/usr/bin/ld:",
    ": in function",
    ": in member function",
    ": in constructor",
    ": in destructor",
    ": in lambda function",
    ": in instantiation of",
    ": in substitution of",
    "required from",
    "required by substitution of",
    "compilation terminated",
)

LINKER_SIGNATURES: tuple[str, ...] = (
    "undefined reference",
    "collect2:",
    "ld returned",
)

# Checked in order; the first kind with a matching keyword wins.
ERROR_KIND_KEYWORDS: tuple[tuple[ErrorKind, tuple[str, ...]], ...] = (
    (ErrorKind.SYNTAX, ("expected", "syntax", "missing", "before", "after")),
    (ErrorKind.UNDEFINED, ("not declared", "undefined")),
    (ErrorKind.TYPE, (
        "does not name a type",
        "cannot convert",
        "invalid conversion",
        "no match for",
        "cannot initialize",
        "incompatible types",
    )),
    (ErrorKind.LINKER, ("undefined reference", "linker", "ld returned")),
)

SOURCE_PREFIX_REGEX = re.compile(rf"^\w+\.(?:{_SUFFIX}):")
GLUED_DIGITS_REGEX = re.compile(rf"^\d+(\w+\.(?:{_SUFFIX}):)", re.MULTILINE)
DIAGNOSTIC_REGEX = re.compile(
    rf"^\d*(\w+\.(?:{_SUFFIX})):(\d+)(?::(\d+))?:\s*(?:fatal\s+)?(error|warning):\s*(.+)$"
)
GUTTER_REGEX = re.compile(r"^\s*\d*\s+\|")
CARET_REGEX = re.compile(r"^\s+\^")
FUNCTION_REGEX = re.compile(
    r"^(?!\s*(?:if|for|while|switch|return|else)\b)\s*"
    r"([\w:<>,\*&~ ]+?\s*\b\w+\s*\([^;{}]*\)\s*(?:const)?)\s*\{?\s*$"
)
MISSING_SEMICOLON_REGEX = re.compile(r"expected\s+';'")

TAB_SIZE = 4


def has_compiler_signature(text: str) -> bool:
    lower = text.lower()
    return any(signature in lower for signature in COMPILER_SIGNATURES)


def repair_glued_digits(text: str) -> str:
    """Drop digits glued to the front of ``<name>.cpp:`` lines ("3main.cpp:")."""
    return GLUED_DIGITS_REGEX.sub(r"\1", text)


def categorize(message: str) -> ErrorKind:
    lower = message.lower()
    for kind, keywords in ERROR_KIND_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return kind
    return ErrorKind.OTHER


def parse_compiler_error(error_text: str) -> list[ParsedError]:
    """Parse raw compiler output into structured errors."""
    errors: list[ParsedError] = []
    if not error_text or not error_text.strip():
        return errors

    lines = error_text.split("\n")
    for i, raw in enumerate(lines):
        line = raw.strip()
        if not line:
            continue

        match = DIAGNOSTIC_REGEX.match(line)
        if match:
            file, line_num, col, _level, message = match.groups()
            snippet = None
            for following in lines[i + 1:i + 3]:
                if (line_num in following
                        or CARET_REGEX.match(following)
                        or re.match(r"^\s+\|", following)):
                    snippet = following.strip()
                    break
            errors.append(ParsedError(
                file=file,
                line=int(line_num),
                column=int(col) if col else None,
                type=categorize(message),
                message=message.strip(),
                raw_error=line,
                code_snippet=snippet,
            ))
        elif any(signature in line for signature in LINKER_SIGNATURES):
            errors.append(ParsedError(
                file="linker",
                line=0,
                type=ErrorKind.LINKER,
                message=line,
                raw_error=line,
            ))

    return errors


def get_code_context(code: str, line_number: int, context_lines: int = 3) -> str:
    """Return ``context_lines`` lines either side of ``line_number`` (1-indexed)."""
    lines = code.split("\n")
    start = max(0, line_number - context_lines - 1)
    end = min(len(lines), line_number + context_lines)

    rendered = []
    for offset, text in enumerate(lines[start:end]):
        actual = start + offset + 1
        marker = ">>>" if actual == line_number else "   "
        rendered.append(f"{marker} {actual}: {text}")
    return "\n".join(rendered)


def looks_gcc_formatted(text: str) -> bool:
    return any(GUTTER_REGEX.match(line) for line in text.split("\n"))


def _enclosing_function(lines: list[str], line_number: int) -> str | None:
    for index in range(min(line_number, len(lines)) - 1, -1, -1):
        match = FUNCTION_REGEX.match(lines[index])
        if match:
            return " ".join(match.group(1).split())
    return None


def _caret_offset(source_line: str, column: int | None) -> int:
    if not column:
        return 0
    return len(source_line[:column - 1].expandtabs(TAB_SIZE))


def _render_diagnostic(error: ParsedError, source: str) -> list[str]:
    lines = source.split("\n")
    block: list[str] = []

    function = _enclosing_function(lines, error.line)
    if function:
        block.append(f"{error.file}: In function '{function}':")
    block.append(error.raw_error)

    if not 1 <= error.line <= len(lines):
        return block

    source_line = lines[error.line - 1]
    gutter = " " * 5 + " | "
    block.append(f"{error.line:>5} | {source_line.expandtabs(TAB_SIZE)}")
    offset = _caret_offset(source_line, error.column)
    block.append(gutter + " " * offset + "^")
    if MISSING_SEMICOLON_REGEX.search(error.message):
        block.append(gutter + " " * offset + ";")
    return block


def format_error_gcc_style(error_text: str, source_by_file: dict[str, str]) -> str:
    """Rebuild GCC-style excerpts for ``error_text`` against the given sources.

    Output that already carries GCC's gutter/caret lines is only cleaned up.
    Lines that are not ``file:line`` diagnostics (linker output, notes, ...)
    are kept as they are.
    """
    cleaned = repair_glued_digits(error_text)
    cleaned = "\n".join(line.rstrip() for line in cleaned.split("\n")).strip()
    if not cleaned or looks_gcc_formatted(cleaned):
        return cleaned

    blocks: list[str] = []
    for line in cleaned.split("\n"):
        match = DIAGNOSTIC_REGEX.match(line.strip())
        if not match:
            blocks.append(line)
            continue
        error = parse_compiler_error(line)[0]
        source = source_by_file.get(error.file)
        if source is None:
            blocks.append(error.raw_error)
            continue
        rendered = _render_diagnostic(error, source)
        if blocks and rendered[0].startswith(f"{error.file}: In ") \
                and blocks[-1].startswith(f"{error.file}: In "):
            rendered = rendered[1:]
        blocks.extend(rendered)
    return "\n".join(blocks)
