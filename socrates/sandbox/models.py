"""Data models for the C++ execution sandbox."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class ErrorKind(str, Enum):
    """Category of a single compiler or linker diagnostic."""

    SYNTAX = "syntax"
    TYPE = "type"
    UNDEFINED = "undefined"
    LINKER = "linker"
    OTHER = "other"


class TestCategory(str, Enum):
    """Outcome of a full test-suite run."""

    SYNTAX_ERROR = "SYNTAX_ERROR"
    RUNTIME_ERROR = "RUNTIME_ERROR"
    WRONG_ANSWER = "WRONG_ANSWER"
    NO_ISSUES = "NO_ISSUES"


@dataclass(frozen=True)
class Workspace:
    """Handle to one per-request scratch directory."""

    id: str
    path: Path


@dataclass(frozen=True)
class PreparedCode:
    """Files written for one run, keyed by name for error formatting."""

    main_file_path: Path
    files_for_errors: dict[str, str]
    used_harness: bool


@dataclass(frozen=True)
class ParsedError:
    """Structured decomposition of one diagnostic line."""

    file: str
    line: int
    type: ErrorKind
    message: str
    raw_error: str
    column: int | None = None
    code_snippet: str | None = None


@dataclass(frozen=True)
class ExecutionResult:
    """Result of one compile+run cycle."""

    output: str = ""
    errors: str = ""
    parsed_errors: list[ParsedError] = field(default_factory=list)
    exit_code: int = 0
    execution_time: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TestFailure:
    test_index: int
    input: str
    expected: str
    actual: str
    error: str | None = None


@dataclass(frozen=True)
class TestSummary:
    passed: int = 0
    total: int = 0
    failures: list[TestFailure] = field(default_factory=list)


@dataclass(frozen=True)
class TestExecutionResult:
    """Aggregate classification of one full-suite run."""

    category: TestCategory
    compilation_errors: str | None = None
    runtime_errors: str | None = None
    test_results: TestSummary | None = None
    output: str | None = None
    exit_code: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
