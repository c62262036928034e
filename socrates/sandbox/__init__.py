"""Docker-based C++ compile/run sandbox."""

from socrates.sandbox.classifier import classify_execution, parse_test_output
from socrates.sandbox.errors import (
    CodeTooLarge,
    DockerUnavailable,
    EmptySubmission,
    ExecutionTimeout,
    InvalidTestIndex,
    SandboxError,
)
from socrates.sandbox.executor import CodeExecutor
from socrates.sandbox.harness import HarnessGenerator
from socrates.sandbox.manager import DockerSandboxManager
from socrates.sandbox.models import (
    ErrorKind,
    ExecutionResult,
    ParsedError,
    PreparedCode,
    TestCategory,
    TestExecutionResult,
    Workspace,
)
from socrates.sandbox.parser import (
    categorize,
    format_error_gcc_style,
    get_code_context,
    parse_compiler_error,
)
from socrates.sandbox.workspace import WorkspaceManager, validate_size

__all__ = [
    "CodeExecutor",
    "CodeTooLarge",
    "DockerSandboxManager",
    "DockerUnavailable",
    "EmptySubmission",
    "ErrorKind",
    "ExecutionResult",
    "ExecutionTimeout",
    "HarnessGenerator",
    "InvalidTestIndex",
    "ParsedError",
    "PreparedCode",
    "SandboxError",
    "TestCategory",
    "TestExecutionResult",
    "Workspace",
    "WorkspaceManager",
    "categorize",
    "classify_execution",
    "format_error_gcc_style",
    "get_code_context",
    "parse_compiler_error",
    "parse_test_output",
    "validate_size",
]
