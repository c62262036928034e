"""
Test result classification.

Maps one full-suite ``ExecutionResult`` to a ``TestCategory``. Checks run in a
fixed priority order: compiler errors, then crashes, then the harness's own
PASSED/FAILED report.
"""

from __future__ import annotations

import re

from socrates.sandbox.models import (
    ExecutionResult,
    TestCategory,
    TestExecutionResult,
    TestFailure,
    TestSummary,
)
from socrates.sandbox.parser import has_compiler_signature
from socrates.sandbox.script import TIMEOUT_EXIT_CODE

# SIGSEGV (128+11 and raw 11), SIGABRT, SIGFPE
CRASH_EXIT_CODES = frozenset({139, 11, 134, 136})

CRASH_INDICATORS: tuple[str, ...] = (
    "segmentation fault",
    "segfault",
    "terminate called",
    "exception",
    "abort",
    "signal",
    "floating point exception",
    "double free",
    "corruption",
)

# Printed by the harness catch blocks, or by the runtime on uncaught throws.
EXCEPTION_MARKERS: tuple[str, ...] = (
    "exception:",
    "failed (exception",
    "failed (unknown exception)",
    "terminate called",
    "std::exception",
)

HARNESS_MARKER = "test case"

SUMMARY_REGEX = re.compile(r"Summary:\s*(\d+)/(\d+)\s+tests\s+passed", re.IGNORECASE)
TEST_CASE_REGEX = re.compile(r"Test Case (\d+).*:\s*(PASSED|FAILED)", re.IGNORECASE)
EXCEPTION_REGEX = re.compile(r"\((?:exception:\s*(.*)|(unknown exception))\)\s*$", re.IGNORECASE)
DETAIL_REGEX = re.compile(r"^\s*(Input|Expected|Output):\s*(.*)$", re.IGNORECASE)
SEPARATOR = "-----"


def parse_test_output(output: str) -> TestSummary:
    """Parse the harness report.

    Expected format::

        Test Case 1 - Example 1: PASSED|FAILED[ (exception: ...)]
          Input:     ...
          Expected:  ...
          Output:    ...
        -----------------------------
        Summary: X/Y tests passed.
    """
    passed = total = 0
    summary = SUMMARY_REGEX.search(output)
    if summary:
        passed, total = int(summary.group(1)), int(summary.group(2))

    failures: list[TestFailure] = []
    lines = output.split("\n")
    for i, line in enumerate(lines):
        match = TEST_CASE_REGEX.search(line)
        if not match or match.group(2).upper() != "FAILED":
            continue

        details: dict[str, str] = {}
        for following in lines[i + 1:]:
            if TEST_CASE_REGEX.search(following) or following.startswith(SEPARATOR):
                break
            detail = DETAIL_REGEX.match(following)
            if detail:
                details.setdefault(detail.group(1).lower(), detail.group(2).strip())

        exception = EXCEPTION_REGEX.search(line)
        error = None
        if exception:
            error = (exception.group(1) or exception.group(2)).strip()

        failures.append(TestFailure(
            test_index=int(match.group(1)) - 1,
            input=details.get("input", "Unknown"),
            expected=details.get("expected", "Unknown"),
            actual=details.get("output", "No output"),
            error=error,
        ))

    if total == 0 and failures:
        total = max(f.test_index for f in failures) + 1
        passed = total - len(failures)

    return TestSummary(passed=passed, total=total, failures=failures)


def _runtime_error(result: ExecutionResult, message: str) -> TestExecutionResult:
    return TestExecutionResult(
        category=TestCategory.RUNTIME_ERROR,
        runtime_errors=message,
        output=result.output,
        exit_code=result.exit_code,
    )


def classify_execution(result: ExecutionResult) -> TestExecutionResult:
    """Classify one full-suite run."""
    errors = result.errors or ""
    output = result.output or ""

    if errors.strip() and has_compiler_signature(errors):
        return TestExecutionResult(
            category=TestCategory.SYNTAX_ERROR,
            compilation_errors=errors,
            exit_code=result.exit_code,
        )

    exit_code = result.exit_code
    error_lower = errors.lower()
    output_lower = output.lower()

    if exit_code in CRASH_EXIT_CODES:
        return _runtime_error(result, errors or f"Program crashed with exit code {exit_code}")
    if exit_code == TIMEOUT_EXIT_CODE:
        return _runtime_error(result, errors or "Program exceeded the time limit")
    if exit_code != 0 and any(
        indicator in error_lower or indicator in output_lower
        for indicator in CRASH_INDICATORS
    ):
        return _runtime_error(result, errors or f"Program crashed with exit code {exit_code}")
    if any(marker in output_lower for marker in EXCEPTION_MARKERS):
        return _runtime_error(result, "Runtime exception detected in test output")

    summary = parse_test_output(output)

    if exit_code != 0 and summary.total == 0 and output_lower and HARNESS_MARKER not in output_lower:
        return _runtime_error(
            result, f"Program exited with code {exit_code} before completing tests"
        )

    if summary.total > 0 and summary.passed == summary.total:
        return TestExecutionResult(
            category=TestCategory.NO_ISSUES,
            test_results=summary,
            output=output,
            exit_code=exit_code,
        )

    if summary.failures:
        return TestExecutionResult(
            category=TestCategory.WRONG_ANSWER,
            test_results=summary,
            output=output,
            exit_code=exit_code,
        )

    # NO_ISSUES is only claimed for a clean exit
    if exit_code != 0:
        return _runtime_error(
            result, errors or f"Program exited with code {exit_code} before completing tests"
        )
    return TestExecutionResult(
        category=TestCategory.NO_ISSUES,
        output=output,
        exit_code=exit_code,
    )
