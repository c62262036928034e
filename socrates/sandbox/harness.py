"""
Turns a submission into the files the build script expects.

A submission that defines ``main`` is compiled as-is. Anything else is treated
as a ``Solution`` class fragment: it goes to ``solution.hpp`` and a generated
``main.cpp`` drives it, either through the whole built-in test table or
through a single case wrapped in console sentinels.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from string import Template

from socrates.sandbox.errors import InvalidTestIndex
from socrates.sandbox.models import PreparedCode, Workspace
from socrates.sandbox.workspace import WorkspaceManager

MAIN_FILE = "main.cpp"
SOLUTION_FILE = "solution.hpp"

CONSOLE_START = "CONSOLE_START"
CONSOLE_END = "CONSOLE_END"
RETURN_VALUE_PREFIX = "RETURN_VALUE:"

MAIN_DETECTION_REGEX = re.compile(r"\bint\s+main\s*\(")


@dataclass(frozen=True)
class TestCase:
    nums: tuple[int, ...]
    target: int
    expected: tuple[int, ...]
    label: str

    def to_cpp(self) -> str:
        nums = ", ".join(str(n) for n in self.nums)
        expected = ", ".join(str(n) for n in self.expected)
        return f'    {{{{{nums}}}, {self.target}, {{{expected}}}, "{self.label}"}}'


TEST_CASES: tuple[TestCase, ...] = (
    TestCase((2, 7, 11, 15), 9, (0, 1), "Example 1"),
    TestCase((3, 2, 4), 6, (1, 2), "Example 2"),
    TestCase((3, 3), 6, (0, 1), "Example 3"),
)

_PRELUDE = Template(r"""#include <iostream>
#include <vector>
#include <string>
#include <algorithm>
#include <stdexcept>
#include <exception>
#include <sstream>

using namespace std;

#include "solution.hpp"

struct TestCase {
  vector<int> nums;
  int target;
  vector<int> expected;
  string label;
};

vector<TestCase> getDefaultTestCases() {
  return {
$test_cases
  };
}
""")

_SUITE_MAIN = r"""
string vectorToString(const vector<int>& values) {
  if (values.empty()) {
    return "[]";
  }
  ostringstream oss;
  oss << "[";
  for (size_t i = 0; i < values.size(); ++i) {
    oss << values[i];
    if (i + 1 < values.size()) {
      oss << ", ";
    }
  }
  oss << "]";
  return oss.str();
}

string formatInput(const vector<int>& nums, int target) {
  ostringstream oss;
  oss << "nums = " << vectorToString(nums) << ", target = " << target;
  return oss.str();
}

bool arraysEqualUnordered(vector<int> a, vector<int> b) {
  if (a.size() != b.size()) {
    return false;
  }
  sort(a.begin(), a.end());
  sort(b.begin(), b.end());
  return a == b;
}

int main() {
  ios::sync_with_stdio(false);
  cin.tie(nullptr);

  vector<TestCase> testCases = getDefaultTestCases();
  Solution solution;
  int passed = 0;

  for (size_t i = 0; i < testCases.size(); ++i) {
    const auto& test = testCases[i];
    vector<int> numsCopy = test.nums;
    cout << "Test Case " << (i + 1) << " - " << test.label << ": ";
    bool passedCase = false;
    vector<int> actual;
    bool executed = false;

    try {
      actual = solution.twoSum(numsCopy, test.target);
      executed = true;
      passedCase = arraysEqualUnordered(actual, test.expected);
      cout << (passedCase ? "PASSED" : "FAILED") << "\n";
    } catch (const exception& ex) {
      cout << "FAILED (exception: " << ex.what() << ")\n";
    } catch (...) {
      cout << "FAILED (unknown exception)\n";
    }

    cout << "  Input:     " << formatInput(test.nums, test.target) << "\n";
    cout << "  Expected:  " << vectorToString(test.expected) << "\n";
    if (executed) {
      cout << "  Output:    " << vectorToString(actual) << "\n";
    }
    cout << "-----------------------------\n";

    if (passedCase) {
      passed++;
    }
  }

  cout << "Summary: " << passed << "/" << testCases.size() << " tests passed." << "\n";
  if (passed == static_cast<int>(testCases.size())) {
    cout << "All tests passed!\n";
    return 0;
  }

  cout << "Some tests failed.\n";
  return 1;
}
"""

_SINGLE_MAIN = Template(r"""
string renderValue(const vector<int>& values) {
  ostringstream oss;
  oss << "[";
  for (size_t i = 0; i < values.size(); ++i) {
    if (i > 0) {
      oss << ",";
    }
    oss << values[i];
  }
  oss << "]";
  return oss.str();
}

int main() {
  vector<TestCase> testCases = getDefaultTestCases();
  const TestCase& test = testCases[$test_index];
  vector<int> nums = test.nums;
  Solution solution;

  cout << "$console_start" << endl;
  vector<int> result = solution.twoSum(nums, test.target);
  cout << endl << "$console_end" << endl;
  cout << "$return_prefix" << renderValue(result) << endl;
  return 0;
}
""")


def has_entry_point(source: str) -> bool:
    return MAIN_DETECTION_REGEX.search(source) is not None


def render_test_table(cases: tuple[TestCase, ...] = TEST_CASES) -> str:
    return ",\n".join(case.to_cpp() for case in cases)


def build_harness(test_index: int | None = None) -> str:
    """Return the generated ``main.cpp`` source.

    With ``test_index`` only that case runs, bracketed by the console
    sentinels; otherwise every case runs and a summary line is printed.
    """
    prelude = _PRELUDE.substitute(test_cases=render_test_table())
    if test_index is None:
        return prelude + _SUITE_MAIN
    if not 0 <= test_index < len(TEST_CASES):
        raise InvalidTestIndex(test_index, len(TEST_CASES))
    return prelude + _SINGLE_MAIN.substitute(
        test_index=test_index,
        console_start=CONSOLE_START,
        console_end=CONSOLE_END,
        return_prefix=RETURN_VALUE_PREFIX,
    )


class HarnessGenerator:
    """Writes submissions into workspaces owned by a ``WorkspaceManager``."""

    def __init__(self, workspaces: WorkspaceManager) -> None:
        self._workspaces = workspaces

    def prepare(
        self,
        workspace: Workspace,
        source: str,
        test_index: int | None = None,
    ) -> PreparedCode:
        """Write the submission (and a harness when needed) into ``workspace``."""
        if has_entry_point(source):
            main_path = self._workspaces.write(workspace, MAIN_FILE, source)
            return PreparedCode(
                main_file_path=main_path,
                files_for_errors={MAIN_FILE: source},
                used_harness=False,
            )

        # build before writing anything so a bad index leaves the workspace empty
        harness = build_harness(test_index)
        trimmed = source.strip() + "\n" if source.strip() else ""
        self._workspaces.write(workspace, SOLUTION_FILE, trimmed)
        main_path = self._workspaces.write(workspace, MAIN_FILE, harness)
        return PreparedCode(
            main_file_path=main_path,
            files_for_errors={SOLUTION_FILE: trimmed, MAIN_FILE: harness},
            used_harness=True,
        )
