"""End-to-end runs against a real Docker daemon.

Skipped unless ``SOCRATES_DOCKER_TESTS=1``; the first run pulls ``gcc:latest``.
"""

import asyncio
import os

import pytest

from socrates.config import SandboxConfig
from socrates.sandbox import CodeExecutor
from socrates.sandbox.models import TestCategory as Category

pytestmark = pytest.mark.skipif(
    os.environ.get("SOCRATES_DOCKER_TESTS") != "1",
    reason="set SOCRATES_DOCKER_TESTS=1 to run against a Docker daemon",
)

TWO_SUM = """class Solution {
public:
    vector<int> twoSum(vector<int>& nums, int target) {
        for (int i = 0; i < (int)nums.size(); ++i)
            for (int j = i + 1; j < (int)nums.size(); ++j)
                if (nums[i] + nums[j] == target)
                    return {i, j};
        return {};
    }
};"""


@pytest.fixture
def executor(tmp_path):
    config = SandboxConfig(workspace_root=tmp_path, compile_timeout=60, run_timeout=10)
    executor = CodeExecutor(config=config)
    yield executor
    asyncio.run(executor.shutdown())


def test_hello_world(executor):
    source = '#include <iostream>\nint main() { std::cout << "Hello, World!" << std::endl; }\n'
    result = asyncio.run(executor.execute(source))
    assert result.exit_code == 0
    assert result.output == "Hello, World!"
    assert result.errors == ""


def test_missing_semicolon_is_syntax_error(executor):
    verdict = asyncio.run(executor.classify(TWO_SUM.replace("return {};", "return {}")))
    assert verdict.category == Category.SYNTAX_ERROR
    assert "expected ';'" in verdict.compilation_errors


def test_single_case_reports_return_value(executor):
    result = asyncio.run(executor.execute(TWO_SUM, test_index=0))
    assert result.exit_code == 0
    lines = result.output.split("\n")
    assert lines[0] == "CONSOLE_START"
    assert "CONSOLE_END" in lines
    assert lines[-1] == "RETURN_VALUE:[0,1]"


def test_correct_solution_passes_suite(executor):
    verdict = asyncio.run(executor.classify(TWO_SUM))
    assert verdict.category == Category.NO_ISSUES
    assert (verdict.test_results.passed, verdict.test_results.total) == (3, 3)


def test_infinite_loop_times_out(tmp_path):
    config = SandboxConfig(workspace_root=tmp_path, compile_timeout=60, run_timeout=1)
    executor = CodeExecutor(config=config)
    result = asyncio.run(executor.execute("int main() { while (true) {} }\n"))
    assert result.exit_code == 124
