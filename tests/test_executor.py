import asyncio

import pytest
from docker.errors import DockerException

from socrates.sandbox.errors import CodeTooLarge, EmptySubmission, InvalidTestIndex
from socrates.sandbox.executor import CodeExecutor
from socrates.sandbox.manager import DockerSandboxManager
from socrates.sandbox.models import TestCategory as Category

SOLUTION = """class Solution {
public:
    vector<int> twoSum(vector<int>& nums, int target) {
        return {0, 1};
    }
};"""

SUITE_OUTPUT = (
    b"Test Case 1 - Example 1: PASSED\n"
    b"Test Case 2 - Example 2: FAILED\n"
    b"  Input:     nums = [3, 2, 4], target = 6\n"
    b"  Expected:  [1, 2]\n"
    b"  Output:    [0, 1]\n"
    b"-----------------------------\n"
    b"Test Case 3 - Example 3: PASSED\n"
    b"Summary: 2/3 tests passed.\n"
    b"Some tests failed.\n"
    b"\nEXIT_CODE:1\n"
)


def _build_executor(sandbox_config, workspaces, client):
    manager = DockerSandboxManager(sandbox_config, client=client)
    return CodeExecutor(config=sandbox_config, manager=manager, workspaces=workspaces)


def test_execute_single_test_returns_console_output(sandbox_config, workspaces, fake_docker):
    client = fake_docker(logs=b"CONSOLE_START\n\nCONSOLE_END\nRETURN_VALUE:[0,1]\n\nEXIT_CODE:0\n")
    executor = _build_executor(sandbox_config, workspaces, client)
    result = asyncio.run(executor.execute(SOLUTION, test_index=0))
    assert result.exit_code == 0
    assert result.output == "CONSOLE_START\n\nCONSOLE_END\nRETURN_VALUE:[0,1]"
    # the workspace is gone once the run is over
    assert list(workspaces.root.iterdir()) == []


def test_execute_formats_errors_against_compiled_sources(sandbox_config, workspaces, fake_docker):
    source = "int main() {\n  return 0\n}\n"
    client = fake_docker(logs=b"main.cpp:2:11: error: expected ';' before '}' token\n\nEXIT_CODE:1\n")
    executor = _build_executor(sandbox_config, workspaces, client)
    result = asyncio.run(executor.execute(source))
    assert result.exit_code == 1
    assert result.errors.split("\n") == [
        "main.cpp: In function 'int main()':",
        "main.cpp:2:11: error: expected ';' before '}' token",
        "    2 |   return 0",
        "      |           ^",
        "      |           ;",
    ]
    assert len(result.parsed_errors) == 1


def test_execute_rejects_bad_requests_before_docker(sandbox_config, workspaces, fake_docker):
    client = fake_docker()
    executor = _build_executor(sandbox_config, workspaces, client)
    with pytest.raises(EmptySubmission):
        asyncio.run(executor.execute("  \n"))
    with pytest.raises(CodeTooLarge):
        asyncio.run(executor.execute("x" * (sandbox_config.max_code_size + 1)))
    with pytest.raises(InvalidTestIndex):
        asyncio.run(executor.execute(SOLUTION, test_index=5))
    assert client.containers.created == []


def test_classify_wrong_answer(sandbox_config, workspaces, fake_docker):
    client = fake_docker(logs=SUITE_OUTPUT)
    executor = _build_executor(sandbox_config, workspaces, client)
    verdict = asyncio.run(executor.classify(SOLUTION))
    assert verdict.category == Category.WRONG_ANSWER
    assert verdict.exit_code == 1
    assert verdict.test_results.failures[0].actual == "[0, 1]"


def test_classify_syntax_error(sandbox_config, workspaces, fake_docker):
    client = fake_docker(logs=(
        b"In file included from main.cpp:11:\n"
        b"solution.hpp:4:18: error: expected ';' before '}' token\n"
        b"\nEXIT_CODE:1\n"
    ))
    executor = _build_executor(sandbox_config, workspaces, client)
    verdict = asyncio.run(executor.classify(SOLUTION))
    assert verdict.category == Category.SYNTAX_ERROR
    assert "solution.hpp:4:18" in verdict.compilation_errors


def test_classify_maps_infrastructure_failure_to_syntax_error(sandbox_config, workspaces, fake_docker):
    client = fake_docker(image_present=False, pull_error=DockerException("registry down"))
    executor = _build_executor(sandbox_config, workspaces, client)
    verdict = asyncio.run(executor.classify(SOLUTION))
    assert verdict.category == Category.SYNTAX_ERROR
    assert "registry down" in verdict.compilation_errors


def test_classify_oversized_code(sandbox_config, workspaces, fake_docker):
    client = fake_docker()
    executor = _build_executor(sandbox_config, workspaces, client)
    verdict = asyncio.run(executor.classify("x" * (sandbox_config.max_code_size + 1)))
    assert verdict.category == Category.SYNTAX_ERROR
    assert "exceeds maximum allowed size" in verdict.compilation_errors
    assert client.containers.created == []


def test_to_dict_is_json_ready(sandbox_config, workspaces, fake_docker):
    client = fake_docker(logs=SUITE_OUTPUT)
    executor = _build_executor(sandbox_config, workspaces, client)
    payload = asyncio.run(executor.classify(SOLUTION)).to_dict()
    assert payload["category"] == "WRONG_ANSWER"
    assert payload["test_results"]["failures"][0]["test_index"] == 1
