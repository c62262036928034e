from socrates.config import SandboxConfig
from socrates.sandbox.script import compile_command, render_script


def test_script_phases_and_sentinel():
    script = render_script(SandboxConfig())
    lines = script.splitlines()
    assert lines[0] == "cd /workspace"
    assert lines[1] == "timeout 5s g++ -std=c++17 -Wall -Wextra -o /tmp/main main.cpp 2>&1"
    assert "COMPILE_EXIT=$?" in script
    assert "timeout -k 1 10s /tmp/main 2>&1" in script
    assert script.count("EXIT_CODE:%d") == 2
    assert "printf '\\nEXIT_CODE:%d\\n' \"$RUN_EXIT\"" in script
    assert "printf '\\nEXIT_CODE:%d\\n' \"$COMPILE_EXIT\"" in script
    # the run phase only happens on a successful compile
    assert script.index("if [ $COMPILE_EXIT -eq 0 ]") < script.index("/tmp/main 2>&1")


def test_script_uses_configured_slots():
    config = SandboxConfig(
        compile_timeout=2.5,
        run_timeout=3,
        binary_path="/scratch/prog",
        cxx_standard="c++20",
        warning_flags=("-Wall",),
    )
    script = render_script(config)
    assert "timeout 2.5s g++ -std=c++20 -Wall -o /scratch/prog main.cpp" in script
    assert "timeout -k 1 3s /scratch/prog" in script


def test_compile_command_quotes_arguments():
    config = SandboxConfig(binary_path="/tmp/my prog")
    assert compile_command(config).endswith("-o '/tmp/my prog' main.cpp")


def test_compile_timeout_prints_compiler_diagnostic():
    script = render_script(SandboxConfig(compile_timeout=5))
    compile_branch = script[script.index("else"):]
    assert "if [ $COMPILE_EXIT -eq 124 ]; then" in compile_branch
    assert (
        "printf '%s: error: compilation timed out after %s\\n' main.cpp 5s" in compile_branch
    )
    # the notice comes before the sentinel
    assert compile_branch.index("timed out") < compile_branch.index("EXIT_CODE:")
