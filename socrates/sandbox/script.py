"""
The shell program run inside each container.

Phase order: compile, then run only if compilation succeeded. The last line
written is always ``EXIT_CODE:<n>`` for whichever phase decided the outcome.
The run phase has its own wall-clock cutoff so a runaway binary is stopped
even if the orchestrator's timeout never fires.
"""

from __future__ import annotations

import shlex
from string import Template

from socrates.config import SandboxConfig
from socrates.sandbox.harness import MAIN_FILE

EXIT_CODE_SENTINEL = "EXIT_CODE:"
# Exit status of coreutils ``timeout`` when it had to stop the command.
TIMEOUT_EXIT_CODE = 124

SCRIPT_TEMPLATE = Template("""\
cd $workdir
timeout $compile_timeout $compile_command 2>&1
COMPILE_EXIT=$$?
if [ $$COMPILE_EXIT -eq 0 ]; then
  timeout -k 1 $run_timeout $binary 2>&1
  RUN_EXIT=$$?
  printf '\\n${sentinel}%d\\n' "$$RUN_EXIT"
else
  if [ $$COMPILE_EXIT -eq $timeout_exit ]; then
    printf '%s: error: compilation timed out after %s\\n' $source $compile_timeout
  fi
  printf '\\n${sentinel}%d\\n' "$$COMPILE_EXIT"
fi
""")


def _seconds(value: float) -> str:
    return f"{value:g}s"


def compile_command(config: SandboxConfig, source: str = MAIN_FILE) -> str:
    argv = [
        config.compiler,
        f"-std={config.cxx_standard}",
        *config.warning_flags,
        "-o",
        config.binary_path,
        source,
    ]
    return shlex.join(argv)


def render_script(config: SandboxConfig) -> str:
    return SCRIPT_TEMPLATE.substitute(
        workdir=shlex.quote(config.container_workdir),
        compile_command=compile_command(config),
        source=shlex.quote(MAIN_FILE),
        compile_timeout=_seconds(config.compile_timeout),
        run_timeout=_seconds(config.run_timeout),
        binary=shlex.quote(config.binary_path),
        sentinel=EXIT_CODE_SENTINEL,
        timeout_exit=TIMEOUT_EXIT_CODE,
    )
