"""
High-level code execution interface.

Orchestrates: size check → workspace → harness → Docker sandbox → result
formatting. This is the single entry point for callers serving requests.
"""

from __future__ import annotations

from dataclasses import replace

from structlog import get_logger

from socrates.config import SandboxConfig, get_settings
from socrates.sandbox.classifier import classify_execution
from socrates.sandbox.errors import EmptySubmission
from socrates.sandbox.harness import HarnessGenerator
from socrates.sandbox.manager import DockerSandboxManager
from socrates.sandbox.models import ExecutionResult, TestCategory, TestExecutionResult
from socrates.sandbox.parser import format_error_gcc_style
from socrates.sandbox.workspace import WorkspaceManager, validate_size

logger = get_logger()


class CodeExecutor:
    """
    Facade that combines submission checks, harness generation and Docker
    execution.

    Usage::

        executor = CodeExecutor()
        await executor.initialize()
        result = await executor.execute(source, test_index=0)
        verdict = await executor.classify(source)
        await executor.shutdown()
    """

    def __init__(
        self,
        config: SandboxConfig | None = None,
        manager: DockerSandboxManager | None = None,
        workspaces: WorkspaceManager | None = None,
    ) -> None:
        self._config = config or get_settings().sandbox
        self._manager = manager or DockerSandboxManager(config=self._config)
        self._workspaces = workspaces or WorkspaceManager(self._config.workspace_root)
        self._harness = HarnessGenerator(self._workspaces)
        self._initialized = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Initialize Docker manager (connect + pull image)."""
        if self._initialized:
            return
        await self._manager.initialize()
        self._initialized = True
        logger.info("CodeExecutor initialized")

    async def shutdown(self) -> None:
        """Release resources."""
        await self._manager.shutdown()
        self._initialized = False
        logger.info("CodeExecutor shut down")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def execute(self, code: str, test_index: int | None = None) -> ExecutionResult:
        """
        Compile and run a submission.

        Args:
            code: C++ source; either a full program or a ``Solution`` class.
            test_index: Run only this built-in test case, with console
                sentinels around the call.

        Returns:
            ``ExecutionResult`` whose ``errors`` are rewritten GCC-style
            against the exact files that were compiled.

        Raises:
            EmptySubmission, CodeTooLarge, InvalidTestIndex: before any
                container is created.
            DockerUnavailable: the Docker daemon or registry failed.
        """
        if not code or not code.strip():
            raise EmptySubmission()
        validate_size(code, self._config.max_code_size)

        if not self._initialized:
            await self.initialize()

        with self._workspaces.session() as workspace:
            prepared = self._harness.prepare(workspace, code, test_index)
            result = await self._manager.run(workspace)

        if result.errors.strip():
            result = replace(
                result,
                errors=format_error_gcc_style(result.errors, prepared.files_for_errors),
            )

        logger.info(
            "Code execution finished",
            used_harness=prepared.used_harness,
            test_index=test_index,
            exit_code=result.exit_code,
            parsed_errors=len(result.parsed_errors),
            duration=f"{result.execution_time:.2f}s",
        )
        return result

    async def classify(self, code: str) -> TestExecutionResult:
        """Run the full built-in suite and classify the outcome.

        Never raises: any failure, including Docker being unavailable, is
        reported as ``SYNTAX_ERROR`` with the exception message.
        """
        try:
            validate_size(code, self._config.max_code_size)
            if not self._initialized:
                await self.initialize()

            with self._workspaces.session() as workspace:
                self._harness.prepare(workspace, code)
                result = await self._manager.run(workspace)

            verdict = classify_execution(result)
        except Exception as exc:
            logger.error("Error classifying test results", error=str(exc))
            return TestExecutionResult(
                category=TestCategory.SYNTAX_ERROR,
                compilation_errors=str(exc) or exc.__class__.__name__,
            )

        logger.info(
            "Test run classified",
            category=verdict.category.value,
            exit_code=result.exit_code,
        )
        return verdict
