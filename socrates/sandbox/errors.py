"""Exceptions raised by the sandbox.

Only problems with the request itself (raised before any container exists)
and failures of the execution substrate surface as exceptions. Compile
failures, crashes and wrong answers are ordinary results.
"""


class SandboxError(Exception):
    """Base class for sandbox exceptions."""


class CodeTooLarge(SandboxError):
    def __init__(self, size: int, max_size: int) -> None:
        super().__init__(
            f"Code size ({size} bytes) exceeds maximum allowed size ({max_size} bytes)"
        )
        self.size = size
        self.max_size = max_size


class EmptySubmission(SandboxError):
    def __init__(self) -> None:
        super().__init__("Code cannot be empty")


class InvalidTestIndex(SandboxError):
    def __init__(self, index: int, count: int) -> None:
        super().__init__(f"Test index {index} is out of range (0-{count - 1})")
        self.index = index


class DockerUnavailable(SandboxError):
    """The Docker daemon or image registry could not be used."""


class ExecutionTimeout(SandboxError):
    """The container outlived compile_timeout + run_timeout."""
