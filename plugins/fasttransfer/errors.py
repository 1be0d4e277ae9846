"""
FastTransfer Error Types

Exceptions raised while staging and running the FastTransfer binary.
None of these are handled inside the plugin; they propagate to the Airflow
task so the scheduler can mark the task failed and apply its retry policy.
"""

from typing import Optional


class FastTransferError(Exception):
    """Base class for all plugin errors."""


class ResourceMissing(FastTransferError):
    """The executable payload could not be located."""


class IOFailure(FastTransferError):
    """Staging the executable or spawning the process failed."""


class ExternalProcessFailed(FastTransferError):
    """
    The external process exited with a non-zero status.

    Carries the exit code and the full merged output so the failure can be
    diagnosed from the task log without re-running.
    """

    def __init__(self, exit_code: int, output: str, command: Optional[str] = None):
        self.exit_code = exit_code
        self.output = output
        self.command = command
        super().__init__(
            f"FastTransfer executable failed with exit code {exit_code}\nOutput:\n{output}"
        )


class ExternalProcessTimeout(ExternalProcessFailed):
    """The external process did not finish in time and was killed."""

    def __init__(
        self,
        timeout: float,
        exit_code: int,
        output: str,
        command: Optional[str] = None,
    ):
        self.timeout = timeout
        super().__init__(exit_code, output, command)
        self.args = (
            f"FastTransfer executable timed out after {timeout}s and was killed "
            f"(exit code {exit_code})\nOutput:\n{output}",
        )
