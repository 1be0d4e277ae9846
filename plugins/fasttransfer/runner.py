"""
Process Runner Module

Runs the staged FastTransfer binary and classifies the result.

Lifecycle of one invocation:
    Staged -> Launched -> OutputCollecting -> Terminated -> Classified

stderr is merged into stdout. A dedicated thread drains the merged pipe until
EOF while the calling thread waits for the process, so a chatty child can
never block on a full pipe buffer. The drain is joined, with a bound, before
the result is built.

There is no retry here. Airflow owns the retry policy for the task.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence
import logging
import subprocess
import threading

from fasttransfer.errors import ExternalProcessFailed, ExternalProcessTimeout, IOFailure
from fasttransfer.parameters import ParameterSpec, RenderContext, build_command
from fasttransfer.staging import PayloadSource, staged_executable

logger = logging.getLogger(__name__)

# Seconds to wait for the drain thread once the process has exited. A
# grandchild that inherited the pipe can keep it open past that point.
_DRAIN_JOIN_TIMEOUT = 10.0


@dataclass(frozen=True)
class InvocationResult:
    """Merged output and exit code of one finished process."""

    merged_output: str
    exit_code: int

    def to_dict(self) -> Dict[str, Any]:
        """XCom-friendly form."""
        return {"logs": self.merged_output, "exitCode": self.exit_code}


class RunnerState(Enum):
    IDLE = "idle"
    STAGED = "staged"
    LAUNCHED = "launched"
    OUTPUT_COLLECTING = "output_collecting"
    TERMINATED = "terminated"
    CLASSIFIED = "classified"


class _OutputDrain(threading.Thread):
    """
    Reads a pipe line by line until EOF.

    Lines end at "\n", "\r\n" or a lone "\r", so carriage-return progress
    updates come out as separate lines.
    """

    def __init__(self, stream, line_callback: Optional[Callable[[str], None]] = None):
        super().__init__(name="fasttransfer-output-drain", daemon=True)
        self._stream = stream
        self._line_callback = line_callback
        self.lines: List[str] = []
        self.error: Optional[BaseException] = None

    def run(self) -> None:
        try:
            for raw in iter(self._stream.readline, b''):
                text = raw.decode('utf-8', errors='replace')
                if text.endswith('\n'):
                    text = text[:-1]
                if text.endswith('\r'):
                    text = text[:-1]
                for line in text.split('\r'):
                    self.lines.append(line)
                    if self._line_callback:
                        self._line_callback(line)
        except (OSError, ValueError) as e:
            # Stream closed under us after a kill
            self.error = e
        finally:
            self._stream.close()

    def output(self) -> str:
        return "\n".join(list(self.lines))


def run_process(
    argv: Sequence[str],
    timeout: Optional[float] = None,
    env: Optional[Mapping[str, str]] = None,
    cwd: Optional[str] = None,
    line_callback: Optional[Callable[[str], None]] = None,
    on_started: Optional[Callable[[], None]] = None,
) -> InvocationResult:
    """
    Run a process with stderr merged into stdout and capture everything.

    Args:
        argv: Executable path followed by its arguments
        timeout: Seconds before the process is killed (None = wait forever)
        env: Environment for the child (default: inherit)
        cwd: Working directory for the child
        line_callback: Called with each output line as it arrives
        on_started: Called once the process runs and its output is being read

    Returns:
        InvocationResult for any exit code, including non-zero

    Raises:
        IOFailure: If the process cannot be spawned
        ExternalProcessTimeout: If the timeout expires
    """
    try:
        process = subprocess.Popen(
            list(argv),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            env=dict(env) if env is not None else None,
            cwd=cwd,
        )
    except OSError as e:
        raise IOFailure(f"Cannot start process {argv[0]}: {e}") from e

    drain = _OutputDrain(process.stdout, line_callback)
    drain.start()
    if on_started:
        on_started()

    try:
        exit_code = process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.error(f"Process {process.pid} exceeded timeout of {timeout}s, killing it")
        process.kill()
        exit_code = process.wait()
        drain.join(_DRAIN_JOIN_TIMEOUT)
        raise ExternalProcessTimeout(timeout, exit_code, drain.output())
    except BaseException:
        # Interrupted while waiting (e.g. task killed); do not orphan the child
        process.kill()
        process.wait()
        drain.join(_DRAIN_JOIN_TIMEOUT)
        raise

    drain.join(_DRAIN_JOIN_TIMEOUT)
    if drain.is_alive():
        logger.warning(
            f"Output stream of process {process.pid} still open {_DRAIN_JOIN_TIMEOUT}s after exit "
            f"(held by a child process?); returning output read so far"
        )
    elif drain.error is not None:
        logger.warning(f"Output stream of process {process.pid} ended with error: {drain.error}")

    return InvocationResult(merged_output=drain.output(), exit_code=exit_code)


class ProcessRunner:
    """
    Stage, build, run and classify one external binary invocation.

    A runner holds no state shared with other runners; create one per task
    run. The state attribute is for diagnostics only.

    Args:
        source: Where to read the executable from
        name_hint: Prefix for the staged file name
        timeout: Process timeout in seconds (None = no timeout)
        temp_dir: Directory to stage in
        log_output: Write the full process output to the log
    """

    def __init__(
        self,
        source: PayloadSource,
        name_hint: str = "fasttransfer",
        timeout: Optional[float] = None,
        temp_dir: Optional[str] = None,
        log_output: bool = True,
    ):
        self.source = source
        self.name_hint = name_hint
        self.timeout = timeout
        self.temp_dir = temp_dir
        self.log_output = log_output
        self.state = RunnerState.IDLE

    def execute(
        self,
        spec: ParameterSpec,
        context: Optional[RenderContext] = None,
    ) -> InvocationResult:
        """
        Run the executable once with the given options.

        Args:
            spec: Ordered option table
            context: Resolver for late-bound option values

        Returns:
            InvocationResult of a process that exited with code 0

        Raises:
            ResourceMissing: If the executable payload cannot be located
            IOFailure: If staging or spawning fails
            ExternalProcessFailed: If the process exits non-zero or times out
        """
        self.state = RunnerState.IDLE
        with staged_executable(self.source, self.name_hint, self.temp_dir) as path:
            self.state = RunnerState.STAGED
            command = build_command(path, spec, context)
            display = command.display()
            logger.info(f"Command to execute: {display}")

            logger.info("Starting FastTransfer process...")
            self.state = RunnerState.LAUNCHED
            try:
                result = run_process(
                    command.argv,
                    timeout=self.timeout,
                    line_callback=lambda line: logger.debug(f"[fasttransfer] {line}"),
                    on_started=lambda: setattr(self, "state", RunnerState.OUTPUT_COLLECTING),
                )
            except ExternalProcessTimeout as e:
                self.state = RunnerState.CLASSIFIED
                e.command = display
                raise
            self.state = RunnerState.TERMINATED

        if self.log_output:
            logger.info(f"FastTransfer output:\n{result.merged_output}")
        logger.info(f"Process exited with code {result.exit_code}")

        self.state = RunnerState.CLASSIFIED
        if result.exit_code != 0:
            raise ExternalProcessFailed(result.exit_code, result.merged_output, command=display)
        return result
