"""External command execution for diagnostic steps."""

import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, TextIO

from ..errors import StepFailedError, format_command
from ..utils import get_logger
from ..utils.config import Command, DiagnosticStep

logger = get_logger(__name__)

# Exit status a POSIX shell reports for a command it cannot find
COMMAND_NOT_FOUND = 127


@dataclass
class CommandOutcome:
    """Exit status and combined stdout/stderr of one command."""
    exit_status: int
    output: bytes = b""

    @property
    def succeeded(self) -> bool:
        return self.exit_status == 0


class CommandExecutor:
    """
    Capability for running an external command.

    The pipeline never starts processes itself; it asks an executor. Tests
    hand in a fake executor instead of shadowing programs on the search path.
    """

    def execute(self, command: Command) -> CommandOutcome:
        raise NotImplementedError


class SubprocessExecutor(CommandExecutor):
    """Runs commands with ``subprocess``, merging stderr into stdout."""

    def execute(self, command: Command) -> CommandOutcome:
        shell = isinstance(command, str)
        logger.debug(f"Executing: {format_command(command)}")

        try:
            result = subprocess.run(
                command if shell else list(command),
                shell=shell,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
            )
        except OSError as e:
            logger.debug(f"Could not start {format_command(command)}: {e}")
            return CommandOutcome(COMMAND_NOT_FOUND, f"{e}\n".encode())

        return CommandOutcome(result.returncode, result.stdout or b"")


def wait_for_enter(stream: TextIO = sys.stdout) -> None:
    """Block until the operator presses Enter."""
    stream.write("Press Enter to continue...")
    stream.flush()
    try:
        input()
    except EOFError:
        # stdin closed, nobody to wait for
        stream.write("\n")


class CommandRunner:
    """
    Runs diagnostic steps into a workspace directory.

    Any step that exits nonzero is fatal for the whole run: the failure is
    reported and ``StepFailedError`` propagates to the caller.
    """

    def __init__(
        self,
        executor: CommandExecutor,
        workspace: Path,
        stream: Optional[TextIO] = None,
        acknowledge: Optional[Callable[[], None]] = None
    ):
        self.executor = executor
        self.workspace = Path(workspace)
        self.stream = stream or sys.stdout
        self.acknowledge = acknowledge

    def _notify(self, message: str) -> None:
        self.stream.write(message + "\n")
        self.stream.flush()

    def run(self, command: Command, description: str, output_file: str) -> None:
        """
        Run one command and store its output.

        Args:
            command: Shell command line or argument vector
            description: Human label shown to the operator
            output_file: File name inside the workspace for the captured output

        Raises:
            StepFailedError: if the command exits with a nonzero status
        """
        self._notify(f"Running: {description}")

        outcome = self.executor.execute(command)
        (self.workspace / output_file).write_bytes(outcome.output)

        command_text = format_command(command)
        if not outcome.succeeded:
            self._notify(
                f"Command '{command_text}' failed with exit status "
                f"{outcome.exit_status}.  Exiting."
            )
            logger.error(f"Step failed ({description}): exit status {outcome.exit_status}")
            raise StepFailedError(command, description, outcome.exit_status)

        self._notify(f"Command '{command_text}' successful.")
        logger.debug(f"{description}: {len(outcome.output)} bytes -> {output_file}")

        if self.acknowledge:
            self.acknowledge()

    def run_step(self, step: DiagnosticStep) -> None:
        """Run a configured diagnostic step."""
        self.run(step.command, step.description, step.output_file)
