"""Exception types raised by the diagnostics collector.

Every fatal condition of a collection run derives from ``CollectionError``;
the command-line entry point turns any of them into a nonzero exit status.
"""

from pathlib import Path
from typing import Optional, Sequence, Union


class CollectionError(Exception):
    """Base class for failures that end a collection run."""


class ConfigError(CollectionError):
    """The configuration is missing, malformed or unsafe."""


class ArchiverUnavailableError(CollectionError):
    """The archive backend cannot be used on this machine."""


class WorkspaceError(CollectionError):
    """The temporary workspace could not be created."""


class StepFailedError(CollectionError):
    """A diagnostic command exited with a nonzero status."""

    def __init__(self, command: Union[str, Sequence[str]], description: str,
                 exit_status: int):
        self.command = command
        self.description = description
        self.exit_status = exit_status
        super().__init__(
            f"Command '{format_command(command)}' ({description}) "
            f"failed with exit status {exit_status}"
        )


class ArchiveError(CollectionError):
    """The archive could not be written to its destination."""

    def __init__(self, destination: Path, cause: Union[str, Exception]):
        self.destination = destination
        self.cause = cause
        super().__init__(f"Failed to create archive {destination}: {cause}")


def format_command(command: Optional[Union[str, Sequence[str]]]) -> str:
    """Render a command line or argument vector for messages."""
    if command is None:
        return ""
    if isinstance(command, str):
        return command
    return " ".join(command)
