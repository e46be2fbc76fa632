"""Application configuration for the diagnostics collector."""

import json
import tempfile
from dataclasses import dataclass, field, asdict
from pathlib import Path, PurePath
from typing import Any, List, Optional, Sequence, Union

from ..errors import ConfigError


Command = Union[str, Sequence[str]]


def _check_file_name(name: str, what: str) -> None:
    """Reject names that would escape the workspace directory."""
    if not name or name in ('.', '..') or PurePath(name).name != name:
        raise ConfigError(f"{what} must be a plain file name, got {name!r}")


def _check_command(command: Any, owner: str) -> None:
    """Accept a command line string or a list of argument strings."""
    if isinstance(command, str):
        return
    if not isinstance(command, (list, tuple)) or not all(isinstance(a, str) for a in command):
        raise ConfigError(f"{owner} command must be a string or a list of strings")


@dataclass(frozen=True)
class DiagnosticStep:
    """One external command whose output is kept in the archive."""
    command: Command      # shell command line, or an argument vector
    description: str
    output_file: str      # file name inside the workspace

    def __post_init__(self):
        if not isinstance(self.description, str):
            raise ConfigError("Step description must be a string")
        if not isinstance(self.output_file, str):
            raise ConfigError(f"Step '{self.description}' output file must be a string")
        _check_file_name(self.output_file, "Step output file")
        _check_command(self.command, f"Step '{self.description}'")
        if not self.command:
            raise ConfigError(f"Step '{self.description}' has no command")
        if not isinstance(self.command, str):
            object.__setattr__(self, 'command', tuple(self.command))


@dataclass(frozen=True)
class ReportSection:
    """A labelled section of the text report and the command producing it."""
    header: str
    command: Command

    def __post_init__(self):
        if not isinstance(self.header, str):
            raise ConfigError("Report section header must be a string")
        _check_command(self.command, f"Report section '{self.header}'")
        if not isinstance(self.command, str):
            object.__setattr__(self, 'command', tuple(self.command))


DEFAULT_STEPS: List[DiagnosticStep] = [
    DiagnosticStep("top -b -n 1", "Collect CPU Utilization (top)", "top_output.txt"),
    DiagnosticStep("free -h", "Collect Memory Utilization (free)", "memory_output.txt"),
    DiagnosticStep("iostat -xz", "Collect Disk I/O (iostat)", "iostat_output.txt"),
    DiagnosticStep("sar -n DEV 1 1", "Collect Network Utilization (sar -n DEV)",
                   "network_output.txt"),
    DiagnosticStep("uptime", "Collect Load Average (uptime)", "uptime_output.txt"),
    DiagnosticStep("vmstat 5 10", "Collect CPU and Memory Over Time (vmstat)",
                   "vmstat_detailed_output.txt"),
    DiagnosticStep("sar -u -r -b -n DEV 5 10", "Collect System Activity Over Time (sar)",
                   "sar_detailed_output.txt"),
    DiagnosticStep("pidstat -u -r -d 5 10",
                   "Collect Per-Process Resource Usage Over Time (pidstat)",
                   "pidstat_detailed_output.txt"),
    DiagnosticStep("systemctl list-units --type=service --state=running",
                   "List Running Services", "running_services.txt"),
    DiagnosticStep("df -h", "Check Disk Space", "disk_space.txt"),
]

DEFAULT_LOG_PATTERNS: List[str] = [
    "/var/log/messages*",
    "/var/log/kern*",
    "/var/log/algosec-top-*",
    "/home/afa/.fa-history*",
    "/data/ms-metro/logs/catalina.out*",
]

DEFAULT_REPORT_SECTIONS: List[ReportSection] = [
    ReportSection("Uptime", "uptime"),
    ReportSection("CPU Information", "lscpu"),
    ReportSection("Memory Information", "free -h"),
    ReportSection("Disk Information", "df -h"),
    ReportSection("Network Interfaces", "ip link show"),
    ReportSection("Running Services", "systemctl list-units --type=service --state=running"),
]

ARCHIVE_FORMATS = ("zip", "gztar")


@dataclass
class Config:
    """Application configuration settings."""

    # Output
    destination_dir: str = ""  # empty means the system temp directory
    archive_format: str = "zip"
    archive_name: str = "system_performance_{timestamp}-{hostname}"

    # Workspace
    workspace_prefix: str = "system_diagnostics_"
    report_file: str = "system_report.txt"

    # Operator interaction
    interactive: bool = True

    # What to collect
    steps: List[DiagnosticStep] = field(default_factory=lambda: list(DEFAULT_STEPS))
    log_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_LOG_PATTERNS))
    report_sections: List[ReportSection] = field(
        default_factory=lambda: list(DEFAULT_REPORT_SECTIONS))

    # Logging
    log_level: str = "INFO"

    def __post_init__(self):
        for name in ("steps", "report_sections"):
            if not isinstance(getattr(self, name), list):
                raise ConfigError(f"{name} must be a list")
        self.steps = [_coerce(DiagnosticStep, s) for s in self.steps]
        self.report_sections = [_coerce(ReportSection, s) for s in self.report_sections]
        self.validate()

    def validate(self) -> None:
        """Raise ConfigError if the settings cannot produce a valid run."""
        for name in ("destination_dir", "archive_format", "archive_name",
                     "workspace_prefix", "report_file", "log_level"):
            if not isinstance(getattr(self, name), str):
                raise ConfigError(f"{name} must be a string")
        if not isinstance(self.interactive, bool):
            raise ConfigError("interactive must be true or false")
        if not isinstance(self.log_patterns, list) or not all(
                isinstance(p, str) and p for p in self.log_patterns):
            raise ConfigError("log_patterns must be a list of non-empty strings")
        _check_file_name(self.report_file, "Report file")
        if self.archive_format not in ARCHIVE_FORMATS:
            raise ConfigError(
                f"Unknown archive format {self.archive_format!r}, "
                f"expected one of {', '.join(ARCHIVE_FORMATS)}"
            )
        outputs = [s.output_file for s in self.steps]
        if len(set(outputs)) != len(outputs):
            raise ConfigError("Step output file names must be unique")
        if self.report_file in outputs:
            raise ConfigError(
                f"Report file {self.report_file!r} clashes with a step output file")

    @property
    def destination_path(self) -> Path:
        """Directory that receives the final archive."""
        if self.destination_dir:
            return Path(self.destination_dir).expanduser()
        return Path(tempfile.gettempdir())

    @classmethod
    def load(cls, filepath: Optional[Path] = None) -> "Config":
        """
        Load configuration from file.

        Without an explicit path the default location is tried and a missing
        file yields the built-in defaults. An explicit path must exist.
        """
        explicit = filepath is not None
        if filepath is None:
            filepath = cls._default_config_path()

        if not filepath.exists():
            if explicit:
                raise ConfigError(f"Configuration file not found: {filepath}")
            return cls()

        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read configuration {filepath}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Configuration {filepath} must contain a JSON object")

        try:
            return cls(**data)
        except TypeError as e:
            raise ConfigError(f"Invalid configuration {filepath}: {e}") from e

    def save(self, filepath: Optional[Path] = None) -> None:
        """Save configuration to file."""
        if filepath is None:
            filepath = self._default_config_path()

        filepath.parent.mkdir(parents=True, exist_ok=True)

        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(asdict(self), f, indent=2)

    @staticmethod
    def _default_config_path() -> Path:
        """Get the default configuration file path."""
        return Path.home() / ".sysdiag" / "config.json"


def _coerce(kind: type, value: Any) -> Any:
    """Build a step or section dataclass from its JSON form."""
    if isinstance(value, kind):
        return value
    if isinstance(value, dict):
        try:
            return kind(**value)
        except TypeError as e:
            raise ConfigError(f"Invalid {kind.__name__} entry {value!r}: {e}") from e
    raise ConfigError(f"Invalid {kind.__name__} entry {value!r}")
