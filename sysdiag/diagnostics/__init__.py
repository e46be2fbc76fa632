"""Diagnostic collection, reporting and packaging."""

from .commands import CommandExecutor, CommandOutcome, CommandRunner, SubprocessExecutor
from .files import FileCollector, MissingReport, expand_patterns
from .reports import ReportBuilder
from .archive import Archiver
from .runner import DiagnosticRunner, CollectionResult, RunPhase, workspace

__all__ = [
    "CommandExecutor",
    "CommandOutcome",
    "CommandRunner",
    "SubprocessExecutor",
    "FileCollector",
    "MissingReport",
    "expand_patterns",
    "ReportBuilder",
    "Archiver",
    "DiagnosticRunner",
    "CollectionResult",
    "RunPhase",
    "workspace",
]
