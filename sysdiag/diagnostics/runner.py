"""Diagnostic collection orchestrator."""

import shutil
import socket
import sys
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator, List, Optional, TextIO

from ..errors import ArchiveError, WorkspaceError
from ..utils import get_logger, Config
from .archive import Archiver, is_within
from .commands import CommandExecutor, CommandRunner, SubprocessExecutor, wait_for_enter
from .files import FileCollector, MissingReport, expand_patterns
from .reports import ReportBuilder

logger = get_logger(__name__)


class RunPhase(Enum):
    """Stage of a collection run."""
    INIT = "init"
    WORKSPACE_READY = "workspace_ready"
    COLLECTING = "collecting"
    REPORTING = "reporting"
    LOG_EXPANSION = "log_expansion"
    ARCHIVING = "archiving"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class CollectionResult:
    """Outcome of a successful collection run."""
    archive_path: Path
    started: datetime
    resolved_files: List[Path] = field(default_factory=list)
    missing: MissingReport = field(default_factory=MissingReport)
    steps_completed: int = 0
    duration_ms: Optional[float] = None


@contextmanager
def workspace(prefix: str = "system_diagnostics_",
              parent: Optional[Path] = None) -> Iterator[Path]:
    """
    Create a private temporary directory and remove it on exit.

    Removal happens exactly once, whether the block finishes, raises or is
    interrupted. A directory that cannot be removed is only warned about.

    Raises:
        WorkspaceError: if the directory cannot be created
    """
    try:
        path = Path(tempfile.mkdtemp(prefix=prefix, dir=parent))
    except OSError as e:
        raise WorkspaceError(f"Failed to create output directory: {e}") from e

    logger.debug(f"Workspace created: {path}")
    try:
        yield path
    finally:
        try:
            shutil.rmtree(path)
        except OSError as e:
            logger.warning(
                f"Failed to remove temporary directory: {path}. "
                f"You may need to remove it manually ({e})"
            )
        else:
            logger.info(f"Removed temporary directory: {path}")


class DiagnosticRunner:
    """
    Orchestrates one diagnostics collection run.

    Steps run strictly in order; the first failing step aborts the run. The
    workspace is removed on every way out of ``run``.
    """

    def __init__(
        self,
        config: Config,
        executor: Optional[CommandExecutor] = None,
        archiver: Optional[Archiver] = None,
        stream: Optional[TextIO] = None,
        acknowledge: Optional[Callable[[], None]] = None,
        clock: Callable[[], datetime] = datetime.now,
        hostname: Callable[[], str] = socket.gethostname,
        workspace_parent: Optional[Path] = None
    ):
        self.config = config
        self.executor = executor or SubprocessExecutor()
        self.archiver = archiver or Archiver(config.archive_format)
        self.stream = stream or sys.stdout
        self.clock = clock
        self.hostname = hostname
        self.workspace_parent = workspace_parent

        if not config.interactive:
            self.acknowledge = None
        else:
            self.acknowledge = acknowledge or (lambda: wait_for_enter(self.stream))

        self.phase = RunPhase.INIT
        self.workspace_path: Optional[Path] = None

    def archive_destination(self, now: Optional[datetime] = None) -> Path:
        """Path of the archive this run produces."""
        now = now or self.clock()
        name = self.config.archive_name.format(
            timestamp=now.strftime("%Y%m%d_%H%M%S"),
            hostname=self.hostname(),
        )
        return self.config.destination_path / f"{name}{self.archiver.extension}"

    def _enter(self, phase: RunPhase,
               progress_callback: Optional[Callable[[str, int, int], None]]) -> None:
        self.phase = phase
        logger.debug(f"Phase: {phase.value}")
        if progress_callback:
            order = list(RunPhase)
            progress_callback(phase.value, order.index(phase) + 1, order.index(RunPhase.DONE) + 1)

    def run(
        self,
        progress_callback: Optional[Callable[[str, int, int], None]] = None,
        step_callback: Optional[Callable[[int, int], None]] = None
    ) -> CollectionResult:
        """
        Run the complete collection pipeline.

        Args:
            progress_callback: Callback(phase_name, current_phase, total_phases)
            step_callback: Callback(step_number, total_steps) after each step

        Returns:
            CollectionResult describing the archive

        Raises:
            CollectionError: on any fatal condition, after cleanup
        """
        start_time = self.clock()
        self.phase = RunPhase.INIT

        try:
            return self._run(start_time, progress_callback, step_callback)
        except BaseException:
            self.phase = RunPhase.ABORTED
            logger.debug("Collection aborted")
            raise

    def _run(
        self,
        start_time: datetime,
        progress_callback: Optional[Callable[[str, int, int], None]],
        step_callback: Optional[Callable[[int, int], None]]
    ) -> CollectionResult:
        self._enter(RunPhase.INIT, progress_callback)
        self.archiver.check_available()
        destination = self.archive_destination(start_time)

        with workspace(self.config.workspace_prefix, self.workspace_parent) as work_dir:
            self.workspace_path = work_dir
            if is_within(destination, work_dir):
                raise ArchiveError(destination, "destination lies inside the workspace")
            self._enter(RunPhase.WORKSPACE_READY, progress_callback)

            self._enter(RunPhase.COLLECTING, progress_callback)
            runner = CommandRunner(self.executor, work_dir, self.stream, self.acknowledge)
            total_steps = len(self.config.steps)
            for i, step in enumerate(self.config.steps):
                runner.run_step(step)
                if step_callback:
                    step_callback(i + 1, total_steps)

            self._enter(RunPhase.REPORTING, progress_callback)
            builder = ReportBuilder(
                self.executor,
                self.config.report_sections,
                stream=self.stream,
                clock=self.clock,
                hostname=self.hostname
            )
            builder.build(work_dir / self.config.report_file)

            self._enter(RunPhase.LOG_EXPANSION, progress_callback)
            resolved = expand_patterns(self.config.log_patterns)
            missing = FileCollector().collect(resolved)

            self._enter(RunPhase.ARCHIVING, progress_callback)
            archive_path = self.archiver.archive(work_dir, resolved, destination)

        self._enter(RunPhase.DONE, progress_callback)
        self.stream.write(f"Successfully created archive: {archive_path}\n")
        self.stream.flush()

        duration = (self.clock() - start_time).total_seconds() * 1000
        logger.info(f"Collection complete: {archive_path}")

        return CollectionResult(
            archive_path=archive_path,
            started=start_time,
            resolved_files=resolved,
            missing=missing,
            steps_completed=total_steps,
            duration_ms=duration
        )
