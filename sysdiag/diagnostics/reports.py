"""Text report generation from informational commands."""

import socket
import sys
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Sequence, TextIO

from ..utils import get_logger
from ..utils.config import ReportSection, DEFAULT_REPORT_SECTIONS
from .commands import CommandExecutor

logger = get_logger(__name__)

REPORT_TITLE = "System Performance Report"
END_MARKER = "End of Report"


def format_header(header: str) -> str:
    """Frame a section header line."""
    return f"--- {header} ---"


class ReportBuilder:
    """
    Builds the system performance report.

    Each section is a blank line, a framed header and the raw output of the
    section's command. A failing section command does not stop the report;
    whatever it printed, error text included, goes in as-is.
    """

    def __init__(
        self,
        executor: CommandExecutor,
        sections: Sequence[ReportSection] = DEFAULT_REPORT_SECTIONS,
        stream: Optional[TextIO] = None,
        clock: Callable[[], datetime] = datetime.now,
        hostname: Callable[[], str] = socket.gethostname
    ):
        self.executor = executor
        self.sections = list(sections)
        self.stream = stream or sys.stdout
        self.clock = clock
        self.hostname = hostname

    def _notify(self, message: str) -> None:
        self.stream.write(message + "\n")
        self.stream.flush()

    def _preamble(self) -> str:
        now = self.clock()
        if now.tzinfo is None:
            now = now.astimezone()
        # Same layout as date(1): space-padded day and zone name
        stamp = now.strftime(f"%a %b {now.day:2d} %H:%M:%S %Z %Y")
        lines = [
            "",
            format_header(REPORT_TITLE),
            f"Date: {stamp}",
            f"Hostname: {self.hostname()}",
        ]
        return "\n".join(lines) + "\n"

    def build(self, destination_file: Path) -> None:
        """
        Append the report to a file, creating it if needed.

        Args:
            destination_file: Report file path
        """
        self._notify("Generating system performance report...")

        with open(destination_file, 'ab') as f:
            f.write(self._preamble().encode('utf-8'))

            for section in self.sections:
                f.write(f"\n{format_header(section.header)}\n".encode('utf-8'))
                outcome = self.executor.execute(section.command)
                if not outcome.succeeded:
                    logger.info(
                        f"Report section '{section.header}' command exited "
                        f"with status {outcome.exit_status}"
                    )
                f.write(outcome.output)
                if outcome.output and not outcome.output.endswith(b"\n"):
                    f.write(b"\n")

            f.write(f"\n{format_header(END_MARKER)}\n".encode('utf-8'))

        logger.info(f"Report saved to {destination_file}")
        self._notify("Report generation complete.")
