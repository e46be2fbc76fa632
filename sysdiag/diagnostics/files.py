"""Log file pattern expansion and existence checks."""

import glob
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Sequence, Union

from ..utils import get_logger

logger = get_logger(__name__)

PathLike = Union[str, os.PathLike]


@dataclass
class MissingReport:
    """Paths that did not exist when collection checked them."""
    missing: List[Path] = field(default_factory=list)

    @property
    def any_missing(self) -> bool:
        return bool(self.missing)


def expand_pattern(pattern: str) -> List[Path]:
    """
    Expand one wildcard pattern against the live filesystem.

    A pattern without wildcards yields itself only if it exists; a pattern
    matching nothing yields an empty list, never the pattern text.
    """
    matches = glob.glob(os.path.expanduser(pattern))
    return [Path(m) for m in sorted(matches)]


def expand_patterns(patterns: Iterable[str]) -> List[Path]:
    """
    Expand log patterns into a deduplicated, ordered list of paths.

    Each pattern that matches nothing logs one warning and contributes
    nothing.
    """
    resolved: List[Path] = []
    seen = set()

    for pattern in patterns:
        matches = expand_pattern(pattern)
        if not matches:
            logger.warning(f"Pattern matched nothing: {pattern}")
            continue

        logger.debug(f"Pattern {pattern} matched {len(matches)} path(s)")
        for path in matches:
            if path not in seen:
                seen.add(path)
                resolved.append(path)

    return resolved


class FileCollector:
    """Checks that resolved paths exist, warning about the ones that don't."""

    def collect(self, resolved_paths: Sequence[PathLike]) -> MissingReport:
        """
        Check each path for existence (file or directory).

        Args:
            resolved_paths: Literal paths, already expanded

        Returns:
            MissingReport listing the missing paths in input order
        """
        report = MissingReport()

        for entry in resolved_paths:
            path = Path(entry)
            if not path.exists():
                report.missing.append(path)
                logger.warning(f"File not found: {path}")

        if report.any_missing:
            logger.warning("Some files were not found. Collection will continue without them.")

        return report
