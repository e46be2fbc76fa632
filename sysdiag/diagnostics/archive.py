"""Packaging of the collected workspace into a compressed archive."""

import importlib.util
import os
import shutil
import tarfile
import zipfile
from pathlib import Path, PurePosixPath
from typing import Iterator, List, Sequence, Tuple

from ..errors import ArchiveError, ArchiverUnavailableError
from ..utils import get_logger

logger = get_logger(__name__)

# Extra files live under this folder inside the archive, keyed by their
# absolute path, so they can never collide with workspace files.
EXTRA_ROOT = "files"

EXTENSIONS = {
    "zip": ".zip",
    "gztar": ".tar.gz",
}


def is_within(path: Path, directory: Path) -> bool:
    """True if ``path`` is ``directory`` itself or lies below it."""
    path = Path(os.path.realpath(path))
    directory = Path(os.path.realpath(directory))
    return path == directory or directory in path.parents


def extra_arcname(path: Path) -> str:
    """Archive member name for a file collected from outside the workspace."""
    absolute = Path(os.path.abspath(path))
    relative = absolute.relative_to(absolute.anchor)
    return str(PurePosixPath(EXTRA_ROOT, *relative.parts))


class Archiver:
    """
    Writes a directory tree plus extra paths into one archive.

    The archive is assembled in a hidden partial file beside the destination
    and moved into place only once it is complete.
    """

    def __init__(self, archive_format: str = "zip"):
        self.archive_format = archive_format

    @property
    def extension(self) -> str:
        return EXTENSIONS.get(self.archive_format, "")

    def check_available(self) -> None:
        """
        Verify the archive backend can be used.

        Raises:
            ArchiverUnavailableError: unknown format or no zlib support
        """
        if self.archive_format not in EXTENSIONS:
            raise ArchiverUnavailableError(
                f"Unsupported archive format: {self.archive_format}")
        if importlib.util.find_spec("zlib") is None:
            raise ArchiverUnavailableError(
                "zlib compression support is not available in this Python installation")
        logger.debug(f"Archive backend available: {self.archive_format}")

    def archive(self, source_directory: Path, extra_paths: Sequence[Path],
                destination_path: Path) -> Path:
        """
        Package a directory and extra paths into an archive.

        Args:
            source_directory: Directory whose full contents are archived
            extra_paths: Additional files or directories, anywhere on disk
            destination_path: Archive path, must lie outside source_directory

        Returns:
            The destination path

        Raises:
            ArchiveError: if the destination is unsafe or cannot be written
        """
        source_directory = Path(source_directory)
        destination_path = Path(destination_path)

        if is_within(destination_path, source_directory):
            raise ArchiveError(
                destination_path,
                f"destination lies inside the directory being archived ({source_directory})"
            )

        partial = destination_path.with_name(f".{destination_path.name}.partial")

        try:
            members = list(self._members(source_directory, extra_paths))
            destination_path.parent.mkdir(parents=True, exist_ok=True)
            if self.archive_format == "zip":
                written = self._write_zip(partial, members)
            else:
                written = self._write_tar(partial, members)
            os.replace(partial, destination_path)
        except (OSError, zipfile.BadZipFile, tarfile.TarError) as e:
            self._discard(partial)
            raise ArchiveError(destination_path, e) from e
        except BaseException:
            self._discard(partial)
            raise

        logger.info(f"Archived {written} file(s) to {destination_path}")
        return destination_path

    def _members(self, source_directory: Path,
                 extra_paths: Sequence[Path]) -> Iterator[Tuple[Path, str]]:
        """Yield (path, archive name) pairs for every file to store, each name once."""
        for path in sorted(source_directory.rglob("*")):
            if path.is_file():
                yield path, path.relative_to(source_directory).as_posix()

        # A directory pattern and a pattern for files inside it overlap
        seen = set()
        for extra in extra_paths:
            extra = Path(extra)
            if extra.is_dir():
                candidates = [p for p in sorted(extra.rglob("*")) if p.is_file()]
            else:
                # Vanished files are reported when they fail to open
                candidates = [extra]
            for path in candidates:
                arcname = extra_arcname(path)
                if arcname in seen:
                    logger.debug(f"Already archived: {path}")
                    continue
                seen.add(arcname)
                yield path, arcname

    def _readable(self, path: Path):
        """Open a member for reading, or None if it cannot be read."""
        try:
            return open(path, 'rb')
        except OSError as e:
            logger.warning(f"Skipping {path}: {e}")
            return None

    def _write_zip(self, target: Path, members: List[Tuple[Path, str]]) -> int:
        written = 0
        with zipfile.ZipFile(target, 'w', compression=zipfile.ZIP_DEFLATED) as zf:
            for path, arcname in members:
                src = self._readable(path)
                if src is None:
                    continue
                with src:
                    info = zipfile.ZipInfo.from_file(path, arcname, strict_timestamps=False)
                    info.compress_type = zipfile.ZIP_DEFLATED
                    with zf.open(info, 'w', force_zip64=True) as dst:
                        shutil.copyfileobj(src, dst)
                written += 1
        return written

    def _write_tar(self, target: Path, members: List[Tuple[Path, str]]) -> int:
        written = 0
        with tarfile.open(target, 'w:gz') as tf:
            for path, arcname in members:
                src = self._readable(path)
                if src is None:
                    continue
                with src:
                    info = tf.gettarinfo(arcname=arcname, fileobj=src)
                    tf.addfile(info, src)
                written += 1
        return written

    @staticmethod
    def _discard(partial: Path) -> None:
        try:
            partial.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove partial archive {partial}: {e}")
