from __future__ import annotations

import logging
import tarfile
import zipfile
from pathlib import Path

import pytest

from sysdiag.diagnostics.archive import Archiver, extra_arcname, is_within
from sysdiag.errors import ArchiveError, ArchiverUnavailableError


def _make_workspace(base: Path) -> Path:
    work = base / "workspace"
    (work / "nested").mkdir(parents=True)
    (work / "top_output.txt").write_text("top", encoding="utf-8")
    (work / "system_report.txt").write_text("report", encoding="utf-8")
    (work / "nested" / "inner.txt").write_text("inner", encoding="utf-8")
    return work


def _make_logs(base: Path) -> Path:
    logs = base / "var" / "log"
    logs.mkdir(parents=True)
    (logs / "messages").write_text("msg", encoding="utf-8")
    (logs / "kern.log").write_text("kern", encoding="utf-8")
    return logs


def test_zip_contains_workspace_and_extra_files(tmp_path: Path):
    work = _make_workspace(tmp_path)
    logs = _make_logs(tmp_path)
    destination = tmp_path / "out" / "diag.zip"

    result = Archiver("zip").archive(work, [logs / "messages", logs / "kern.log"], destination)

    assert result == destination
    with zipfile.ZipFile(destination) as zf:
        names = set(zf.namelist())
        assert zf.read(extra_arcname(logs / "messages")) == b"msg"
    assert {"top_output.txt", "system_report.txt", "nested/inner.txt"} <= names
    assert extra_arcname(logs / "kern.log") in names
    assert len(names) == 5
    assert not list(destination.parent.glob(".*.partial"))


def test_gztar_archive(tmp_path: Path):
    work = _make_workspace(tmp_path)
    logs = _make_logs(tmp_path)
    destination = tmp_path / "diag.tar.gz"

    Archiver("gztar").archive(work, [logs], destination)

    with tarfile.open(destination, "r:gz") as tf:
        names = set(tf.getnames())
        member = tf.extractfile(extra_arcname(logs / "kern.log"))
        assert member.read() == b"kern"
    assert "nested/inner.txt" in names
    assert extra_arcname(logs / "messages") in names


def test_extra_names_do_not_collide_with_workspace(tmp_path: Path):
    work = _make_workspace(tmp_path)
    clash = tmp_path / "top_output.txt"
    clash.write_text("outside", encoding="utf-8")
    destination = tmp_path / "diag.zip"

    Archiver().archive(work, [clash], destination)

    with zipfile.ZipFile(destination) as zf:
        assert zf.read("top_output.txt") == b"top"
        assert zf.read(extra_arcname(clash)) == b"outside"


def test_extra_arcname_strips_root():
    assert extra_arcname(Path("/var/log/messages")) == "files/var/log/messages"


def test_vanished_extra_file_is_skipped(tmp_path: Path, caplog):
    caplog.set_level(logging.WARNING, logger="sysdiag.diagnostics.archive")
    work = _make_workspace(tmp_path)
    gone = tmp_path / "rotated.log"
    destination = tmp_path / "diag.zip"

    Archiver().archive(work, [gone], destination)

    with zipfile.ZipFile(destination) as zf:
        assert len(zf.namelist()) == 3
    assert any(str(gone) in r.getMessage() for r in caplog.records)


@pytest.mark.parametrize("relative", [".", "out.zip", "nested/out.zip", "nested/deeper/out.zip"])
def test_destination_inside_source_is_refused(tmp_path: Path, relative: str):
    work = _make_workspace(tmp_path)
    destination = work / relative

    with pytest.raises(ArchiveError):
        Archiver().archive(work, [], destination)

    assert sorted(p.name for p in work.iterdir()) == ["nested", "system_report.txt", "top_output.txt"]


def test_unwritable_destination_raises_archive_error(tmp_path: Path):
    work = _make_workspace(tmp_path)
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("file", encoding="utf-8")
    destination = blocker / "diag.zip"

    with pytest.raises(ArchiveError) as exc_info:
        Archiver().archive(work, [], destination)

    assert exc_info.value.destination == destination
    assert str(destination) in str(exc_info.value)


def test_check_available_rejects_unknown_format():
    with pytest.raises(ArchiverUnavailableError):
        Archiver("rar").check_available()


def test_check_available_requires_zlib(monkeypatch):
    monkeypatch.setattr("importlib.util.find_spec", lambda name: None)
    with pytest.raises(ArchiverUnavailableError):
        Archiver("zip").check_available()


def test_is_within(tmp_path: Path):
    assert is_within(tmp_path, tmp_path)
    assert is_within(tmp_path / "a" / "b.zip", tmp_path)
    assert not is_within(tmp_path.parent / "sibling.zip", tmp_path)
    assert not is_within(Path(str(tmp_path) + "-suffix") / "x.zip", tmp_path)


@pytest.mark.parametrize("archive_format", ["zip", "gztar"])
def test_overlapping_extras_are_stored_once(tmp_path: Path, archive_format: str, recwarn):
    work = _make_workspace(tmp_path)
    logs = _make_logs(tmp_path)
    destination = tmp_path / f"diag{Archiver(archive_format).extension}"

    Archiver(archive_format).archive(
        work, [logs, logs / "messages", logs / "kern.log"], destination)

    if archive_format == "zip":
        with zipfile.ZipFile(destination) as zf:
            names = zf.namelist()
    else:
        with tarfile.open(destination, "r:gz") as tf:
            names = tf.getnames()
    assert len(names) == len(set(names)) == 5
    assert not [w for w in recwarn if "Duplicate name" in str(w.message)]
