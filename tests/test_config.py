from __future__ import annotations

import json
from pathlib import Path

import pytest

from sysdiag.errors import ConfigError
from sysdiag.utils import DEFAULT_LOG_PATTERNS, DEFAULT_STEPS, Config, DiagnosticStep


def test_defaults_match_builtin_collection():
    config = Config()

    assert [s.output_file for s in config.steps] == [
        "top_output.txt",
        "memory_output.txt",
        "iostat_output.txt",
        "network_output.txt",
        "uptime_output.txt",
        "vmstat_detailed_output.txt",
        "sar_detailed_output.txt",
        "pidstat_detailed_output.txt",
        "running_services.txt",
        "disk_space.txt",
    ]
    assert config.log_patterns == DEFAULT_LOG_PATTERNS
    assert [s.header for s in config.report_sections] == [
        "Uptime", "CPU Information", "Memory Information",
        "Disk Information", "Network Interfaces", "Running Services",
    ]
    assert config.interactive is True


def test_destination_defaults_to_temp_dir(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("TMPDIR", str(tmp_path))
    monkeypatch.setattr("tempfile.tempdir", None)

    assert Config().destination_path == tmp_path


def test_save_and_load_roundtrip(tmp_path: Path):
    path = tmp_path / "conf" / "config.json"
    config = Config(
        steps=[DiagnosticStep(["uptime"], "Load", "uptime.txt")],
        log_patterns=["/var/log/app*.log"],
        interactive=False,
    )

    config.save(path)
    loaded = Config.load(path)

    assert loaded.steps == [DiagnosticStep(("uptime",), "Load", "uptime.txt")]
    assert loaded.log_patterns == ["/var/log/app*.log"]
    assert loaded.interactive is False


def test_load_partial_file_keeps_defaults(tmp_path: Path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"log_patterns": []}), encoding="utf-8")

    config = Config.load(path)

    assert config.log_patterns == []
    assert config.steps == DEFAULT_STEPS


def test_missing_default_file_gives_defaults(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))

    assert Config.load() == Config()


def test_missing_explicit_file_is_an_error(tmp_path: Path):
    with pytest.raises(ConfigError):
        Config.load(tmp_path / "nope.json")


@pytest.mark.parametrize("content", [
    "{not json",
    "[]",
    json.dumps({"unknown_option": 1}),
    json.dumps({"steps": [{"command": "uptime"}]}),
    json.dumps({"steps": ["uptime"]}),
    json.dumps({"archive_format": "rar"}),
])
def test_malformed_file_is_an_error(tmp_path: Path, content: str):
    path = tmp_path / "config.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        Config.load(path)


@pytest.mark.parametrize("name", ["", ".", "..", "../escape.txt", "/tmp/abs.txt", "sub/dir.txt"])
def test_step_output_must_be_plain_file_name(name: str):
    with pytest.raises(ConfigError):
        DiagnosticStep("uptime", "Load", name)


def test_duplicate_output_files_rejected():
    with pytest.raises(ConfigError):
        Config(steps=[
            DiagnosticStep("uptime", "a", "same.txt"),
            DiagnosticStep("free -h", "b", "same.txt"),
        ])


def test_report_file_must_not_clash_with_step_output():
    with pytest.raises(ConfigError):
        Config(report_file="disk_space.txt")


@pytest.mark.parametrize("data", [
    {"log_patterns": "/var/log/messages*"},
    {"log_patterns": ["/var/log/messages*", 7]},
    {"log_patterns": [""]},
    {"interactive": "no"},
    {"interactive": 0},
    {"destination_dir": 5},
    {"archive_name": None},
    {"workspace_prefix": ["x"]},
    {"report_file": 1},
    {"log_level": 10},
    {"steps": "uptime"},
    {"report_sections": {"header": "Uptime", "command": "uptime"}},
    {"steps": [{"command": 5, "description": "Load", "output_file": "u.txt"}]},
    {"steps": [{"command": "uptime", "description": "Load", "output_file": 3}]},
    {"report_sections": [{"header": "Uptime", "command": ["uptime", 1]}]},
])
def test_wrongly_typed_values_are_rejected(tmp_path: Path, data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data), encoding="utf-8")

    with pytest.raises(ConfigError):
        Config.load(path)


def test_string_log_patterns_never_reach_expansion(tmp_path: Path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"log_patterns": "/var/log/messages*"}), encoding="utf-8")

    with pytest.raises(ConfigError, match="log_patterns"):
        Config.load(path)
