from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

from sysdiag.diagnostics.commands import CommandExecutor, CommandOutcome
from sysdiag.errors import format_command


FIXED_NOW = datetime(2024, 3, 5, 14, 7, 9, tzinfo=timezone.utc)


class FakeExecutor(CommandExecutor):
    """Answers commands from a table and remembers what was asked."""

    def __init__(self, responses: Optional[Dict[str, CommandOutcome]] = None,
                 default: Optional[CommandOutcome] = None):
        self.responses = responses or {}
        self.default = default or CommandOutcome(0, b"ok\n")
        self.calls: List[str] = []

    def execute(self, command) -> CommandOutcome:
        text = format_command(command)
        self.calls.append(text)
        return self.responses.get(text, self.default)


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture(autouse=True)
def restore_root_logger():
    """The CLI reconfigures the root logger; put it back after each test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
