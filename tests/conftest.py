"""
Shared pytest fixtures and fakes used across the test suite.
"""

from __future__ import annotations

from typing import Iterable, List, Set, Tuple

import pytest

from app_firewall import activity_log, sync
from app_firewall.config import AppConfig
from app_firewall.errors import FirewallError, SessionLookupError
from app_firewall.models import FirewallRule, InteractiveUser

PROFILE_DIR = "C:\\Users\\alice"
PROGRAM_DATA = "C:\\ProgramData"
USER_EXE = "C:\\Users\\alice\\AppData\\Local\\Microsoft\\Teams\\current\\Teams.exe"
SHARED_EXE = "C:\\ProgramData\\alice\\Microsoft\\Teams\\current\\Teams.exe"


class FakeResolver:
    def __init__(self, user: InteractiveUser | None = None, error: str | None = None):
        self.user = user
        self.error = error
        self.calls = 0

    def current_user(self) -> InteractiveUser:
        self.calls += 1
        if self.error or self.user is None:
            raise SessionLookupError(self.error or "No interactive user session found")
        return self.user


class FakeFirewall:
    """Records every call as (operation, program[, protocol])."""

    def __init__(
        self,
        existing: Iterable[str] = (),
        fail_find: bool = False,
        fail_delete: bool = False,
        fail_add: Iterable[Tuple[str, str]] = (),
    ):
        self.existing: Set[str] = set(existing)
        self.fail_find = fail_find
        self.fail_delete = fail_delete
        self.fail_add = set(fail_add)
        self.calls: List[tuple] = []
        self.added: List[FirewallRule] = []

    def find_program_rules(self, program: str) -> List[FirewallRule]:
        self.calls.append(("find", program))
        if self.fail_find:
            raise FirewallError("show rule failed", returncode=1)
        if program in self.existing:
            return [
                FirewallRule(display_name="Teams.exe", program=program, protocol="TCP"),
                FirewallRule(display_name="Teams.exe", program=program, protocol="UDP"),
            ]
        return []

    def delete_program_rules(self, program: str) -> None:
        self.calls.append(("delete", program))
        if self.fail_delete:
            raise FirewallError("delete rule failed", returncode=1)
        self.existing.discard(program)

    def add_rule(self, rule: FirewallRule) -> None:
        self.calls.append(("add", rule.program, rule.protocol))
        if (rule.program, rule.protocol) in self.fail_add:
            raise FirewallError("add rule failed", returncode=1)
        self.added.append(rule)

    def ops(self, operation: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == operation]


@pytest.fixture(autouse=True)
def log_dir(tmp_path, monkeypatch):
    """Every test writes its log under tmp_path."""
    monkeypatch.setattr(activity_log, "LOG_DIR", tmp_path / "logs")
    monkeypatch.setattr(activity_log, "LOG_FILE", tmp_path / "logs" / "firewall_sync.csv")
    return tmp_path / "logs"


@pytest.fixture
def user() -> InteractiveUser:
    return InteractiveUser(username="alice", domain="CONTOSO", profile_dir=PROFILE_DIR)


@pytest.fixture
def cfg(tmp_path) -> AppConfig:
    return AppConfig(log_dir=str(tmp_path / "logs"))


@pytest.fixture
def installed(monkeypatch):
    """Replace the filesystem check with a mutable set of installed paths."""
    paths: Set[str] = set()
    monkeypatch.setattr(sync, "_exists", lambda p: p in paths)
    return paths
