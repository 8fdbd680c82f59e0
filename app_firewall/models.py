# app_firewall/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

Severity = Literal["INFO", "WARNING", "ERROR"]
Transport = Literal["TCP", "UDP"]
CandidateKind = Literal["user", "shared"]
SyncStatus = Literal["created", "removed", "skipped", "failed"]


@dataclass
class LogEntry:
    timestamp: str
    severity: Severity
    message: str
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class InteractiveUser:
    """The user owning the interactive desktop session."""

    username: str
    profile_dir: str
    domain: str = ""

    @property
    def qualified_name(self) -> str:
        return f"{self.domain}\\{self.username}" if self.domain else self.username


@dataclass
class ExecutableCandidate:
    path: str
    kind: CandidateKind
    exists: bool = False


@dataclass
class FirewallRule:
    display_name: str
    program: str
    protocol: str
    direction: str = "in"
    action: str = "allow"
    profile: str = "any"
    enabled: bool = True


@dataclass
class SyncResult:
    """Outcome of synchronizing the rules for one candidate path."""

    candidate: ExecutableCandidate
    status: SyncStatus
    removed_existing: bool = False
    removal_error: Optional[str] = None
    created_protocols: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status != "failed"


@dataclass
class RunReport:
    user: InteractiveUser
    results: List[SyncResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def failed(self) -> List[SyncResult]:
        return [r for r in self.results if not r.ok]

    def summary(self) -> str:
        counts: Dict[str, int] = {}
        for r in self.results:
            counts[r.status] = counts.get(r.status, 0) + 1
        parts = [f"{k}={v}" for k, v in sorted(counts.items())]
        return f"user={self.user.qualified_name} " + (" ".join(parts) or "no candidates")
