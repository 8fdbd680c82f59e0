# app_firewall/sync.py

"""
Keep inbound allow-rules in place for an application installed per user.

Procedure (sync_all):
  1. ensure the log directory exists
  2. resolve the interactive user (works under LocalSystem)
  3. build the per-user and per-machine candidate paths
  4. for each existing path: drop stale rules, add one rule per protocol
  5. reduce the per-path results; raise RuleSyncError if any creation failed
"""

from __future__ import annotations

import os
from pathlib import Path, PureWindowsPath
from typing import List, Optional

from .activity_log import ensure_log_dir, log_event
from .config import AppConfig
from .errors import FirewallError, RuleSyncError
from .firewall_win import FirewallBackend
from .models import ExecutableCandidate, FirewallRule, InteractiveUser, RunReport, SyncResult
from .session import InteractiveUserResolver


def _exists(path: str) -> bool:
    return Path(path).is_file()


def candidate_paths(
    user: InteractiveUser,
    cfg: AppConfig,
    program_data: Optional[str] = None,
) -> List[ExecutableCandidate]:
    """
    Per-user install:    <profile>\\<user_relative_path>
    Per-machine install: <ProgramData>\\<username>\\<shared_relative_path>
    """
    candidates = [
        ExecutableCandidate(
            path=str(PureWindowsPath(user.profile_dir) / cfg.user_relative_path),
            kind="user",
        )
    ]

    program_data = program_data or os.environ.get("ProgramData")
    if program_data:
        candidates.append(
            ExecutableCandidate(
                path=str(PureWindowsPath(program_data) / user.username / cfg.shared_relative_path),
                kind="shared",
            )
        )
    else:
        log_event("WARNING", "ProgramData is not set; skipping per-machine location")

    for c in candidates:
        c.exists = _exists(c.path)
    return candidates


def _remove_stale_rules(path: str, firewall: FirewallBackend, result: SyncResult) -> None:
    """Best-effort: a failure here is reported but new rules are still added."""
    try:
        existing = firewall.find_program_rules(path)
        if not existing:
            return
        names = sorted({r.display_name for r in existing})
        firewall.delete_program_rules(path)
        result.removed_existing = True
        log_event(
            "INFO",
            f"Removed {len(existing)} existing rule(s) for {path}",
            {"program": path, "rules": names},
        )
    except FirewallError as exc:
        result.removal_error = str(exc)
        log_event(
            "WARNING",
            f"Could not remove existing rules for {path}: {exc}",
            {"program": path, "returncode": exc.returncode},
        )


def sync_executable(
    candidate: ExecutableCandidate,
    firewall: FirewallBackend,
    cfg: AppConfig,
) -> SyncResult:
    """Replace the allow-rules bound to one executable."""
    if not candidate.exists:
        log_event(
            "WARNING",
            f"{candidate.path} not found; no firewall rules changed",
            {"program": candidate.path, "kind": candidate.kind},
        )
        return SyncResult(candidate=candidate, status="skipped")

    result = SyncResult(candidate=candidate, status="created")
    _remove_stale_rules(candidate.path, firewall, result)

    for protocol in cfg.protocols:
        rule = FirewallRule(
            display_name=cfg.display_name,
            program=candidate.path,
            protocol=protocol,
            profile=cfg.profile,
        )
        try:
            firewall.add_rule(rule)
        except FirewallError as exc:
            result.errors.append(f"{protocol}: {exc}")
            log_event(
                "ERROR",
                f"Failed to create {protocol} allow-rule for {candidate.path}: {exc}",
                {"program": candidate.path, "protocol": protocol, "returncode": exc.returncode},
            )
            continue
        result.created_protocols.append(protocol)
        log_event(
            "INFO",
            f"Created inbound {protocol} allow-rule '{cfg.display_name}' for {candidate.path}",
            {"program": candidate.path, "protocol": protocol, "profile": cfg.profile},
        )

    if result.errors:
        result.status = "failed"
    return result


def remove_executable_rules(candidate: ExecutableCandidate, firewall: FirewallBackend) -> SyncResult:
    """Uninstall counterpart of sync_executable: only removes rules."""
    if not candidate.exists:
        log_event(
            "WARNING",
            f"{candidate.path} not found; no firewall rules changed",
            {"program": candidate.path, "kind": candidate.kind},
        )
        return SyncResult(candidate=candidate, status="skipped")

    result = SyncResult(candidate=candidate, status="removed")
    try:
        firewall.delete_program_rules(candidate.path)
        result.removed_existing = True
        log_event("INFO", f"Removed firewall rules for {candidate.path}", {"program": candidate.path})
    except FirewallError as exc:
        result.status = "failed"
        result.removal_error = str(exc)
        result.errors.append(str(exc))
        log_event("ERROR", f"Could not remove firewall rules for {candidate.path}: {exc}",
                  {"program": candidate.path, "returncode": exc.returncode})
    return result


def _prepare(resolver: InteractiveUserResolver) -> RunReport:
    """Steps 1-2: log directory, then the interactive user."""
    ensure_log_dir()
    # SessionLookupError propagates: nothing below may touch the firewall
    user = resolver.current_user()
    log_event(
        "INFO",
        f"Interactive user: {user.qualified_name} ({user.profile_dir})",
        {"user": user.qualified_name, "profile_dir": user.profile_dir},
    )
    return RunReport(user=user)


def _finish(report: RunReport) -> RunReport:
    """Reduce the per-path results: log the summary, raise on any failure."""
    if not report.ok:
        log_event("ERROR", f"Firewall rule sync failed: {report.summary()}")
        raise RuleSyncError(report)
    log_event("INFO", f"Firewall rule sync finished: {report.summary()}")
    return report


def sync_all(
    resolver: InteractiveUserResolver,
    firewall: FirewallBackend,
    cfg: AppConfig,
    program_data: Optional[str] = None,
) -> RunReport:
    """
    Run the whole procedure for the interactive user.

    Raises SessionLookupError before any firewall call when no user is found,
    and RuleSyncError after all paths were processed if any rule failed.
    """
    report = _prepare(resolver)
    for candidate in candidate_paths(report.user, cfg, program_data):
        report.results.append(sync_executable(candidate, firewall, cfg))
    return _finish(report)


def remove_all(
    resolver: InteractiveUserResolver,
    firewall: FirewallBackend,
    cfg: AppConfig,
    program_data: Optional[str] = None,
) -> RunReport:
    """Remove the rules for every installed location; raises like sync_all."""
    report = _prepare(resolver)
    for candidate in candidate_paths(report.user, cfg, program_data):
        report.results.append(remove_executable_rules(candidate, firewall))
    return _finish(report)
