# app_firewall/firewall_win.py

from __future__ import annotations

import subprocess
from typing import Dict, List, Protocol, Tuple

from .activity_log import log_event
from .errors import FirewallError
from .models import FirewallRule

NETSH = ["netsh", "advfirewall", "firewall"]
NO_MATCH = "no rules match"
ALL_PROFILES = {"domain", "private", "public"}


class FirewallBackend(Protocol):
    def find_program_rules(self, program: str) -> List[FirewallRule]:
        ...

    def delete_program_rules(self, program: str) -> None:
        ...

    def add_rule(self, rule: FirewallRule) -> None:
        ...


def is_admin() -> bool:
    """Windows administrator check; False on any other platform."""
    try:
        import ctypes
        return ctypes.windll.shell32.IsUserAnAdmin() != 0
    except Exception:
        return False


def run_cmd(args: List[str]) -> Tuple[bool, str, str, int]:
    """Run a command without a shell. Returns (ok, stdout, stderr, returncode)."""
    try:
        proc = subprocess.run(
            args,
            capture_output=True,
            text=True,
            errors="replace",
            shell=False,
            creationflags=getattr(subprocess, "CREATE_NO_WINDOW", 0),
        )
    except OSError as exc:
        return False, "", str(exc), 999
    out = (proc.stdout or "").strip()
    err = (proc.stderr or "").strip()
    return proc.returncode == 0, out, err, proc.returncode


def same_program(a: str, b: str) -> bool:
    """Compare Windows paths: case-insensitive, quotes and slashes normalized."""
    def norm(p: str) -> str:
        return p.strip().strip('"').replace("/", "\\").rstrip("\\").casefold()
    return norm(a) == norm(b)


def _normalize_profile(value: str) -> str:
    parts = {p.strip().lower() for p in value.split(",") if p.strip()}
    if not parts or parts == ALL_PROFILES or "any" in parts:
        return "any"
    return ",".join(sorted(parts))


def _to_rule(fields: Dict[str, str]) -> FirewallRule:
    return FirewallRule(
        display_name=fields.get("rule name", ""),
        program=fields.get("program", ""),
        protocol=fields.get("protocol", "Any").upper(),
        direction=fields.get("direction", "In").lower(),
        action=fields.get("action", "Allow").lower(),
        profile=_normalize_profile(fields.get("profiles", "")),
        enabled=fields.get("enabled", "Yes").lower() == "yes",
    )


def parse_show_rule_output(text: str) -> List[FirewallRule]:
    """
    Parse 'netsh advfirewall firewall show rule ... verbose' output.

    Each rule starts with a 'Rule Name:' line followed by 'Key: value' lines.
    Only the English field labels are understood.
    """
    rules: List[FirewallRule] = []
    current: Dict[str, str] | None = None

    for raw in text.splitlines():
        line = raw.strip()
        if not line or set(line) == {"-"}:
            continue
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip().lower()
        value = value.strip()

        if key == "rule name":
            if current is not None:
                rules.append(_to_rule(current))
            current = {}
        if current is not None:
            current[key] = value

    if current is not None:
        rules.append(_to_rule(current))
    return rules


class NetshFirewall:
    """FirewallBackend over 'netsh advfirewall firewall'."""

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run

    def _mutate(self, cmd: List[str], event: str) -> Tuple[str, str]:
        if self.dry_run:
            log_event("INFO", f"[dry-run] {' '.join(cmd)}", {"event": event})
            return "", ""

        ok, out, err, rc = run_cmd(cmd)
        if not ok and NO_MATCH not in (out + " " + err).lower():
            raise FirewallError(
                f"{event} failed (rc={rc}): {err or out or 'unknown error'}",
                returncode=rc,
                output=out,
            )
        return out, err

    def find_program_rules(self, program: str) -> List[FirewallRule]:
        """
        Return every rule (any direction) bound to 'program'.
        Read-only, so it also runs in dry-run mode.
        """
        cmd = NETSH + ["show", "rule", "name=all", "verbose"]
        ok, out, err, rc = run_cmd(cmd)
        if not ok:
            if NO_MATCH in (out + " " + err).lower():
                return []
            raise FirewallError(
                f"show rule failed (rc={rc}): {err or out or 'unknown error'}",
                returncode=rc,
                output=out,
            )
        return [r for r in parse_show_rule_output(out) if same_program(r.program, program)]

    def delete_program_rules(self, program: str) -> None:
        """Delete all rules bound to 'program'; none matching is not an error."""
        cmd = NETSH + ["delete", "rule", "name=all", f"program={program}"]
        self._mutate(cmd, "delete rule")

    def add_rule(self, rule: FirewallRule) -> None:
        """Create one rule; raises FirewallError when netsh refuses it."""
        cmd = NETSH + [
            "add", "rule",
            f"name={rule.display_name}",
            f"dir={rule.direction}",
            f"action={rule.action}",
            f"program={rule.program}",
            f"protocol={rule.protocol}",
            f"profile={rule.profile}",
            f"enable={'yes' if rule.enabled else 'no'}",
        ]
        self._mutate(cmd, "add rule")


if __name__ == "__main__":
    import sys

    target = sys.argv[1] if len(sys.argv) > 1 else ""
    print("Admin:", is_admin())
    if target:
        for r in NetshFirewall().find_program_rules(target):
            print(f"  {r.display_name} {r.protocol} {r.direction} {r.action} {r.profile}")
