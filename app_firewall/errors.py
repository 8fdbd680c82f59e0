# app_firewall/errors.py

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import RunReport


class AppFirewallError(Exception):
    """Base class for all errors raised by app_firewall."""


class ConfigError(AppFirewallError):
    pass


class SessionLookupError(AppFirewallError):
    """No interactive user session could be resolved."""


class FirewallError(AppFirewallError):
    """A netsh invocation failed."""

    def __init__(self, message: str, returncode: int = 1, output: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.output = output


class RuleSyncError(AppFirewallError):
    """At least one allow-rule could not be created."""

    def __init__(self, report: "RunReport"):
        failed = ", ".join(r.candidate.path for r in report.failed)
        super().__init__(f"Firewall rule sync failed for: {failed}")
        self.report = report
