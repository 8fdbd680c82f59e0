# app_firewall/session.py

from __future__ import annotations

import os
from pathlib import PureWindowsPath
from typing import List, Optional, Protocol, Tuple

import psutil

from .errors import SessionLookupError
from .models import InteractiveUser

SHELL_PROCESS = "explorer.exe"


class InteractiveUserResolver(Protocol):
    def current_user(self) -> InteractiveUser:
        ...


def split_account(account: str) -> Tuple[str, str]:
    """'DOMAIN\\user' -> ('DOMAIN', 'user'); a bare name has an empty domain."""
    if "\\" in account:
        domain, _, user = account.rpartition("\\")
        return domain, user
    return "", account


def _profiles_root() -> Optional[str]:
    """
    Parent folder of all user profiles, derived from %PUBLIC% (C:\\Users\\Public),
    which is also set for LocalSystem.
    """
    public = os.environ.get("PUBLIC")
    if not public:
        return None
    return str(PureWindowsPath(public).parent)


class ExplorerSessionResolver:
    """
    Resolve the logged-in desktop user from the owner of the shell process.

    The calling process may run as LocalSystem, so nothing here reads the
    caller's own USERNAME or USERPROFILE.
    """

    def __init__(self, shell_process: str = SHELL_PROCESS):
        self.shell_process = shell_process.lower()

    def _shell_processes(self) -> List[psutil.Process]:
        found = []
        for proc in psutil.process_iter(["name", "username", "create_time"]):
            name = (proc.info.get("name") or "").lower()
            if name != self.shell_process:
                continue
            if not proc.info.get("username"):
                # Owner hidden from us (AccessDenied is reported as None)
                continue
            found.append(proc)
        return found

    def _logged_in_names(self) -> List[str]:
        try:
            return [u.name.lower() for u in psutil.users() if u.name]
        except psutil.Error:
            return []

    def _pick(self, procs: List[psutil.Process]) -> psutil.Process:
        logged_in = set(self._logged_in_names())
        if logged_in:
            preferred = [
                p for p in procs
                if split_account(p.info["username"])[1].lower() in logged_in
            ]
            if preferred:
                procs = preferred
        # Oldest shell = the session that logged on first (console user)
        return min(procs, key=lambda p: p.info.get("create_time") or 0.0)

    def _profile_dir(self, proc: psutil.Process, username: str) -> str:
        try:
            env = proc.environ()
        except (psutil.AccessDenied, psutil.NoSuchProcess, psutil.ZombieProcess):
            env = {}
        profile = env.get("USERPROFILE")
        if profile:
            return profile

        root = _profiles_root()
        if root is None:
            raise SessionLookupError(
                f"Cannot determine profile directory for '{username}'"
            )
        return str(PureWindowsPath(root) / username)

    def current_user(self) -> InteractiveUser:
        try:
            procs = self._shell_processes()
        except psutil.Error as exc:
            raise SessionLookupError(f"Process query failed: {exc}") from exc

        if not procs:
            raise SessionLookupError("No interactive user session found")

        proc = self._pick(procs)
        domain, username = split_account(proc.info["username"])
        if not username:
            raise SessionLookupError("Interactive session has no owner")

        return InteractiveUser(
            username=username,
            domain=domain,
            profile_dir=self._profile_dir(proc, username),
        )


if __name__ == "__main__":
    # Simple self-test: print the resolved user
    try:
        user = ExplorerSessionResolver().current_user()
        print(f"{user.qualified_name} -> {user.profile_dir}")
    except SessionLookupError as exc:
        print(f"[session] {exc}")
