# app_firewall/config.py

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import List, Optional

from .errors import ConfigError

# Base directory = repo root
ROOT_DIR = Path(__file__).resolve().parent.parent
CONFIG_FILE = ROOT_DIR / "config.json"

VALID_PROTOCOLS = ("TCP", "UDP")
VALID_PROFILES = ("any", "domain", "private", "public")


def default_log_dir() -> str:
    """
    Windows: %ProgramData%\\AppFirewallSync\\Logs so the location does not depend
    on which account runs the tool. Elsewhere: <repo>/logs.
    """
    program_data = os.environ.get("ProgramData")
    if program_data:
        return str(Path(program_data) / "AppFirewallSync" / "Logs")
    return str(ROOT_DIR / "logs")


@dataclass
class AppConfig:
    display_name: str = "Teams.exe"
    user_relative_path: str = "AppData\\Local\\Microsoft\\Teams\\current\\Teams.exe"
    shared_relative_path: str = "Microsoft\\Teams\\current\\Teams.exe"
    protocols: List[str] = field(default_factory=lambda: list(VALID_PROTOCOLS))
    profile: str = "any"
    log_dir: Optional[str] = None
    dry_run: bool = False

    def resolved_log_dir(self) -> str:
        return self.log_dir or default_log_dir()


def _validate(cfg: AppConfig) -> AppConfig:
    """Check types and values; normalizes protocol and profile case."""
    for name in ("display_name", "user_relative_path", "shared_relative_path"):
        if not isinstance(getattr(cfg, name), str):
            raise ConfigError(f"{name} must be a string")
    if not isinstance(cfg.protocols, list):
        raise ConfigError("protocols must be a list")

    if not cfg.display_name.strip():
        raise ConfigError("display_name must not be empty")
    if not cfg.user_relative_path.strip() or not cfg.shared_relative_path.strip():
        raise ConfigError("executable paths must not be empty")

    protocols = [str(p).upper() for p in cfg.protocols]
    bad = [p for p in protocols if p not in VALID_PROTOCOLS]
    if bad or not protocols:
        raise ConfigError(f"Unsupported protocols: {cfg.protocols!r}")
    cfg.protocols = protocols

    cfg.profile = str(cfg.profile).lower()
    if cfg.profile not in VALID_PROFILES:
        raise ConfigError(f"Unsupported firewall profile: {cfg.profile!r}")
    return cfg


def load_config(path: Path | str | None = None) -> AppConfig:
    """
    Load AppConfig from JSON. A missing file yields the defaults.
    Unknown keys are ignored so older tools can read newer files.
    """
    cfg_path = Path(path) if path else CONFIG_FILE
    if not cfg_path.exists():
        return _validate(AppConfig())

    try:
        with cfg_path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Cannot read config {cfg_path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"Config {cfg_path} must contain a JSON object")

    known = {f.name for f in fields(AppConfig)}
    try:
        cfg = AppConfig(**{k: v for k, v in raw.items() if k in known})
    except TypeError as exc:
        raise ConfigError(f"Invalid config {cfg_path}: {exc}") from exc
    return _validate(cfg)


def save_config(cfg: AppConfig, path: Path | str | None = None) -> None:
    """Write cfg as JSON to 'path' (default: config.json at the repo root)."""
    cfg_path = Path(path) if path else CONFIG_FILE
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    with cfg_path.open("w", encoding="utf-8") as f:
        json.dump(asdict(cfg), f, indent=2)
