"""
Configuration management for Area.

Loads settings from ~/.area/settings.json and provides typed access to all
configurable values. Deploy-time values (WORKFLOW_URL, DISCORD_BOT_TOKEN)
can be overridden from the environment.
"""

from __future__ import annotations

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any


class Config:
    """Manages Area configuration and directory structure."""

    def __init__(self, base_dir: Path | str | None = None) -> None:
        if base_dir is not None:
            self.base_dir = Path(base_dir).expanduser()
        else:
            env_dir = os.getenv("AREA_DIR")
            self.base_dir = Path(env_dir).expanduser() if env_dir else Path.home() / ".area"

        # Sub-directories
        self.log_dir = self.base_dir / "log"
        self.data_dir = self.base_dir / "data"

        self.settings_file = self.base_dir / "settings.json"

        self._ensure_dirs()
        self._settings: dict[str, Any] = self._load_settings()

    def _ensure_dirs(self) -> None:
        for d in [self.base_dir, self.log_dir, self.data_dir]:
            d.mkdir(parents=True, exist_ok=True)

    def _default_settings(self) -> dict[str, Any]:
        return {
            "version": "1.0.0",
            "created_at": datetime.now().isoformat(),
            "server": {"host": "0.0.0.0", "port": 8080},
            "workflow": {"url": "http://localhost:8080"},
            "integrations": {
                "discord": {"bot_token": ""},
                "reddit": {"user_agent": "Area-App/1.0.0"},
            },
            "workers": {
                "enabled": True,
                "timer": {"interval": 60},
                "spotify": {"interval": 120},
                "reddit": {"interval": 120},
                "slack": {"interval": 60},
            },
            "http": {"timeout": 15},
            "logging": {"level": "INFO", "keep": 30},
        }

    def _load_settings(self) -> dict[str, Any]:
        if self.settings_file.exists():
            try:
                data = json.loads(self.settings_file.read_text())
                # Merge with defaults (adds any missing keys)
                defaults = self._default_settings()
                return self._deep_merge(defaults, data)
            except (OSError, ValueError):
                pass
        return self._default_settings()

    def _deep_merge(self, base: dict, override: dict) -> dict:
        result = base.copy()
        for k, v in override.items():
            if k in result and isinstance(result[k], dict) and isinstance(v, dict):
                result[k] = self._deep_merge(result[k], v)
            else:
                result[k] = v
        return result

    def save(self) -> None:
        self.settings_file.write_text(json.dumps(self._settings, indent=2))

    def get(self, key_path: str, default: Any = None) -> Any:
        """Dot-notation access. e.g. config.get('integrations.discord.bot_token')"""
        parts = key_path.split(".")
        val: Any = self._settings
        for part in parts:
            if not isinstance(val, dict) or part not in val:
                return default
            val = val[part]
        return val

    def set(self, key_path: str, value: Any, save: bool = True) -> None:
        parts = key_path.split(".")
        d = self._settings
        for part in parts[:-1]:
            d = d.setdefault(part, {})
        d[parts[-1]] = value
        if save:
            self.save()

    @property
    def log_level(self) -> str:
        return str(self.get("logging.level", "INFO")).upper()

    @property
    def log_keep(self) -> int:
        return int(self.get("logging.keep", 30))

    @property
    def dev_mode(self) -> bool:
        return os.getenv("DEV_MODE", "").lower() in ("1", "true", "yes")

    @property
    def workflow_url(self) -> str:
        """Public base URL GitHub calls back into. No trailing slash."""
        url = os.getenv("WORKFLOW_URL") or str(self.get("workflow.url", "http://localhost:8080"))
        return url.rstrip("/")

    @property
    def discord_bot_token(self) -> str:
        return os.getenv("DISCORD_BOT_TOKEN") or str(self.get("integrations.discord.bot_token", ""))

    @property
    def reddit_user_agent(self) -> str:
        return str(self.get("integrations.reddit.user_agent", "Area-App/1.0.0"))

    @property
    def workers_enabled(self) -> bool:
        return bool(self.get("workers.enabled", True))

    def worker_interval(self, name: str, default: float = 60) -> float:
        return float(self.get(f"workers.{name}.interval", default))

    @property
    def http_timeout(self) -> float:
        return float(self.get("http.timeout", 15))

    def __repr__(self) -> str:
        return f"Config(base_dir={str(self.base_dir)!r})"


# Module-level singleton
_config: Config | None = None


def get_config(base_dir: Path | str | None = None) -> Config:
    global _config
    if _config is None:
        _config = Config(base_dir)
    return _config


def reset_config() -> None:
    """Reset singleton (for testing)."""
    global _config
    _config = None
