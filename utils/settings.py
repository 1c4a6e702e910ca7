"""Persistent settings for Whis Desktop.

Stored in ~/.config/whis/settings.json with 0600 permissions,
since the file may hold an API key.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path

from config import DEFAULT_SHORTCUT, SETTINGS_FILE

logger = logging.getLogger("whis.settings")


@dataclass
class Settings:
    shortcut: str = DEFAULT_SHORTCUT
    openai_api_key: str | None = field(default=None, repr=False)

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        shortcut = data.get("shortcut") or DEFAULT_SHORTCUT
        api_key = data.get("openai_api_key") or None
        return cls(shortcut=str(shortcut), openai_api_key=api_key)

    def to_dict(self) -> dict:
        return asdict(self)

    @staticmethod
    def path() -> Path:
        return SETTINGS_FILE

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        """Loads settings, falling back to defaults on missing/corrupt file."""
        path = path or cls.path()
        if not path.exists():
            return cls()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Settings unreadable ({path}): {e}, using defaults")
            return cls()
        if not isinstance(data, dict):
            return cls()
        return cls.from_dict(data)

    def save(self, path: Path | None = None) -> None:
        """Writes settings to disk with 0600 permissions."""
        path = path or self.path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        os.chmod(path, 0o600)
        logger.debug(f"Settings saved: {path}")


__all__ = ["Settings"]
