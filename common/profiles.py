"""Connection profile store backed by a YAML file."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from common.models.connection import ConnectionInfo
from common.utils import load_yaml, save_yaml

logger = logging.getLogger(__name__)


class ConnectionProfileStore:
    """Named connection profiles plus the default selection.

    Constructed explicitly and passed to whoever needs it. Passwords are held
    in memory only and never written to the profile file.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._profiles: dict[str, ConnectionInfo] = {}
        self._default: Optional[str] = None

    def load(self) -> None:
        """Load profiles from disk, replacing what is in memory."""
        self._profiles = {}
        self._default = None
        if not self.path.exists():
            logger.debug(f"No connection profile file at {self.path}")
            return

        data = load_yaml(self.path)
        for name, fields in (data.get("connections") or {}).items():
            fields = dict(fields or {})
            fields.pop("password", None)
            self._profiles[name] = ConnectionInfo(name=name, **fields)

        default = data.get("default")
        if default in self._profiles:
            self._default = default
        elif default:
            logger.warning(f"Default connection not found in profiles: {default}")

        logger.info(f"Loaded {len(self._profiles)} connection profiles from {self.path}")

    def save(self) -> None:
        """Write profiles to disk without passwords."""
        connections = {
            name: profile.model_dump(mode="json", exclude={"name", "password"})
            for name, profile in self._profiles.items()
        }
        save_yaml(self.path, {"default": self._default, "connections": connections})

    def add(self, profile: ConnectionInfo) -> None:
        if not profile.name:
            raise ValueError("Connection profile requires a name")
        self._profiles[profile.name] = profile

    def remove(self, name: str) -> None:
        if name not in self._profiles:
            raise KeyError(f"Connection profile not found: {name}")
        del self._profiles[name]
        if self._default == name:
            self._default = None

    def get(self, name: str) -> Optional[ConnectionInfo]:
        return self._profiles.get(name)

    def list(self) -> list[ConnectionInfo]:
        return [self._profiles[name] for name in sorted(self._profiles)]

    def set_default(self, name: str) -> None:
        if name not in self._profiles:
            raise KeyError(f"Connection profile not found: {name}")
        self._default = name

    def get_default(self) -> Optional[ConnectionInfo]:
        if self._default is None:
            return None
        return self._profiles.get(self._default)
