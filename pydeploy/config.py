"""Credential configuration for PyDeploy.

Values are read from environment variables first and then from
``~/.config/pydeploy/config``, a simple ``KEY=value`` file written by
``pydeploy init``.
"""

import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

CONFIG_KEYS = ("PYDEPLOY_SERVER", "PYDEPLOY_USERNAME", "PYDEPLOY_PASSWORD")


class Config:
    """Resolves server credentials."""

    def __init__(self, config_file: Optional[Path] = None):
        if config_file is None:
            config_file = Path.home() / ".config" / "pydeploy" / "config"
        self.config_file = config_file

    def _read_file(self) -> dict[str, str]:
        if not self.config_file.exists():
            return {}

        values: dict[str, str] = {}
        with open(self.config_file, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, _, value = line.partition("=")
                values[key.strip()] = value.strip()
        return values

    def get(self, key: str) -> Optional[str]:
        """Look up a key in the environment, then in the config file."""
        value = os.environ.get(key)
        if value:
            return value
        return self._read_file().get(key) or None

    @property
    def server(self) -> Optional[str]:
        return self.get("PYDEPLOY_SERVER")

    @property
    def username(self) -> Optional[str]:
        return self.get("PYDEPLOY_USERNAME")

    @property
    def password(self) -> Optional[str]:
        return self.get("PYDEPLOY_PASSWORD")

    def is_configured(self) -> bool:
        return self.server is not None

    def save(
        self, server: str, username: str, password: Optional[str] = None
    ) -> Path:
        """Write credentials to the config file (mode 0600).

        Returns:
            Path of the config file
        """
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        lines = [f"PYDEPLOY_SERVER={server}", f"PYDEPLOY_USERNAME={username}"]
        if password:
            lines.append(f"PYDEPLOY_PASSWORD={password}")
        self.config_file.write_text("\n".join(lines) + "\n", encoding="utf-8")
        self.config_file.chmod(0o600)
        logger.debug(f"Saved configuration to {self.config_file}")
        return self.config_file


config = Config()
