"""
Configuration loading and validation for resourceful clients.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .core.errors import ConfigError


@dataclass
class ClientConfig:
    """Main client configuration."""
    registry_uri: str
    tenant: str
    token: Optional[str] = None
    timeout: float = 30.0
    cache_descriptors: bool = False
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClientConfig:
        """Create config from dictionary."""
        missing = [key for key in ("registry_uri", "tenant") if not data.get(key)]
        if missing:
            raise ConfigError(f"Missing required config keys: {', '.join(missing)}")

        return cls(
            registry_uri=data["registry_uri"],
            tenant=data["tenant"],
            token=data.get("token"),
            timeout=float(data.get("timeout", 30.0)),
            cache_descriptors=bool(data.get("cache_descriptors", False)),
            headers=dict(data.get("headers") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for YAML serialization."""
        return {
            "registry_uri": self.registry_uri,
            "tenant": self.tenant,
            "token": self.token,
            "timeout": self.timeout,
            "cache_descriptors": self.cache_descriptors,
            "headers": self.headers,
        }

    def save(self, path: Path | str = "resourceful.yaml") -> None:
        """Save configuration to YAML file."""
        path = Path(path)
        content = yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)
        path.write_text(content)


def load_config(path: Path | str = "resourceful.yaml") -> ClientConfig | None:
    """Load configuration from YAML file."""
    path = Path(path)
    if not path.exists():
        return None

    data = yaml.safe_load(path.read_text())
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return ClientConfig.from_dict(data)
