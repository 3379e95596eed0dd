"""Global configuration — XDG paths, YAML file, env vars, defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml


def _default_config_dir() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "seedwatch"
    return Path.home() / ".config" / "seedwatch"


def _default_download_dir() -> Path:
    return Path.home() / "Downloads" / "Seedwatch"


# YAML key → converter for the scalar settings a config file may carry
_FILE_KEYS = {
    "download_dir": lambda v: Path(v).expanduser(),
    "refresh_interval": float,
    "metadata_timeout": float,
    "min_eta_rate": float,
    "listen_port": int,
}

_ENV_KEYS = {
    "SEEDWATCH_DOWNLOAD_DIR": "download_dir",
    "SEEDWATCH_REFRESH_INTERVAL": "refresh_interval",
    "SEEDWATCH_METADATA_TIMEOUT": "metadata_timeout",
    "SEEDWATCH_LISTEN_PORT": "listen_port",
}


@dataclass
class SeedwatchConfig:
    """Application-wide configuration."""

    config_dir: Path = field(default_factory=_default_config_dir)
    download_dir: Path = field(default_factory=_default_download_dir)
    refresh_interval: float = 1.0
    metadata_timeout: float = 30.0
    min_eta_rate: float = 1024.0  # ETA below this rate is noise
    listen_port: int = 6881
    verbose: bool = False

    @classmethod
    def load(cls, path: str | Path | None = None) -> SeedwatchConfig:
        """Load config from a YAML file, then apply environment overrides.

        Without an explicit ``path`` the file ``config.yaml`` in the config
        directory is read when it exists.
        """
        config = cls()

        config_path = Path(path) if path else config.config_dir / "config.yaml"
        if path or config_path.is_file():
            config.apply(_read_yaml(config_path))

        for env_name, key in _ENV_KEYS.items():
            value = os.environ.get(env_name)
            if value:
                config.apply({key: value})

        config.validate()
        return config

    def apply(self, data: dict) -> None:
        """Overlay known keys from a mapping, converting each value."""
        for key, value in data.items():
            convert = _FILE_KEYS.get(key)
            if convert is None:
                raise ValueError(f"Unknown config key: {key}")
            try:
                setattr(self, key, convert(value))
            except (TypeError, ValueError) as exc:
                raise ValueError(f"Invalid value for {key}: {value!r}") from exc

    def validate(self) -> None:
        if self.refresh_interval <= 0:
            raise ValueError("refresh_interval must be positive")
        if self.metadata_timeout <= 0:
            raise ValueError("metadata_timeout must be positive")
        if self.min_eta_rate < 0:
            raise ValueError("min_eta_rate must not be negative")
        if not 0 < self.listen_port < 65536:
            raise ValueError(f"listen_port out of range: {self.listen_port}")

    def ensure_dirs(self) -> None:
        self.download_dir.mkdir(parents=True, exist_ok=True)

    def as_dict(self) -> dict[str, object]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _read_yaml(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("Config YAML must be a mapping")
    return data
