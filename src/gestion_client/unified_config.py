"""Configuration for the gestion offline client.

Configuration is stored in ~/.gestion/config.toml
The pending queue is stored in ~/.gestion/queue.db (SQLite)
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000/api"

# Strings are written into TOML without escaping
_TOML_SAFE_PATTERN = re.compile(r'^[^"\\\n\r]*$')
_STORAGE_BACKENDS = ("sqlite", "memory")


def get_gestion_dir() -> Path:
    """Get the client data directory.

    Priority:
    1. GESTION_DIR environment variable
    2. ~/.gestion/
    """
    env_dir = os.environ.get("GESTION_DIR")
    if env_dir:
        return Path(env_dir)
    return Path.home() / ".gestion"


def validate_base_url(url: str) -> str:
    """Return the URL without a trailing slash.

    Raises:
        ValueError: If the scheme is not http(s) or the URL cannot be stored
    """
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        raise ValueError("Invalid API URL: must start with http:// or https://")
    if not _TOML_SAFE_PATTERN.match(url):
        raise ValueError("Invalid API URL: contains forbidden characters")
    return url.rstrip("/")


def _clamp(value: Any, low: float, high: float, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return max(low, min(high, number))


def _toml_str(value: str) -> str:
    if not _TOML_SAFE_PATTERN.match(value):
        raise ValueError(f"Cannot store value in config: {value!r}")
    return f'"{value}"'


@dataclass(frozen=True)
class ApiConfig:
    """Backend API location."""

    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = 30.0
    probe_path: str = "/config"
    sync_path: str = "/sync"

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_url": self.base_url,
            "timeout_seconds": self.timeout_seconds,
            "probe_path": self.probe_path,
            "sync_path": self.sync_path,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ApiConfig:
        base_url = data.get("base_url", DEFAULT_BASE_URL)
        try:
            base_url = validate_base_url(str(base_url))
        except ValueError:
            logger.warning("Ignoring invalid api.base_url %r, using default", base_url)
            base_url = DEFAULT_BASE_URL
        return cls(
            base_url=base_url,
            timeout_seconds=_clamp(data.get("timeout_seconds", 30.0), 1.0, 600.0, 30.0),
            probe_path=str(data.get("probe_path", "/config")),
            sync_path=str(data.get("sync_path", "/sync")),
        )


@dataclass(frozen=True)
class SyncConfig:
    """Connectivity monitor and queue settings."""

    check_interval_seconds: float = 30.0
    initial_probe_delay: float = 2.0
    storage_key: str = "cola_sync"
    export_dir: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "check_interval_seconds": self.check_interval_seconds,
            "initial_probe_delay": self.initial_probe_delay,
            "storage_key": self.storage_key,
            "export_dir": self.export_dir,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncConfig:
        return cls(
            check_interval_seconds=_clamp(
                data.get("check_interval_seconds", 30.0), 5.0, 86400.0, 30.0
            ),
            initial_probe_delay=_clamp(data.get("initial_probe_delay", 2.0), 0.0, 3600.0, 2.0),
            storage_key=str(data.get("storage_key") or "cola_sync"),
            export_dir=str(data.get("export_dir", "")),
        )


@dataclass(frozen=True)
class StorageConfig:
    """Where the pending queue lives."""

    backend: str = "sqlite"
    filename: str = "queue.db"

    def to_dict(self) -> dict[str, Any]:
        return {"backend": self.backend, "filename": self.filename}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StorageConfig:
        backend = str(data.get("backend", "sqlite")).lower()
        if backend not in _STORAGE_BACKENDS:
            logger.warning("Unknown storage backend %r, falling back to sqlite", backend)
            backend = "sqlite"
        return cls(backend=backend, filename=str(data.get("filename") or "queue.db"))


@dataclass
class GestionConfig:
    """Client configuration.

    Storage location: ~/.gestion/config.toml
    """

    # Base directory for all client data
    data_dir: Path = field(default_factory=get_gestion_dir)

    api: ApiConfig = field(default_factory=ApiConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    # CLI preferences
    json_output: bool = False

    version: str = "1.0"

    # API section as read from disk when GESTION_API_URL overrides it
    file_api: ApiConfig | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any], data_dir: Path | None = None) -> GestionConfig:
        return cls(
            data_dir=data_dir or get_gestion_dir(),
            api=ApiConfig.from_dict(data.get("api", {})),
            sync=SyncConfig.from_dict(data.get("sync", {})),
            storage=StorageConfig.from_dict(data.get("storage", {})),
            json_output=bool(data.get("cli", {}).get("json_output", False)),
            version=str(data.get("version", "1.0")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "data_dir": str(self.data_dir),
            "api": self.api.to_dict(),
            "sync": self.sync.to_dict(),
            "storage": self.storage.to_dict(),
            "cli": {"json_output": self.json_output},
        }

    @classmethod
    def load(cls, config_path: Path | None = None) -> GestionConfig:
        """Load configuration from file, or create default if doesn't exist.

        Environment overrides (GESTION_API_URL) are applied after reading and
        are never written back.
        """
        if config_path is None:
            data_dir = get_gestion_dir()
            config_path = data_dir / "config.toml"
        else:
            data_dir = config_path.parent

        if config_path.exists():
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
            config = cls.from_dict(data, data_dir=data_dir)
        else:
            config = cls(data_dir=data_dir)
            config.save()

        env_url = os.environ.get("GESTION_API_URL")
        if env_url:
            try:
                override = ApiConfig(
                    base_url=validate_base_url(env_url),
                    timeout_seconds=config.api.timeout_seconds,
                    probe_path=config.api.probe_path,
                    sync_path=config.api.sync_path,
                )
                config.file_api, config.api = config.api, override
            except ValueError:
                logger.warning("Ignoring invalid GESTION_API_URL %r", env_url)
        return config

    def save(self) -> None:
        """Save configuration to TOML file (atomic write via temp+rename)."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        config_path = self.config_path

        api = self.file_api or self.api

        # Build TOML content manually (no toml write dependency)
        lines = [
            "# gestion offline client configuration",
            "",
            f"version = {_toml_str(self.version)}",
            "",
            "# Backend API",
            "[api]",
            f"base_url = {_toml_str(api.base_url)}",
            f"timeout_seconds = {api.timeout_seconds}",
            f"probe_path = {_toml_str(api.probe_path)}",
            f"sync_path = {_toml_str(api.sync_path)}",
            "",
            "# Connectivity monitor and offline queue",
            "[sync]",
            f"check_interval_seconds = {self.sync.check_interval_seconds}",
            f"initial_probe_delay = {self.sync.initial_probe_delay}",
            f"storage_key = {_toml_str(self.sync.storage_key)}",
            f"export_dir = {_toml_str(self.sync.export_dir)}",
            "",
            "# Queue persistence",
            "[storage]",
            f"backend = {_toml_str(self.storage.backend)}",
            f"filename = {_toml_str(self.storage.filename)}",
            "",
            "# CLI preferences",
            "[cli]",
            f"json_output = {'true' if self.json_output else 'false'}",
        ]

        # Atomic write: write to temp file, then rename
        content = "\n".join(lines) + "\n"
        fd, tmp_path = tempfile.mkstemp(dir=str(self.data_dir), suffix=".toml.tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            Path(tmp_path).replace(config_path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    @property
    def config_path(self) -> Path:
        return self.data_dir / "config.toml"

    @property
    def queue_db_path(self) -> Path:
        """Path to the SQLite file holding the pending queue."""
        return self.data_dir / self.storage.filename

    @property
    def api_root(self) -> str:
        """Path component of the base URL, e.g. ``/api``."""
        return urlparse(self.api.base_url).path.rstrip("/")

    @property
    def export_dir(self) -> Path | None:
        return Path(self.sync.export_dir).expanduser() if self.sync.export_dir else None

    def set_base_url(self, url: str) -> None:
        """Validate, store and save a new API base URL."""
        self.api = ApiConfig(
            base_url=validate_base_url(url),
            timeout_seconds=self.api.timeout_seconds,
            probe_path=self.api.probe_path,
            sync_path=self.api.sync_path,
        )
        self.file_api = None
        self.save()

    def set_check_interval(self, seconds: float) -> None:
        """Store and save the probe interval (clamped to 5s..24h)."""
        self.sync = SyncConfig(
            check_interval_seconds=_clamp(seconds, 5.0, 86400.0, 30.0),
            initial_probe_delay=self.sync.initial_probe_delay,
            storage_key=self.sync.storage_key,
            export_dir=self.sync.export_dir,
        )
        self.save()


# Singleton instance for easy access
_config: GestionConfig | None = None


def get_config(reload: bool = False) -> GestionConfig:
    """Get the client configuration (singleton).

    Args:
        reload: Force reload from disk

    Returns:
        GestionConfig instance
    """
    global _config
    if _config is None or reload:
        _config = GestionConfig.load()
    return _config
