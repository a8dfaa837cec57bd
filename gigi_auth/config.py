"""
TOML-based configuration for gigi-auth.

Loads settings from a TOML file and/or environment variables.
Environment variables take precedence over file values.

Usage:
    from gigi_auth.config import load_config
    cfg = load_config("gigi.toml")
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomllib  # type: ignore[import]
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[import,no-redef]

from gigi_auth.storage import RECORD_KEY, AccountStore, MemoryStore, SQLiteSettingsStore
from gigi_auth.vault import KdfParams

STORAGE_BACKENDS = ("sqlite", "memory")


@dataclass
class StorageConfig:
    """Where the account record lives."""
    backend: str = "sqlite"    # "sqlite" or "memory"
    path: str = "data/gigi.db"
    record_key: str = RECORD_KEY


@dataclass
class VaultConfig:
    """Argon2id work factors for new vaults."""
    time_cost: int = 3
    memory_cost_kib: int = 65536
    parallelism: int = 4
    salt_size: int = 16

    def kdf_params(self) -> KdfParams:
        return KdfParams(
            time_cost=self.time_cost,
            memory_cost=self.memory_cost_kib,
            parallelism=self.parallelism,
            salt_size=self.salt_size,
        )


@dataclass
class AccountConfig:
    default_name: str = "User"


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    format: str = "human"   # "human" or "json"
    file: str | None = None


@dataclass
class GigiConfig:
    """Top-level configuration container."""
    storage: StorageConfig = field(default_factory=StorageConfig)
    vault: VaultConfig = field(default_factory=VaultConfig)
    account: AccountConfig = field(default_factory=AccountConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _merge(dc: Any, raw: dict[str, Any]) -> None:
    """Merge a raw dict into a dataclass instance (in-place)."""
    for key, value in raw.items():
        key_under = key.replace("-", "_")
        if hasattr(dc, key_under):
            setattr(dc, key_under, value)


def load_config(path: str | None = None) -> GigiConfig:
    """
    Load configuration from a TOML file, then overlay environment variables.

    Env-var mapping:
        GIGI_DB_PATH          -> storage.path
        GIGI_STORAGE_BACKEND  -> storage.backend
        GIGI_LOG_LEVEL        -> logging.level
        GIGI_LOG_FMT          -> logging.format
        GIGI_KDF_TIME_COST    -> vault.time_cost
        GIGI_KDF_MEMORY_KIB   -> vault.memory_cost_kib
        GIGI_KDF_PARALLELISM  -> vault.parallelism
    """
    cfg = GigiConfig()

    # ── TOML file ────────────────────────────────────────────────
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p, "rb") as f:
                data = tomllib.load(f)
            for section_name, section_dc in [
                ("storage", cfg.storage),
                ("vault", cfg.vault),
                ("account", cfg.account),
                ("logging", cfg.logging),
            ]:
                if section_name in data:
                    _merge(section_dc, data[section_name])

    # ── Environment variable overrides ───────────────────────────
    if v := os.environ.get("GIGI_DB_PATH"):
        cfg.storage.path = v
    if v := os.environ.get("GIGI_STORAGE_BACKEND"):
        cfg.storage.backend = v.lower()
    if v := os.environ.get("GIGI_LOG_LEVEL"):
        cfg.logging.level = v.upper()
    if v := os.environ.get("GIGI_LOG_FMT"):
        cfg.logging.format = v
    if v := os.environ.get("GIGI_KDF_TIME_COST"):
        cfg.vault.time_cost = int(v)
    if v := os.environ.get("GIGI_KDF_MEMORY_KIB"):
        cfg.vault.memory_cost_kib = int(v)
    if v := os.environ.get("GIGI_KDF_PARALLELISM"):
        cfg.vault.parallelism = int(v)

    return cfg


def open_store(storage: StorageConfig) -> MemoryStore | SQLiteSettingsStore:
    """Key-value store for the configured backend."""
    if storage.backend == "memory":
        return MemoryStore()
    if storage.backend == "sqlite":
        return SQLiteSettingsStore(storage.path)
    raise ValueError(
        f"Unknown storage backend {storage.backend!r}; expected one of {STORAGE_BACKENDS}"
    )


def open_account_store(storage: StorageConfig) -> AccountStore:
    return AccountStore(open_store(storage), key=storage.record_key)
