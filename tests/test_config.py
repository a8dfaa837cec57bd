"""
Tests for gigi_auth.config: TOML configuration and environment overrides.

Covers:
  - Default values for all dataclass sections
  - TOML parsing and section merging
  - Environment variable overrides (precedence over TOML)
  - _merge helper edge cases
  - Missing TOML file
  - Storage backend selection
"""

from __future__ import annotations

import os
import tempfile
import textwrap
import unittest
from unittest.mock import patch

from gigi_auth.config import (
    AccountConfig,
    GigiConfig,
    LoggingConfig,
    StorageConfig,
    VaultConfig,
    _merge,
    load_config,
    open_account_store,
    open_store,
)
from gigi_auth.storage import AccountStore, MemoryStore, SQLiteSettingsStore
from gigi_auth.vault import KdfParams

_ENV_KEYS = [
    "GIGI_DB_PATH", "GIGI_STORAGE_BACKEND", "GIGI_LOG_LEVEL", "GIGI_LOG_FMT",
    "GIGI_KDF_TIME_COST", "GIGI_KDF_MEMORY_KIB", "GIGI_KDF_PARALLELISM",
]


def _clean_env():
    return {k: v for k, v in os.environ.items() if k not in _ENV_KEYS}


# ═══════════════════════════════════════════════════════════════════
#  Defaults
# ═══════════════════════════════════════════════════════════════════

class TestDefaults(unittest.TestCase):

    def test_storage_defaults(self):
        s = StorageConfig()
        self.assertEqual(s.backend, "sqlite")
        self.assertEqual(s.path, "data/gigi.db")
        self.assertEqual(s.record_key, "gigi")

    def test_vault_defaults(self):
        v = VaultConfig()
        self.assertEqual(v.time_cost, 3)
        self.assertEqual(v.memory_cost_kib, 65536)
        self.assertEqual(v.parallelism, 4)
        self.assertEqual(v.salt_size, 16)

    def test_vault_to_kdf_params(self):
        params = VaultConfig(time_cost=1, memory_cost_kib=2048, parallelism=2).kdf_params()
        self.assertEqual(params, KdfParams(time_cost=1, memory_cost=2048, parallelism=2))

    def test_account_defaults(self):
        self.assertEqual(AccountConfig().default_name, "User")

    def test_logging_defaults(self):
        lg = LoggingConfig()
        self.assertEqual(lg.level, "INFO")
        self.assertEqual(lg.format, "human")
        self.assertIsNone(lg.file)

    def test_load_without_path(self):
        with patch.dict(os.environ, _clean_env(), clear=True):
            cfg = load_config(None)
        self.assertIsInstance(cfg, GigiConfig)
        self.assertEqual(cfg.storage, StorageConfig())


# ═══════════════════════════════════════════════════════════════════
#  TOML
# ═══════════════════════════════════════════════════════════════════

class TestTOML(unittest.TestCase):

    def _write(self, body: str) -> str:
        fd, path = tempfile.mkstemp(suffix=".toml")
        with os.fdopen(fd, "w") as f:
            f.write(textwrap.dedent(body))
        self.addCleanup(os.unlink, path)
        return path

    def test_sections_merged(self):
        path = self._write("""
            [storage]
            path = "/tmp/other.db"
            record-key = "gigi-test"

            [vault]
            time_cost = 5
            memory_cost_kib = 131072

            [account]
            default_name = "Anon"

            [logging]
            level = "DEBUG"
            format = "json"
        """)
        with patch.dict(os.environ, _clean_env(), clear=True):
            cfg = load_config(path)
        self.assertEqual(cfg.storage.path, "/tmp/other.db")
        self.assertEqual(cfg.storage.record_key, "gigi-test")
        self.assertEqual(cfg.storage.backend, "sqlite")
        self.assertEqual(cfg.vault.time_cost, 5)
        self.assertEqual(cfg.vault.memory_cost_kib, 131072)
        self.assertEqual(cfg.vault.parallelism, 4)
        self.assertEqual(cfg.account.default_name, "Anon")
        self.assertEqual(cfg.logging.level, "DEBUG")
        self.assertEqual(cfg.logging.format, "json")

    def test_missing_file_uses_defaults(self):
        with patch.dict(os.environ, _clean_env(), clear=True):
            cfg = load_config("/nonexistent/gigi.toml")
        self.assertEqual(cfg.vault, VaultConfig())

    def test_unknown_section_ignored(self):
        path = self._write("""
            [network]
            port = 1
        """)
        with patch.dict(os.environ, _clean_env(), clear=True):
            cfg = load_config(path)
        self.assertFalse(hasattr(cfg, "network"))


# ═══════════════════════════════════════════════════════════════════
#  Environment overrides
# ═══════════════════════════════════════════════════════════════════

class TestEnvOverrides(unittest.TestCase):

    def test_all_overrides(self):
        env = _clean_env()
        env.update({
            "GIGI_DB_PATH": "/tmp/env.db",
            "GIGI_STORAGE_BACKEND": "MEMORY",
            "GIGI_LOG_LEVEL": "warning",
            "GIGI_LOG_FMT": "json",
            "GIGI_KDF_TIME_COST": "2",
            "GIGI_KDF_MEMORY_KIB": "4096",
            "GIGI_KDF_PARALLELISM": "1",
        })
        with patch.dict(os.environ, env, clear=True):
            cfg = load_config(None)
        self.assertEqual(cfg.storage.path, "/tmp/env.db")
        self.assertEqual(cfg.storage.backend, "memory")
        self.assertEqual(cfg.logging.level, "WARNING")
        self.assertEqual(cfg.logging.format, "json")
        self.assertEqual(cfg.vault.time_cost, 2)
        self.assertEqual(cfg.vault.memory_cost_kib, 4096)
        self.assertEqual(cfg.vault.parallelism, 1)

    def test_env_beats_toml(self):
        fd, path = tempfile.mkstemp(suffix=".toml")
        with os.fdopen(fd, "w") as f:
            f.write('[storage]\npath = "/tmp/file.db"\n')
        self.addCleanup(os.unlink, path)
        env = _clean_env()
        env["GIGI_DB_PATH"] = "/tmp/env.db"
        with patch.dict(os.environ, env, clear=True):
            cfg = load_config(path)
        self.assertEqual(cfg.storage.path, "/tmp/env.db")

    def test_bad_integer(self):
        env = _clean_env()
        env["GIGI_KDF_TIME_COST"] = "lots"
        with patch.dict(os.environ, env, clear=True):
            with self.assertRaises(ValueError):
                load_config(None)


# ═══════════════════════════════════════════════════════════════════
#  _merge and store selection
# ═══════════════════════════════════════════════════════════════════

class TestMerge(unittest.TestCase):

    def test_hyphen_and_unknown_keys(self):
        s = StorageConfig()
        _merge(s, {"record-key": "x", "bogus": 1})
        self.assertEqual(s.record_key, "x")
        self.assertFalse(hasattr(s, "bogus"))

    def test_empty(self):
        v = VaultConfig()
        _merge(v, {})
        self.assertEqual(v, VaultConfig())


class TestOpenStore(unittest.TestCase):

    def test_memory(self):
        self.assertIsInstance(open_store(StorageConfig(backend="memory")), MemoryStore)

    def test_sqlite(self):
        with tempfile.TemporaryDirectory() as d:
            store = open_store(StorageConfig(path=os.path.join(d, "x.db")))
            self.assertIsInstance(store, SQLiteSettingsStore)
            store.close()

    def test_unknown_backend(self):
        with self.assertRaises(ValueError):
            open_store(StorageConfig(backend="redis"))

    def test_account_store_uses_record_key(self):
        accounts = open_account_store(StorageConfig(backend="memory", record_key="k"))
        self.assertIsInstance(accounts, AccountStore)
        self.assertEqual(accounts.key, "k")
