"""
Persistence for the account record.

Two layers:
  - a key-value store (``SQLiteSettingsStore`` on disk, ``MemoryStore`` for
    tests) that is injected, never global
  - ``AccountStore``, which wraps the record in a versioned envelope
    ``{"version": "v1", "data": {...}}`` under a single fixed key

Migration policy is destructive: an envelope whose version does not match
``RECORD_VERSION`` (or that cannot be parsed) is logged, deleted and treated
as absent.  Old data is never migrated.

Usage:
    with SQLiteSettingsStore("data/gigi.db") as kv:
        accounts = AccountStore(kv)
        record = accounts.load()
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Protocol

from gigi_auth.address import ADDRESS_PREFIX, is_address
from gigi_auth.errors import NotUnlockable, RecordMalformed, RecordVersionMismatch
from gigi_auth.vault import KDF_ARGON2ID, KDF_LEGACY, SUPPORTED_KDFS

logger = logging.getLogger("gigi_storage")

RECORD_KEY = "gigi"
RECORD_VERSION = "v1"


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
    def delete(self, key: str) -> bool: ...
    def exists(self, key: str) -> bool: ...


class MemoryStore:
    """In-process key-value store."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> bool:
        return self.data.pop(key, None) is not None

    def exists(self, key: str) -> bool:
        return key in self.data


class SQLiteSettingsStore:
    """Thin SQLite wrapper holding string settings by key."""

    def __init__(self, db_path: str = "data/gigi.db"):
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        # used from the AsyncAuthManager worker thread; access is serialised there
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA busy_timeout = 5000")
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._create_tables()
        logger.info(f"Settings store opened: {db_path}")

    def _create_tables(self) -> None:
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS settings (
                id         INTEGER PRIMARY KEY AUTOINCREMENT,
                key        TEXT NOT NULL UNIQUE,
                value      TEXT NOT NULL,
                updated_at INTEGER NOT NULL
            )
        """)
        self._conn.commit()

    def get(self, key: str) -> str | None:
        row = self._conn.execute(
            "SELECT value FROM settings WHERE key = ?", (key,)
        ).fetchone()
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        now = int(time.time() * 1000)
        self._conn.execute(
            """INSERT INTO settings (key, value, updated_at) VALUES (?, ?, ?)
               ON CONFLICT(key) DO UPDATE SET
                   value = excluded.value, updated_at = excluded.updated_at""",
            (key, value, now),
        )
        self._conn.commit()
        logger.debug(f"Setting '{key}' updated")

    def delete(self, key: str) -> bool:
        cur = self._conn.execute("DELETE FROM settings WHERE key = ?", (key,))
        self._conn.commit()
        return cur.rowcount > 0

    def exists(self, key: str) -> bool:
        row = self._conn.execute(
            "SELECT 1 FROM settings WHERE key = ?", (key,)
        ).fetchone()
        return row is not None

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> SQLiteSettingsStore:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


# ── account record ───────────────────────────────────────────────

@dataclass
class AccountRecord:
    """What is persisted for the single local account."""
    nonce: str
    mnemonic: str   # hex ciphertext || tag
    address: str
    name: str
    salt: str = ""
    kdf: str = KDF_ARGON2ID

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> AccountRecord:
        """Build a record from envelope data; raises RecordMalformed if unusable."""
        if not isinstance(data, dict):
            raise RecordMalformed("Record data is not an object")
        for field_name in ("nonce", "mnemonic", "address"):
            if not isinstance(data.get(field_name), str) or not data[field_name]:
                raise RecordMalformed(f"Record is missing '{field_name}'")
        address = normalize_address(data["address"])
        if address is None:
            raise RecordMalformed("Record address is malformed")
        # records written before salts existed carry no kdf marker
        kdf = data.get("kdf") or KDF_LEGACY
        if kdf not in SUPPORTED_KDFS:
            raise RecordMalformed(f"Unsupported kdf {kdf!r}")
        return cls(
            nonce=data["nonce"],
            mnemonic=data["mnemonic"],
            address=address,
            name=str(data.get("name") or ""),
            salt=str(data.get("salt") or ""),
            kdf=kdf,
        )


def normalize_address(value: str) -> str | None:
    """Canonical "0x" + lowercase form; older records stored bare hex."""
    candidate = value.strip().lower()
    if not candidate.startswith(ADDRESS_PREFIX):
        candidate = ADDRESS_PREFIX + candidate
    return candidate if is_address(candidate) else None


def encode_envelope(record: AccountRecord) -> str:
    return json.dumps({"version": RECORD_VERSION, "data": record.to_dict()})


def decode_envelope(raw: str) -> AccountRecord:
    """
    Parse a stored envelope.

    Raises ValueError when the text is not a JSON object,
    RecordVersionMismatch for a foreign version and RecordMalformed when
    the data of a current-version envelope is unusable.
    """
    try:
        parsed = json.loads(raw)
    except RecursionError:
        raise ValueError("Envelope is nested too deeply") from None
    if not isinstance(parsed, dict):
        raise ValueError("Envelope is not an object")
    version = parsed.get("version")
    if version != RECORD_VERSION:
        raise RecordVersionMismatch(version, RECORD_VERSION)
    return AccountRecord.from_dict(parsed.get("data"))


class AccountStore:
    """
    Versioned AccountRecord persistence over an injected KeyValueStore.

    ``load`` drops the entry only when it is unparseable or carries a
    foreign version.  A current-version envelope with unusable data still
    holds the encrypted phrase, so it is left in place and reported as
    absent; ``occupied`` tells the two cases apart and ``clear`` is the only
    way to remove it.
    """

    def __init__(self, store: KeyValueStore, key: str = RECORD_KEY):
        self.store = store
        self.key = key

    def save(self, record: AccountRecord) -> None:
        self.store.set(self.key, encode_envelope(record))
        logger.info(f"Account record saved for {record.address}")

    def load(self) -> AccountRecord | None:
        raw = self.store.get(self.key)
        if raw is None:
            return None
        try:
            return decode_envelope(raw)
        except RecordMalformed as exc:
            logger.error(f"Record '{self.key}' is unusable ({exc}); left in place")
            return None
        except RecordVersionMismatch as exc:
            logger.warning(f"Storage version mismatch for '{self.key}' ({exc}), clearing")
        except ValueError as exc:
            logger.warning(f"Failed to parse '{self.key}' record ({exc}), clearing")
        self.store.delete(self.key)
        return None

    def exists(self) -> bool:
        return self.load() is not None

    def occupied(self) -> bool:
        """True if anything is stored under the key, usable or not."""
        return self.store.exists(self.key)

    def clear(self) -> None:
        self.store.delete(self.key)
        logger.info(f"Account record '{self.key}' cleared")

    def update_name(self, name: str) -> AccountRecord:
        """Change the display name; the only partial mutation allowed."""
        record = self.load()
        if record is None:
            raise NotUnlockable("No account record to rename")
        record.name = name
        self.save(record)
        return record
