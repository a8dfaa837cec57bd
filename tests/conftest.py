"""
Shared pytest fixtures for the gigi-auth test suite.
"""

import pytest

from gigi_auth.auth import AuthManager
from gigi_auth.storage import AccountStore, MemoryStore
from gigi_auth.vault import KdfParams, VaultCipher

PHRASE = "pioneer million sorry pipe cry garden private olive give apology inch foster"
PHRASE_ADDRESS = "0xebc936ea6729bc1b3f357c16245bde58af954981"

ABANDON = "abandon " * 11 + "about"
ABANDON_ADDRESS = "0x9858effd232b4033e47d90003d41ec34ecaeda94"

PASSWORD = "correct horse battery staple"


def fast_params() -> KdfParams:
    """Argon2id settings cheap enough for unit tests."""
    return KdfParams(time_cost=1, memory_cost=1024, parallelism=1, salt_size=16)


@pytest.fixture
def kdf_params():
    return fast_params()


@pytest.fixture
def cipher(kdf_params):
    """VaultCipher with test-speed Argon2 parameters."""
    return VaultCipher(kdf_params)


@pytest.fixture
def kv():
    """Empty in-memory key-value store."""
    return MemoryStore()


@pytest.fixture
def accounts(kv):
    return AccountStore(kv)


@pytest.fixture
def manager(accounts, cipher):
    """Initialised manager with no account."""
    m = AuthManager(accounts, cipher=cipher)
    m.init()
    return m


@pytest.fixture
def signed_up(manager):
    """Manager with PHRASE signed up under PASSWORD (still locked)."""
    manager.signup(PHRASE, PASSWORD, name="Alice")
    return manager
