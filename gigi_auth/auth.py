"""
Account lifecycle: signup, unlock, lock, reset.

States and the events that move between them form a closed table; any
(state, event) pair not listed raises ``InvalidTransition``.

    UNREGISTERED    --SIGNED_UP-->     UNAUTHENTICATED
    UNAUTHENTICATED --UNLOCKED-->      AUTHENTICATED
    UNAUTHENTICATED --UNLOCK_FAILED--> UNAUTHENTICATED
    AUTHENTICATED   --LOCKED-->        UNAUTHENTICATED
    any             --RESET-->         UNREGISTERED

``init()`` rebuilds the session from the stored record (RECORD_FOUND /
RECORD_MISSING) and may be called from any state.

Signup always ends in UNAUTHENTICATED: the caller unlocks explicitly.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from enum import Enum

from gigi_auth.address import derive_address
from gigi_auth.bip39 import MnemonicLike, mnemonic_to_entropy, normalize_mnemonic
from gigi_auth.errors import (
    AccountExists,
    AlreadyAuthenticated,
    AuthError,
    DecryptionFailed,
    InvalidTransition,
    NotUnlockable,
)
from gigi_auth.storage import AccountRecord, AccountStore
from gigi_auth.vault import KDF_LEGACY, VaultCipher

logger = logging.getLogger("gigi_auth")

UNLOCK_FAILED_MESSAGE = "Unable to unlock the account. Check your password and try again."
DEFAULT_NAME = "User"


class AuthStatus(str, Enum):
    UNREGISTERED = "unregistered"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


class AuthEvent(str, Enum):
    RECORD_MISSING = "record_missing"
    RECORD_FOUND = "record_found"
    SIGNED_UP = "signed_up"
    UNLOCKED = "unlocked"
    UNLOCK_FAILED = "unlock_failed"
    LOCKED = "locked"
    RESET = "reset"


_ANY = tuple(AuthStatus)

_TRANSITIONS: dict[tuple[AuthStatus, AuthEvent], AuthStatus] = {
    **{(s, AuthEvent.RECORD_MISSING): AuthStatus.UNREGISTERED for s in _ANY},
    **{(s, AuthEvent.RECORD_FOUND): AuthStatus.UNAUTHENTICATED for s in _ANY},
    **{(s, AuthEvent.RESET): AuthStatus.UNREGISTERED for s in _ANY},
    (AuthStatus.UNREGISTERED, AuthEvent.SIGNED_UP): AuthStatus.UNAUTHENTICATED,
    (AuthStatus.UNAUTHENTICATED, AuthEvent.UNLOCKED): AuthStatus.AUTHENTICATED,
    (AuthStatus.UNAUTHENTICATED, AuthEvent.UNLOCK_FAILED): AuthStatus.UNAUTHENTICATED,
    (AuthStatus.AUTHENTICATED, AuthEvent.LOCKED): AuthStatus.UNAUTHENTICATED,
}


def transition(status: AuthStatus, event: AuthEvent) -> AuthStatus:
    """Next status for *event* in *status*; raises InvalidTransition if undefined."""
    try:
        return _TRANSITIONS[(status, event)]
    except KeyError:
        raise InvalidTransition(
            f"Event {event.value!r} is not allowed in state {status.value!r}"
        ) from None


def _clean_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ValueError("Name must not be empty")
    return name


@dataclass
class AuthSession:
    """Process-local view of the account; never the source of truth."""
    status: AuthStatus = AuthStatus.UNREGISTERED
    address: str | None = None
    name: str | None = None
    last_error: str | None = None


@dataclass(frozen=True)
class AccountInfo:
    address: str
    name: str


class AuthManager:
    """
    Ties the mnemonic codec, address derivation, VaultCipher and AccountStore
    together behind the state machine.

    All methods are synchronous; wrap in ``AsyncAuthManager`` to keep an
    event loop responsive while Argon2 runs.
    """

    def __init__(self, accounts: AccountStore, cipher: VaultCipher | None = None,
                 default_name: str = DEFAULT_NAME):
        self.accounts = accounts
        self.cipher = cipher or VaultCipher()
        self.default_name = default_name
        self.session = AuthSession()
        self._record: AccountRecord | None = None

    # ---- state helpers ----

    @property
    def status(self) -> AuthStatus:
        return self.session.status

    def _apply(self, event: AuthEvent) -> AuthStatus:
        new_status = transition(self.session.status, event)
        if new_status != self.session.status:
            logger.debug(f"Auth {self.session.status.value} -> {new_status.value} ({event.value})")
        self.session.status = new_status
        return new_status

    def _adopt(self, record: AccountRecord | None) -> None:
        self._record = record
        if record is None:
            self.session.address = None
            self.session.name = None
        else:
            self.session.address = record.address
            self.session.name = record.name

    # ---- lifecycle ----

    def init(self) -> AuthStatus:
        """Load the stored record and rebuild the session from it."""
        record = self.accounts.load()
        self.session = AuthSession()
        self._adopt(record)
        if record is None:
            return self._apply(AuthEvent.RECORD_MISSING)
        return self._apply(AuthEvent.RECORD_FOUND)

    def signup(self, mnemonic: MnemonicLike, password: str | bytes,
               name: str | None = None) -> str:
        """
        Create the account: validate phrase, derive address, encrypt, persist.

        Returns the new address.  Codec errors (InvalidMnemonicLength,
        UnknownWord, InvalidChecksum) propagate with detail.
        An unusable record still under the key blocks signup until ``reset``.
        *name* is stripped; a blank name raises ValueError.
        """
        if self.status is AuthStatus.AUTHENTICATED:
            raise AlreadyAuthenticated("Already signed in")
        if self.status is not AuthStatus.UNREGISTERED or self.accounts.occupied():
            raise AccountExists("Account already exists")
        name = self.default_name if name is None else _clean_name(name)

        # full checksum validation before any key derivation
        mnemonic_to_entropy(mnemonic)
        phrase = normalize_mnemonic(mnemonic)

        address = derive_address(phrase)
        vault = self.cipher.encrypt(phrase, password)
        record = AccountRecord(
            nonce=vault.nonce,
            mnemonic=vault.ciphertext,
            address=address,
            name=name,
            salt=vault.salt,
            kdf=vault.kdf,
        )
        self.accounts.save(record)
        self._adopt(record)
        self.session.last_error = None
        self._apply(AuthEvent.SIGNED_UP)
        logger.info(f"Account created for {address}")
        return address

    def _open(self, record: AccountRecord, password: str | bytes) -> str:
        """Decrypt *record* and check it re-derives the stored address."""
        with self.cipher.decrypt_to_buffer(
            record.mnemonic, password, record.nonce, record.salt, record.kdf,
        ) as plaintext:
            phrase = plaintext.value.decode("utf-8")
        try:
            derived = derive_address(phrase)
        except AuthError:
            raise DecryptionFailed() from None
        if not hmac.compare_digest(derived.encode(), record.address.encode()):
            raise DecryptionFailed()
        return phrase

    def unlock(self, password: str | bytes) -> AuthStatus:
        """
        Try to unlock with *password*.

        Wrong password and corrupted data both leave the session
        UNAUTHENTICATED with ``last_error`` set to UNLOCK_FAILED_MESSAGE.
        """
        if self.status is AuthStatus.AUTHENTICATED:
            raise AlreadyAuthenticated("Already unlocked")
        if self.status is not AuthStatus.UNAUTHENTICATED or self._record is None:
            raise NotUnlockable("No account to unlock")

        record = self._record
        try:
            phrase = self._open(record, password)
        except DecryptionFailed:
            logger.warning("Unlock attempt failed")
            self.session.last_error = UNLOCK_FAILED_MESSAGE
            return self._apply(AuthEvent.UNLOCK_FAILED)

        if record.kdf == KDF_LEGACY:
            self._reseal(record, phrase, password)

        self.session.last_error = None
        logger.info(f"Unlocked {record.address}")
        return self._apply(AuthEvent.UNLOCKED)

    def _reseal(self, record: AccountRecord, phrase: str, password: str | bytes) -> None:
        vault = self.cipher.encrypt(phrase, password)
        upgraded = AccountRecord(
            nonce=vault.nonce,
            mnemonic=vault.ciphertext,
            address=record.address,
            name=record.name,
            salt=vault.salt,
            kdf=vault.kdf,
        )
        self.accounts.save(upgraded)
        self._adopt(upgraded)
        logger.info(f"Vault for {record.address} re-encrypted from {record.kdf} to {vault.kdf}")

    def lock(self) -> AuthStatus:
        """Log out: AUTHENTICATED -> UNAUTHENTICATED."""
        return self._apply(AuthEvent.LOCKED)

    def reset(self) -> AuthStatus:
        """Delete the account record and session.  Irreversible."""
        self.accounts.clear()
        self._adopt(None)
        self.session = AuthSession(status=self.session.status)
        status = self._apply(AuthEvent.RESET)
        logger.warning("Account reset; stored record deleted")
        return status

    # ---- account management ----

    def has_account(self) -> bool:
        return self.accounts.load() is not None

    def account_info(self) -> AccountInfo | None:
        record = self.accounts.load()
        if record is None:
            return None
        return AccountInfo(address=record.address, name=record.name)

    def verify_password(self, password: str | bytes) -> bool:
        """True if *password* opens the stored vault; never raises for crypto failures."""
        record = self.accounts.load()
        if record is None:
            return False
        try:
            self._open(record, password)
        except DecryptionFailed:
            return False
        return True

    def change_password(self, old_password: str | bytes, new_password: str | bytes) -> None:
        """Re-encrypt the vault under *new_password*.  Raises DecryptionFailed if *old_password* is wrong."""
        record = self.accounts.load()
        if record is None:
            raise NotUnlockable("No account to change password for")
        phrase = self._open(record, old_password)
        self._reseal(record, phrase, new_password)
        logger.info(f"Password changed for {record.address}")

    def rename(self, name: str) -> AccountInfo:
        record = self.accounts.update_name(_clean_name(name))
        self._adopt(record)
        return AccountInfo(address=record.address, name=record.name)
