"""
Exception hierarchy for gigi-auth.

Codec and derivation errors carry detail (they happen before any secret is
encrypted).  ``DecryptionFailed`` carries no detail: wrong password,
corrupted ciphertext and corrupted nonce all produce the same message.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for every error raised by gigi_auth."""


# ── mnemonic codec ───────────────────────────────────────────────

class MnemonicError(AuthError, ValueError):
    """The phrase is not a valid BIP-39 English mnemonic."""


class InvalidMnemonicLength(MnemonicError):
    def __init__(self, count: int, allowed: tuple[int, ...] = (12, 24)):
        self.count = count
        self.allowed = allowed
        choices = " or ".join(str(a) for a in allowed)
        super().__init__(f"Mnemonic must be {choices} words long, got {count}")


class UnknownWord(MnemonicError):
    def __init__(self, word: str, position: int):
        self.word = word
        self.position = position
        super().__init__(f"Word #{position + 1} ({word!r}) is not in the BIP-39 wordlist")


class InvalidChecksum(MnemonicError):
    def __init__(self) -> None:
        super().__init__("Mnemonic checksum mismatch")


# ── key derivation ───────────────────────────────────────────────

class KeyDerivationFailed(AuthError):
    """Derived node has no usable key pair."""


class DerivationFailure(KeyDerivationFailed):
    """BIP-32 step produced an invalid key (IL >= n or child key == 0)."""


# ── vault ────────────────────────────────────────────────────────

class DecryptionFailed(AuthError):
    MESSAGE = "Failed to decrypt mnemonic"

    def __init__(self) -> None:
        super().__init__(self.MESSAGE)


# ── storage ──────────────────────────────────────────────────────

class RecordVersionMismatch(AuthError):
    def __init__(self, found: object, expected: str):
        self.found = found
        self.expected = expected
        super().__init__(f"Stored record version {found!r} != expected {expected!r}")


class RecordMalformed(AuthError):
    """Envelope version matches but its data cannot be used; the entry is kept."""


# ── state guards ─────────────────────────────────────────────────

class StateError(AuthError):
    """Operation is not allowed in the current auth state."""


class AlreadyAuthenticated(StateError):
    pass


class NotUnlockable(StateError):
    pass


class AccountExists(StateError):
    pass


class InvalidTransition(StateError):
    pass
