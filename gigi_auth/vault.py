"""
Password-protected vault for the mnemonic.

Cipher: XChaCha20-Poly1305 (24-byte random nonce, tag appended to the
ciphertext), via pycryptodome.

Key schedule (``KDF_ARGON2ID``):
    stretched = Argon2id(password, salt, time_cost, memory_cost, parallelism)
    key       = HKDF-SHA256(stretched, salt=salt, info=b"gigi-mnemonic")

Records written before the hardened schedule carry no ``kdf`` field; their
key was HKDF-Keccak256(password) with no salt, no info and no work factor
(``KDF_LEGACY``).  Such records can still be opened, but nothing new is ever
sealed that way; see ``AuthManager.unlock`` for the upgrade path.

Every decryption failure surfaces as the same ``DecryptionFailed``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from argon2.low_level import Type, hash_secret_raw
from Crypto.Cipher import ChaCha20_Poly1305
from Crypto.Hash import SHA256
from Crypto.Protocol.KDF import HKDF

from gigi_auth.address import keccak256
from gigi_auth.bip39 import MnemonicLike, normalize_mnemonic
from gigi_auth.errors import DecryptionFailed
from gigi_auth.key_material import SecretBuffer

logger = logging.getLogger("gigi_vault")

NONCE_SIZE = 24
KEY_SIZE = 32
TAG_SIZE = 16
HKDF_INFO = b"gigi-mnemonic"

KDF_ARGON2ID = "argon2id-hkdf-sha256"
KDF_LEGACY = "hkdf-keccak256"
SUPPORTED_KDFS = (KDF_ARGON2ID, KDF_LEGACY)

_KECCAK_BLOCK = 136


@dataclass
class KdfParams:
    """Argon2id work factors (memory_cost in KiB)."""
    time_cost: int = 3
    memory_cost: int = 65536
    parallelism: int = 4
    salt_size: int = 16

    def validate(self) -> None:
        if self.time_cost < 1:
            raise ValueError("time_cost must be >= 1")
        if self.parallelism < 1:
            raise ValueError("parallelism must be >= 1")
        if self.memory_cost < 8 * self.parallelism:
            raise ValueError("memory_cost must be >= 8 * parallelism KiB")
        if self.salt_size < 8:
            raise ValueError("salt_size must be >= 8 bytes")


@dataclass(frozen=True)
class EncryptedVault:
    ciphertext: str   # hex, ciphertext || 16-byte tag
    nonce: str        # hex, 24 bytes
    salt: str         # hex
    kdf: str = KDF_ARGON2ID


def _password_buffer(password: str | bytes | bytearray) -> SecretBuffer:
    if isinstance(password, str):
        return SecretBuffer(password.encode("utf-8"))
    return SecretBuffer(password)


def _hmac_keccak256(key: bytes, msg: bytes) -> bytes:
    if len(key) > _KECCAK_BLOCK:
        key = keccak256(key)
    key = key.ljust(_KECCAK_BLOCK, b"\x00")
    inner = keccak256(bytes(b ^ 0x36 for b in key) + msg)
    return keccak256(bytes(b ^ 0x5C for b in key) + inner)


def derive_legacy_key(password: str | bytes | bytearray) -> SecretBuffer:
    """
    Key used by pre-hardening records: HKDF-Keccak256(password), 32 bytes,
    zero salt, empty info.  Read-only compatibility; never used to seal.
    """
    with _password_buffer(password) as pw:
        prk = _hmac_keccak256(b"\x00" * 32, bytes(pw.value))
    # one HKDF expand block is exactly KEY_SIZE bytes
    return SecretBuffer(_hmac_keccak256(prk, b"\x01"))


class VaultCipher:
    """Seal / open a mnemonic under a user password."""

    def __init__(self, params: KdfParams | None = None):
        self.params = params or KdfParams()
        self.params.validate()

    # ---- key schedule ----

    def derive_encryption_key(self, password: str | bytes | bytearray,
                              salt: bytes) -> SecretBuffer:
        """Argon2id stretch followed by HKDF-SHA256 expansion to KEY_SIZE bytes."""
        p = self.params
        with _password_buffer(password) as pw:
            stretched = SecretBuffer(hash_secret_raw(
                secret=bytes(pw.value),
                salt=salt,
                time_cost=p.time_cost,
                memory_cost=p.memory_cost,
                parallelism=p.parallelism,
                hash_len=KEY_SIZE,
                type=Type.ID,
            ))
        with stretched:
            key = HKDF(stretched.value, KEY_SIZE, salt, SHA256, context=HKDF_INFO)
        return SecretBuffer(key)

    def _key_for(self, kdf: str, password: str | bytes | bytearray,
                 salt: bytes | None) -> SecretBuffer:
        if kdf == KDF_ARGON2ID:
            if not salt:
                raise DecryptionFailed()
            return self.derive_encryption_key(password, salt)
        if kdf == KDF_LEGACY:
            return derive_legacy_key(password)
        raise DecryptionFailed()

    # ---- AEAD primitives ----

    @staticmethod
    def seal(key: SecretBuffer, plaintext: bytes | bytearray) -> tuple[str, str]:
        """Encrypt under a fresh random nonce. Returns (ciphertext_hex, nonce_hex)."""
        nonce = os.urandom(NONCE_SIZE)
        cipher = ChaCha20_Poly1305.new(key=key.value, nonce=nonce)
        ciphertext, tag = cipher.encrypt_and_digest(plaintext)
        return (ciphertext + tag).hex(), nonce.hex()

    @staticmethod
    def open(key: SecretBuffer, ciphertext: bytes, nonce: bytes) -> SecretBuffer:
        """Decrypt and verify; raises DecryptionFailed on any mismatch."""
        if len(nonce) != NONCE_SIZE or len(ciphertext) < TAG_SIZE:
            raise DecryptionFailed()
        cipher = ChaCha20_Poly1305.new(key=key.value, nonce=nonce)
        try:
            plaintext = cipher.decrypt_and_verify(ciphertext[:-TAG_SIZE], ciphertext[-TAG_SIZE:])
        except ValueError:
            logger.debug("Vault tag verification failed")
            raise DecryptionFailed() from None
        return SecretBuffer(plaintext)

    # ---- mnemonic vault ----

    def encrypt(self, mnemonic: MnemonicLike, password: str | bytes | bytearray) -> EncryptedVault:
        """Seal the space-joined phrase under a fresh salt and nonce."""
        salt = os.urandom(self.params.salt_size)
        with self.derive_encryption_key(password, salt) as key, \
                SecretBuffer(normalize_mnemonic(mnemonic)) as plaintext:
            ciphertext_hex, nonce_hex = self.seal(key, plaintext.value)
        return EncryptedVault(ciphertext=ciphertext_hex, nonce=nonce_hex,
                              salt=salt.hex(), kdf=KDF_ARGON2ID)

    def decrypt_to_buffer(self, ciphertext_hex: str, password: str | bytes | bytearray,
                          nonce_hex: str, salt_hex: str | None = None,
                          kdf: str = KDF_ARGON2ID) -> SecretBuffer:
        """Like ``decrypt`` but returns the UTF-8 phrase in a wipeable buffer."""
        try:
            ciphertext = bytes.fromhex(ciphertext_hex)
            nonce = bytes.fromhex(nonce_hex)
            salt = bytes.fromhex(salt_hex) if salt_hex else None
        except (TypeError, ValueError):
            raise DecryptionFailed() from None

        with self._key_for(kdf, password, salt) as key:
            plaintext = self.open(key, ciphertext, nonce)
        try:
            plaintext.value.decode("utf-8")
        except UnicodeDecodeError:
            plaintext.close()
            raise DecryptionFailed() from None
        return plaintext

    def decrypt(self, ciphertext_hex: str, password: str | bytes | bytearray,
                nonce_hex: str, salt_hex: str | None = None,
                kdf: str = KDF_ARGON2ID) -> str:
        """Open a vault and return the mnemonic phrase."""
        with self.decrypt_to_buffer(ciphertext_hex, password, nonce_hex, salt_hex, kdf) as pt:
            return pt.value.decode("utf-8")
