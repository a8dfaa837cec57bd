"""
Ethereum-style address derivation.

address = "0x" + hex(keccak256(X || Y)[-20:]) where X || Y is the 64-byte
uncompressed public key without its 0x04 prefix.
"""

from __future__ import annotations

import re

from Crypto.Hash import keccak

from gigi_auth.bip39 import MnemonicLike
from gigi_auth.hd import derive_keys

ADDRESS_PREFIX = "0x"
ADDRESS_BYTES = 20

_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")


def keccak256(data: bytes) -> bytes:
    """Keccak-256 (the pre-standard SHA-3 padding used by Ethereum)."""
    return keccak.new(digest_bits=256, data=data).digest()


def public_key_to_address(public_key: bytes) -> str:
    """Address of a 65-byte uncompressed secp256k1 public key."""
    if len(public_key) != 65 or public_key[0] != 0x04:
        raise ValueError("Expected a 65-byte uncompressed public key")
    digest = keccak256(public_key[1:])
    return ADDRESS_PREFIX + digest[-ADDRESS_BYTES:].hex()


def derive_address(mnemonic: MnemonicLike) -> str:
    """Derive the account address for *mnemonic* (pure, deterministic)."""
    return public_key_to_address(derive_keys(mnemonic).public_key)


def is_address(value: object) -> bool:
    """True for "0x" + 40 lowercase hex characters."""
    return isinstance(value, str) and bool(_ADDRESS_RE.match(value))
