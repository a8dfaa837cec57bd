"""
Seed and HD key derivation (BIP-39 seed stretch, BIP-32 CKDpriv).

The app uses exactly one account key at the Ethereum path
m/44'/60'/0'/0/0; ``derive_keys`` returns that node's key pair.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import struct
import unicodedata
from dataclasses import dataclass

from Crypto.Hash import RIPEMD160
from ecdsa import SECP256k1, SigningKey

from gigi_auth.bip39 import ALLOWED_WORD_COUNTS, MnemonicLike, normalize_mnemonic, split_words
from gigi_auth.errors import DerivationFailure, InvalidMnemonicLength, KeyDerivationFailed

logger = logging.getLogger("gigi_hd")

DERIVATION_PATH = "m/44'/60'/0'/0/0"
SEED_ITERATIONS = 2048
CURVE_ORDER = SECP256k1.order


def mnemonic_to_seed(mnemonic: MnemonicLike, passphrase: str = "") -> bytes:
    """Convert a mnemonic phrase to a 64-byte seed (BIP-39)."""
    phrase = normalize_mnemonic(mnemonic)
    salt = unicodedata.normalize("NFKD", "mnemonic" + passphrase).encode("utf-8")
    return hashlib.pbkdf2_hmac(
        "sha512", phrase.encode("utf-8"), salt, SEED_ITERATIONS, dklen=64,
    )


@dataclass(frozen=True)
class KeyPair:
    public_key: bytes   # 65-byte uncompressed SEC1 point (0x04 || X || Y)
    private_key: bytes  # 32 bytes

    def __repr__(self) -> str:
        return f"KeyPair(public_key={self.public_key.hex()[:16]}..., private_key=<hidden>)"


class HDNode:
    """
    Hierarchical Deterministic key derivation node (BIP-32, secp256k1).

    Path notation: m/44'/60'/0'/0/0 (``'``, ``h`` or ``H`` mark hardened).
    """

    HARDENED = 0x80000000

    def __init__(self, private_key: bytes, chain_code: bytes, depth: int = 0,
                 index: int = 0, parent_fingerprint: bytes = b"\x00" * 4):
        self.private_key = private_key
        self.chain_code = chain_code
        self.depth = depth
        self.index = index
        self.parent_fingerprint = parent_fingerprint

    @classmethod
    def from_seed(cls, seed: bytes) -> HDNode:
        """Create master node from a BIP-39 seed."""
        I = hmac.new(b"Bitcoin seed", seed, hashlib.sha512).digest()
        k = int.from_bytes(I[:32], "big")
        if k == 0 or k >= CURVE_ORDER:
            raise DerivationFailure("Master key is outside the curve order")
        return cls(private_key=I[:32], chain_code=I[32:])

    def _signing_key(self) -> SigningKey:
        return SigningKey.from_string(self.private_key, curve=SECP256k1)

    @property
    def public_key(self) -> bytes:
        """Uncompressed (65-byte) public key."""
        return self._signing_key().get_verifying_key().to_string("uncompressed")

    @property
    def compressed_public_key(self) -> bytes:
        """Compressed (33-byte) public key."""
        return self._signing_key().get_verifying_key().to_string("compressed")

    @property
    def fingerprint(self) -> bytes:
        """First 4 bytes of HASH160 of the compressed public key."""
        sha = hashlib.sha256(self.compressed_public_key).digest()
        return RIPEMD160.new(sha).digest()[:4]

    def derive_child(self, index: int) -> HDNode:
        """Derive a child node at the given index."""
        if not 0 <= index <= 0xFFFFFFFF:
            raise DerivationFailure(f"Child index out of range: {index}")
        if index >= self.HARDENED:
            data = b"\x00" + self.private_key + struct.pack(">I", index)
        else:
            data = self.compressed_public_key + struct.pack(">I", index)

        I = hmac.new(self.chain_code, data, hashlib.sha512).digest()
        il = int.from_bytes(I[:32], "big")
        if il >= CURVE_ORDER:
            raise DerivationFailure(f"Invalid child at index {index}: IL >= n")
        child_key_int = (il + int.from_bytes(self.private_key, "big")) % CURVE_ORDER
        if child_key_int == 0:
            raise DerivationFailure(f"Invalid child at index {index}: key is zero")

        return HDNode(
            private_key=child_key_int.to_bytes(32, "big"),
            chain_code=I[32:],
            depth=self.depth + 1,
            index=index,
            parent_fingerprint=self.fingerprint,
        )

    @classmethod
    def parse_path(cls, path: str) -> list[int]:
        """Parse "m/44'/60'/0'/0/0" into a list of child indices."""
        path = path.strip()
        if path in ("m", ""):
            return []
        if path.startswith("m/"):
            path = path[2:]
        indices = []
        for component in path.split("/"):
            hardened = component[-1:] in ("'", "h", "H")
            digits = component[:-1] if hardened else component
            if not digits.isdigit():
                raise DerivationFailure(f"Malformed path component: {component!r}")
            index = int(digits)
            if index >= cls.HARDENED:
                raise DerivationFailure(f"Path index too large: {component!r}")
            indices.append(index + cls.HARDENED if hardened else index)
        return indices

    def derive_path(self, path: str) -> HDNode:
        """Walk a slash-separated path from this node."""
        node = self
        for index in self.parse_path(path):
            node = node.derive_child(index)
        return node

    def key_pair(self) -> KeyPair:
        return KeyPair(public_key=self.public_key, private_key=self.private_key)

    def __repr__(self) -> str:
        return f"HDNode(depth={self.depth}, index={self.index:#x})"


def derive_keys(mnemonic: MnemonicLike) -> KeyPair:
    """
    Derive the app's single key pair from *mnemonic* at DERIVATION_PATH.

    Only the word count is checked here; checksum validation belongs to the
    import/signup path.
    """
    words = split_words(mnemonic)
    if len(words) not in ALLOWED_WORD_COUNTS:
        raise InvalidMnemonicLength(len(words), ALLOWED_WORD_COUNTS)

    seed = mnemonic_to_seed(words)
    try:
        node = HDNode.from_seed(seed).derive_path(DERIVATION_PATH)
        pair = node.key_pair()
    except DerivationFailure as exc:
        logger.error("HD derivation failed: %s", exc)
        raise KeyDerivationFailed("Key derivation failed") from exc

    if len(pair.private_key) != 32 or len(pair.public_key) != 65:
        raise KeyDerivationFailed("Key derivation failed")
    return pair
