"""
BIP-39 mnemonic codec.

Maps entropy to and from the standard 2048-word English list:
  - entropy generation (128 / 256 bits -> 12 / 24 words)
  - entropy + SHA-256 checksum bits -> 11-bit word indices
  - phrase -> entropy with full checksum validation
"""

from __future__ import annotations

import hashlib
import os
import unicodedata
from typing import Sequence, Union

from mnemonic import Mnemonic

from gigi_auth.errors import InvalidChecksum, InvalidMnemonicLength, UnknownWord

MnemonicLike = Union[str, Sequence[str]]

# strength (bits) -> word count
WORD_COUNTS = {128: 12, 256: 24}
ALLOWED_WORD_COUNTS: tuple[int, ...] = tuple(sorted(WORD_COUNTS.values()))

_WORDLIST: list[str] | None = None
_WORD_INDEX: dict[str, int] | None = None


def wordlist() -> list[str]:
    """The BIP-39 English wordlist (loaded once)."""
    global _WORDLIST, _WORD_INDEX
    if _WORDLIST is None:
        words = list(Mnemonic("english").wordlist)
        if len(words) != 2048 or len(set(words)) != 2048:
            raise RuntimeError("BIP-39 English wordlist is corrupt")
        _WORDLIST = words
        _WORD_INDEX = {w: i for i, w in enumerate(words)}
    return _WORDLIST


def _word_index() -> dict[str, int]:
    wordlist()
    assert _WORD_INDEX is not None
    return _WORD_INDEX


def split_words(mnemonic: MnemonicLike) -> list[str]:
    """Normalise a phrase (str or word sequence) into a list of words."""
    if isinstance(mnemonic, str):
        raw = mnemonic.split()
    else:
        raw = [w for part in mnemonic for w in str(part).split()]
    return [unicodedata.normalize("NFKD", w).lower() for w in raw]


def normalize_mnemonic(mnemonic: MnemonicLike) -> str:
    """Single-space-joined, lower-cased, NFKD form of *mnemonic*."""
    return " ".join(split_words(mnemonic))


def generate_entropy(strength: int = 128) -> bytes:
    """Generate random entropy for a 12-word (128) or 24-word (256) phrase."""
    if strength not in WORD_COUNTS:
        raise ValueError("Strength must be 128 or 256")
    return os.urandom(strength // 8)


def _checksum_bits(entropy: bytes) -> str:
    h = hashlib.sha256(entropy).digest()
    cs_len = len(entropy) * 8 // 32
    return bin(int.from_bytes(h, "big"))[2:].zfill(256)[:cs_len]


def entropy_to_mnemonic(entropy: bytes) -> str:
    """Convert entropy bytes to a BIP-39 mnemonic phrase."""
    strength = len(entropy) * 8
    if strength not in WORD_COUNTS:
        raise InvalidMnemonicLength(len(entropy) * 3 // 4, ALLOWED_WORD_COUNTS)

    words = wordlist()
    bits = bin(int.from_bytes(entropy, "big"))[2:].zfill(strength)
    bits += _checksum_bits(entropy)
    return " ".join(
        words[int(bits[i : i + 11], 2)] for i in range(0, len(bits), 11)
    )


def mnemonic_to_entropy(mnemonic: MnemonicLike) -> bytes:
    """
    Decode a phrase back to its entropy.

    Raises InvalidMnemonicLength, UnknownWord or InvalidChecksum, checked in
    that order.
    """
    words = split_words(mnemonic)
    if len(words) not in ALLOWED_WORD_COUNTS:
        raise InvalidMnemonicLength(len(words), ALLOWED_WORD_COUNTS)

    index = _word_index()
    bits = []
    for pos, word in enumerate(words):
        idx = index.get(word)
        if idx is None:
            raise UnknownWord(word, pos)
        bits.append(bin(idx)[2:].zfill(11))
    bitstr = "".join(bits)

    cs_len = len(words) * 11 // 33
    ent_bits, cs = bitstr[:-cs_len], bitstr[-cs_len:]
    entropy = int(ent_bits, 2).to_bytes(len(ent_bits) // 8, "big")
    if _checksum_bits(entropy) != cs:
        raise InvalidChecksum()
    return entropy


def generate_mnemonic(strength: int = 128) -> str:
    """Generate a new BIP-39 mnemonic phrase."""
    return entropy_to_mnemonic(generate_entropy(strength))


def validate_mnemonic(mnemonic: MnemonicLike) -> bool:
    """True when *mnemonic* has a valid length, known words and checksum."""
    try:
        mnemonic_to_entropy(mnemonic)
    except (InvalidMnemonicLength, UnknownWord, InvalidChecksum):
        return False
    return True
