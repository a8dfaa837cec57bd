"""
gigi-auth - local mnemonic account for a single user.

Key features:
- BIP-39 English recovery phrases (12 or 24 words, checksum validated)
- BIP-32 derivation of the m/44'/60'/0'/0/0 secp256k1 key
- Ethereum-style Keccak-256 account address
- XChaCha20-Poly1305 vault keyed by Argon2id + HKDF
- Versioned account record in SQLite
- Explicit unregistered / unauthenticated / authenticated state machine
"""

__version__ = "0.1.0"
__all__ = [
    "bip39",
    "hd",
    "address",
    "key_material",
    "vault",
    "storage",
    "auth",
    "background",
    "errors",
    "config",
    "logging_config",
    "cli",
]
