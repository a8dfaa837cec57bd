"""
Command-line front-end for the local account.

    gigi-auth status
    gigi-auth generate [--words 12|24]
    gigi-auth address <word> <word> ...
    gigi-auth signup [--name NAME] [--mnemonic "PHRASE"]
    gigi-auth unlock
    gigi-auth change-password
    gigi-auth rename <name>
    gigi-auth reset --yes

Passwords are always read with ``getpass``; they are never accepted as
arguments.  Every ``AuthError`` is reported on stderr with exit code 1.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import getpass
import logging
import sys

from gigi_auth.auth import AuthManager, AuthStatus
from gigi_auth.background import AsyncAuthManager
from gigi_auth.config import GigiConfig, load_config, open_account_store
from gigi_auth.errors import AuthError
from gigi_auth.logging_config import setup_logging
from gigi_auth.vault import VaultCipher

logger = logging.getLogger("gigi_cli")

WORDS_TO_STRENGTH = {12: 128, 24: 256}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="gigi-auth", description="Local mnemonic account manager")
    p.add_argument("--config", default=None, help="Path to gigi.toml config file")
    p.add_argument("--db", default=None, help="SQLite database path (overrides config)")
    p.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    p.add_argument("--log-format", default=None, choices=["human", "json"])

    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Show account status")

    gen = sub.add_parser("generate", help="Print a fresh recovery phrase")
    gen.add_argument("--words", type=int, choices=sorted(WORDS_TO_STRENGTH), default=12)

    addr = sub.add_parser("address", help="Derive the address of a phrase")
    addr.add_argument("words", nargs="+")

    signup = sub.add_parser("signup", help="Create the account")
    signup.add_argument("--name", default=None)
    signup.add_argument("--mnemonic", default=None,
                        help="Import this phrase instead of generating one")

    sub.add_parser("unlock", help="Check the password against the stored vault")
    sub.add_parser("change-password", help="Re-encrypt the vault under a new password")

    rename = sub.add_parser("rename", help="Change the display name")
    rename.add_argument("name")

    reset = sub.add_parser("reset", help="Delete the account (irreversible)")
    reset.add_argument("--yes", action="store_true", help="Confirm deletion")
    return p


def _read_new_password() -> str:
    password = getpass.getpass("New password: ")
    if not password:
        raise ValueError("Password must not be empty")
    if getpass.getpass("Repeat password: ") != password:
        raise ValueError("Passwords do not match")
    return password


async def _dispatch(args: argparse.Namespace, manager: AsyncAuthManager) -> int:
    cmd = args.command

    if cmd == "generate":
        print(await manager.generate_mnemonic(WORDS_TO_STRENGTH[args.words]))
        return 0
    if cmd == "address":
        print(await manager.derive_address(args.words))
        return 0

    status = await manager.init()

    if cmd == "status":
        session = manager.manager.session
        print(f"status:  {status.value}")
        if session.address:
            print(f"address: {session.address}")
            print(f"name:    {session.name}")
        return 0

    if cmd == "signup":
        phrase = args.mnemonic
        if phrase is None:
            phrase = await manager.generate_mnemonic()
            print("Recovery phrase (write it down, it is shown only once):")
            print(f"  {phrase}")
        password = _read_new_password()
        address = await manager.signup(phrase, password, args.name)
        print(f"Account created: {address}")
        return 0

    if cmd == "unlock":
        status = await manager.unlock(getpass.getpass("Password: "))
        if status is not AuthStatus.AUTHENTICATED:
            print(manager.last_error, file=sys.stderr)
            return 1
        print(f"Unlocked {manager.manager.session.address}")
        return 0

    if cmd == "change-password":
        old = getpass.getpass("Current password: ")
        new = _read_new_password()
        await manager.change_password(old, new)
        print("Password changed")
        return 0

    if cmd == "rename":
        info = await manager.rename(args.name)
        print(f"Renamed to {info.name}")
        return 0

    if cmd == "reset":
        if not args.yes:
            print("Refusing to delete the account without --yes", file=sys.stderr)
            return 1
        await manager.reset()
        print("Account deleted")
        return 0

    raise ValueError(f"Unknown command: {cmd}")


def _apply_overrides(cfg: GigiConfig, args: argparse.Namespace) -> None:
    if args.db:
        cfg.storage.path = args.db
        cfg.storage.backend = "sqlite"
    if args.log_level:
        cfg.logging.level = args.log_level.upper()
    if args.log_format:
        cfg.logging.format = args.log_format


async def run(args: argparse.Namespace, cfg: GigiConfig) -> int:
    logger.debug(f"Running '{args.command}' on {cfg.storage.backend} storage")
    accounts = open_account_store(cfg.storage)
    manager = AuthManager(
        accounts,
        cipher=VaultCipher(cfg.vault.kdf_params()),
        default_name=cfg.account.default_name,
    )
    try:
        async with AsyncAuthManager(manager) as am:
            return await _dispatch(args, am)
    finally:
        close = getattr(accounts.store, "close", None)
        if close is not None:
            close()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    cfg = load_config(args.config)
    _apply_overrides(cfg, args)
    setup_logging(level=cfg.logging.level, fmt=cfg.logging.format, log_file=cfg.logging.file)

    try:
        return asyncio.run(run(args, cfg))
    except (AuthError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def main_sync() -> None:
    """Synchronous entry point for console_scripts."""
    with contextlib.suppress(KeyboardInterrupt):
        sys.exit(main())
