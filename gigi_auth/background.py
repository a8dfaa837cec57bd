"""
asyncio façade over ``AuthManager``.

Argon2id and PBKDF2 take long enough to stall an event loop, so every call
is pushed onto a single worker thread with ``loop.run_in_executor``.  One
worker keeps the state machine single-threaded: calls run in the order
they were awaited and a caller gets back exactly one result or one
exception.

Usage:
    manager = AsyncAuthManager(AuthManager(AccountStore(kv)))
    await manager.init()
    address = await manager.signup(phrase, password)
    await manager.unlock(password)
    await manager.close()
"""

from __future__ import annotations

import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, TypeVar

from gigi_auth.address import derive_address
from gigi_auth.auth import AccountInfo, AuthManager, AuthStatus
from gigi_auth.bip39 import MnemonicLike, generate_mnemonic

logger = logging.getLogger("gigi_background")

T = TypeVar("T")


class AsyncAuthManager:
    """Awaitable wrapper; the wrapped manager is only touched from the worker thread."""

    def __init__(self, manager: AuthManager, executor: ThreadPoolExecutor | None = None):
        self.manager = manager
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="gigi-auth",
        )

    async def _run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor, functools.partial(fn, *args, **kwargs),
        )

    @property
    def status(self) -> AuthStatus:
        return self.manager.status

    @property
    def last_error(self) -> str | None:
        return self.manager.session.last_error

    async def init(self) -> AuthStatus:
        return await self._run(self.manager.init)

    async def signup(self, mnemonic: MnemonicLike, password: str | bytes,
                     name: str | None = None) -> str:
        return await self._run(self.manager.signup, mnemonic, password, name)

    async def unlock(self, password: str | bytes) -> AuthStatus:
        return await self._run(self.manager.unlock, password)

    async def lock(self) -> AuthStatus:
        return await self._run(self.manager.lock)

    async def reset(self) -> AuthStatus:
        return await self._run(self.manager.reset)

    async def change_password(self, old_password: str | bytes,
                              new_password: str | bytes) -> None:
        await self._run(self.manager.change_password, old_password, new_password)

    async def verify_password(self, password: str | bytes) -> bool:
        return await self._run(self.manager.verify_password, password)

    async def rename(self, name: str) -> AccountInfo:
        return await self._run(self.manager.rename, name)

    async def derive_address(self, mnemonic: MnemonicLike) -> str:
        return await self._run(derive_address, mnemonic)

    async def generate_mnemonic(self, strength: int = 128) -> str:
        return await self._run(generate_mnemonic, strength)

    async def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)
            logger.debug("Auth worker stopped")

    async def __aenter__(self) -> AsyncAuthManager:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()
