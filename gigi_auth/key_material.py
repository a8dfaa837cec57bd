"""
Scoped holder for password-derived key material.

``SecretBuffer`` keeps secret bytes in a mutable ``bytearray`` and overwrites
them with zeros when the ``with`` block exits, whether it exits normally or
through an exception.  Python ``str`` / ``bytes`` objects are immutable and
cannot be wiped, so this is best-effort: callers should keep secrets inside
a buffer for as long as possible and convert to immutable types only at the
last moment.
"""

from __future__ import annotations

from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]


def wipe(buf: bytearray) -> None:
    """Overwrite *buf* in place with zeros."""
    for i in range(len(buf)):
        buf[i] = 0


class SecretBuffer:
    """A zero-on-exit ``bytearray`` wrapper."""

    __slots__ = ("_buf", "_closed")

    def __init__(self, data: BytesLike | str = b""):
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._buf = bytearray(data)
        self._closed = False

    @classmethod
    def adopt(cls, buf: bytearray) -> SecretBuffer:
        """Wrap *buf* without copying; it will be wiped on close."""
        sb = cls()
        sb._buf = buf
        return sb

    @property
    def value(self) -> bytearray:
        if self._closed:
            raise ValueError("SecretBuffer already wiped")
        return self._buf

    def view(self) -> memoryview:
        return memoryview(self.value)

    def close(self) -> None:
        if not self._closed:
            wipe(self._buf)
            self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._buf)

    def __enter__(self) -> SecretBuffer:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "wiped" if self._closed else f"{len(self._buf)} bytes"
        return f"SecretBuffer(<{state}>)"
