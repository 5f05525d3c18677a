# MIT License © 2025 Motohiro Suzuki
"""
crypto/zeroize.py

Best-effort wiping of handshake secrets.

Python 'bytes' are immutable, so only mutable buffers can be cleared in
place. Secrets that live across handshake steps (new_nonce, tmp AES key,
RSA padding scratch) are kept in bytearray / SecretBox and wiped on
completion, failure or abort.
"""

from __future__ import annotations


def wipe(buf: bytearray | memoryview | None) -> None:
    """Zero a mutable buffer in place. Never raises."""
    if buf is None:
        return
    if isinstance(buf, memoryview):
        if buf.readonly:
            return
        buf[:] = b"\x00" * len(buf)
        return
    if isinstance(buf, bytearray):
        for i in range(len(buf)):
            buf[i] = 0


class SecretBox:
    """
    Wipeable holder for a fixed secret (e.g. new_nonce).

    bytes() hands out an immutable copy; the box itself is the only
    long-lived reference and is cleared by wipe().
    """
    __slots__ = ("_buf", "_wiped")

    def __init__(self, data: bytes | bytearray) -> None:
        self._buf = bytearray(data)
        self._wiped = False

    def bytes(self) -> bytes:
        if self._wiped:
            raise ValueError("secret already wiped")
        return bytes(self._buf)

    @property
    def wiped(self) -> bool:
        return self._wiped

    def wipe(self) -> None:
        wipe(self._buf)
        self._wiped = True

    def __len__(self) -> int:
        return len(self._buf)

    def __repr__(self) -> str:
        return f"SecretBox(<{len(self._buf)} bytes{', wiped' if self._wiped else ''}>)"
