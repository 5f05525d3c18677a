# MIT License © 2025 Motohiro Suzuki
"""
crypto/rng.py

Randomness source for the handshake.

Every random draw (nonce, new_nonce, RSA padding keys, DH exponent,
padding bytes) goes through a RandomSource so tests can inject a seeded one.
"""

from __future__ import annotations

import random
import secrets
from typing import Protocol


class RandomSource(Protocol):
    def token_bytes(self, n: int) -> bytes:
        ...


class SystemRandomSource:
    """OS CSPRNG (default)."""

    def token_bytes(self, n: int) -> bytes:
        return secrets.token_bytes(int(n))


class SeededRandomSource:
    """
    Deterministic source. NOT secure: tests and reproducible demos only.
    """

    def __init__(self, seed: int) -> None:
        self._r = random.Random(seed)

    def token_bytes(self, n: int) -> bytes:
        return self._r.randbytes(int(n))


class ScriptedRandomSource:
    """
    Returns pre-recorded chunks in order, then falls back to `rest`.
    Used to pin specific draws (e.g. a DH exponent) in tests.
    """

    def __init__(self, chunks: list[bytes], rest: RandomSource | None = None) -> None:
        self._chunks = list(chunks)
        self._rest = rest if rest is not None else SystemRandomSource()

    def token_bytes(self, n: int) -> bytes:
        if self._chunks:
            c = self._chunks.pop(0)
            if len(c) != n:
                raise ValueError(f"scripted chunk has {len(c)} bytes, caller wants {n}")
            return c
        return self._rest.token_bytes(n)


def default_rng() -> RandomSource:
    return SystemRandomSource()
