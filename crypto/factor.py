# MIT License © 2025 Motohiro Suzuki
"""
crypto/factor.py

PQ factorization (Pollard-rho, Brent variant) and Miller-Rabin.

The server sends pq as a product of two primes below 2^32; Brent's cycle
search splits it in well under a second. Starting constants are fixed so a
given pq always factors the same way (no RNG draw).
"""

from __future__ import annotations

import math

from protocol.errors import FactorizationError

# First 12 primes: deterministic Miller-Rabin for n < 3.3 * 10^24.
_MR_BASES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37)
_SMALL_PRIMES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41, 43, 47, 53, 59, 61, 67, 71)

MAX_ROUNDS = 64
MAX_STEPS = 1 << 22


def is_probable_prime(n: int, rounds: int = 0) -> bool:
    """
    Miller-Rabin. `rounds` extra odd bases (41, 43, ... beyond the fixed set)
    are only needed for large n (DH prime checks).
    """
    if n < 2:
        return False
    for sp in _SMALL_PRIMES:
        if n == sp:
            return True
        if n % sp == 0:
            return False

    d = n - 1
    s = 0
    while d % 2 == 0:
        d //= 2
        s += 1

    bases = list(_MR_BASES)
    extra = 41
    for _ in range(max(0, int(rounds))):
        bases.append(extra)
        extra += 2

    for a in bases:
        a %= n
        if a in (0, 1, n - 1):
            continue
        x = pow(a, d, n)
        if x in (1, n - 1):
            continue
        for _ in range(s - 1):
            x = x * x % n
            if x == n - 1:
                break
        else:
            return False
    return True


def _brent(n: int, c: int, y: int, m: int = 128) -> int:
    g = r = q = 1
    x = ys = y
    steps = 0
    while g == 1:
        x = y
        for _ in range(r):
            y = (y * y + c) % n
        k = 0
        while k < r and g == 1:
            ys = y
            for _ in range(min(m, r - k)):
                y = (y * y + c) % n
                q = q * abs(x - y) % n
            g = math.gcd(q, n)
            k += m
        r *= 2
        steps += r
        if steps > MAX_STEPS:
            return n
    if g == n:
        # backtrack one step at a time from the last saved point
        while True:
            ys = (ys * ys + c) % n
            g = math.gcd(abs(x - ys), n)
            if g > 1:
                break
    return g


def factorize_pq(pq: int) -> tuple[int, int]:
    """
    Split pq into (p, q) with p < q, both > 1.
    Raises FactorizationError when pq is prime, too small, or no split
    was found within the round budget.
    """
    n = int(pq)
    if n < 4:
        raise FactorizationError(f"pq too small: {n}")
    if n % 2 == 0:
        p, q = 2, n // 2
        return (p, q) if p < q else (q, p)
    if is_probable_prime(n):
        raise FactorizationError("pq is prime")

    for i in range(MAX_ROUNDS):
        c = 1 + i
        y = 2 + 3 * i
        g = _brent(n, c, y)
        if 1 < g < n:
            p, q = g, n // g
            return (p, q) if p < q else (q, p)
    raise FactorizationError("no factor found")


def int_to_be(x: int) -> bytes:
    """Minimal big-endian encoding (TL 'bytes' form of p / q)."""
    if x < 0:
        raise ValueError("negative integer")
    if x == 0:
        return b"\x00"
    return x.to_bytes((x.bit_length() + 7) // 8, "big")
