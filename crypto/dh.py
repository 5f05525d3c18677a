# MIT License © 2025 Motohiro Suzuki
"""
crypto/dh.py

Client side of the MTProto DH exchange:
- check_dh_params(): g / dh_prime / g_a validation (all violations reported)
- check_safe_prime(): optional primality proof for unknown primes
- compute_dh_key(): exponent draw, g_b, auth_key

Range rule for every public value x (g_a and g_b):
    2^(2048-64) <= x <= dh_prime - 2^(2048-64)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from crypto.factor import is_probable_prime
from crypto.rng import RandomSource
from protocol.errors import DhValidationError

logger = logging.getLogger(__name__)

DH_PRIME_BITS = 2048
AUTH_KEY_SIZE = 256
RANGE_BOUND = 1 << (DH_PRIME_BITS - 64)
DEFAULT_MAX_DRAWS = 64

# RFC 3526 group 14 (2048-bit MODP); p mod 8 == 7, valid for g = 2.
RFC3526_PRIME_2048 = int(
    "FFFFFFFFFFFFFFFFC90FDAA22168C234C4C6628B80DC1CD129024E088A67CC74"
    "020BBEA63B139B22514A08798E3404DDEF9519B3CD3A431B302B0A6DF25F1437"
    "4FE1356D6D51C245E485B576625E7EC6F44C42E9A637ED6B0BFF5CB6F406B7ED"
    "EE386BFB5A899FA5AE9F24117C4B1FE649286651ECE45B3DC2007CB8A163BF05"
    "98DA48361C55D39A69163FA8FD24CF5F83655D23DCA3AD961C62F356208552BB"
    "9ED529077096966D670C354E4ABC9804F1746C08CA18217C32905E462E36CE3B"
    "E39E772C180E86039B2783A2EC07A28FB5C55DF06F4C52C9DE2BCBF695581718"
    "3995497CEA956AE515D2261898FA051015728E5A8AACAA68FFFFFFFFFFFFFFFF",
    16,
)

# Prime Telegram servers have used with g = 3.
TELEGRAM_PRIME_C7 = int(
    "C71CAEB9C6B1C9048E6C522F70F13F73980D40238E3E21C14934D037563D930F"
    "48198A0AA7C14058229493D22530F4DBFA336F6E0AC925139543AED44CCE7C37"
    "20FD51F69458705AC68CD4FE6B6B13ABDC9746512969328454F18FAF8C595F64"
    "2477FE96BB2A941D5BCD1D4AC8CC49880708FA9B378E3C4F3A9060BEE67CF9A4"
    "A4A695811051907E162753B56B0F6B410DBA74D8A84B2A14B3144E0EF1284754"
    "FD17ED950D5965B4B9DD46582DB1178D169C6BC465B0D6FF9CA3928FEF5B9AE4"
    "E418FC15E83EBEA0F87FA9FF5EED70050DED2849F47BF959D956850CE929851F"
    "0D8115F635B105EE2E4E15D04B2454BF6F4FADF034B10403119CD8E3B92FCC5B",
    16,
)

KNOWN_GOOD_PRIMES = frozenset({RFC3526_PRIME_2048, TELEGRAM_PRIME_C7})


@dataclass(frozen=True)
class DhKeyPair:
    g_b: bytes
    auth_key: bytes

    def __repr__(self) -> str:
        return f"DhKeyPair(g_b=<{len(self.g_b)} bytes>, auth_key=<redacted>)"


def _residue_ok(g: int, p: int) -> bool:
    if g == 2:
        return p % 8 == 7
    if g == 3:
        return p % 3 == 2
    if g == 4:
        return True
    if g == 5:
        return p % 5 in (1, 4)
    if g == 6:
        return p % 24 in (19, 23)
    if g == 7:
        return p % 7 in (3, 5, 6)
    return False


def in_dh_range(x: int, dh_prime: int) -> bool:
    return x >= RANGE_BOUND and dh_prime - x >= RANGE_BOUND


def check_dh_params(g: int, dh_prime: int, ga_bytes: bytes) -> None:
    """
    Validate server DH parameters. Every failing check is collected and
    reported together in one DhValidationError.
    """
    violations: list[str] = []

    g_ok = 2 <= g <= 7
    if not g_ok:
        violations.append(f"generator {g} not in 2..7")

    bits = dh_prime.bit_length()
    if bits != DH_PRIME_BITS:
        violations.append(f"dh_prime has {bits} bits, want {DH_PRIME_BITS}")

    if not 1 <= len(ga_bytes) <= AUTH_KEY_SIZE:
        violations.append(f"g_a length {len(ga_bytes)} not in 1..{AUTH_KEY_SIZE}")

    if g_ok and not _residue_ok(g, dh_prime):
        violations.append(f"dh_prime residue invalid for g={g}")

    ga = int.from_bytes(ga_bytes, "big")
    if ga < RANGE_BOUND:
        violations.append("g_a below 2^1984")
    if dh_prime - ga < RANGE_BOUND:
        violations.append("g_a above dh_prime - 2^1984")

    if violations:
        raise DhValidationError(violations)


def check_safe_prime(dh_prime: int, rounds: int = 8) -> None:
    """dh_prime and (dh_prime - 1) / 2 must both be prime."""
    if dh_prime in KNOWN_GOOD_PRIMES:
        return
    logger.info("[dh] unknown dh_prime, running primality checks")
    if not is_probable_prime(dh_prime, rounds):
        raise DhValidationError("dh_prime is not prime")
    if not is_probable_prime((dh_prime - 1) // 2, rounds):
        raise DhValidationError("(dh_prime - 1) / 2 is not prime")


def dh_public(g: int, x: int, p: int) -> int:
    return pow(g, x, p)


def dh_shared(peer: int, x: int, p: int) -> int:
    return pow(peer, x, p)


def _draw_exponent(p: int, rng: RandomSource, max_draws: int) -> int:
    nbytes = (p.bit_length() + 7) // 8
    mask = (1 << p.bit_length()) - 1
    for _ in range(int(max_draws)):
        b = int.from_bytes(rng.token_bytes(nbytes), "big") & mask
        if 1 < b < p - 1:
            return b
    raise DhValidationError(f"no valid exponent after {max_draws} draws")


def compute_dh_key(
    g: int,
    dh_prime: int,
    ga: int,
    rng: RandomSource,
    max_draws: int = DEFAULT_MAX_DRAWS,
) -> DhKeyPair:
    """
    Draw b, compute g_b = g^b and auth_key = g_a^b (mod dh_prime).
    A g_b outside the safe range triggers one resample; a second miss fails.
    Note: Python's pow() is not constant-time.
    """
    for draw in range(2):
        b = _draw_exponent(dh_prime, rng, max_draws)
        gb = dh_public(g, b, dh_prime)
        if in_dh_range(gb, dh_prime):
            auth = dh_shared(ga, b, dh_prime)
            return DhKeyPair(
                g_b=gb.to_bytes((gb.bit_length() + 7) // 8, "big"),
                auth_key=auth.to_bytes(AUTH_KEY_SIZE, "big"),
            )
        logger.debug("[dh] g_b out of range (draw %d)", draw + 1)
    raise DhValidationError("g_b out of range after resample")
