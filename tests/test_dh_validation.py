# MIT License © 2025 Motohiro Suzuki
import pytest

from crypto.dh import (
    RANGE_BOUND,
    RFC3526_PRIME_2048,
    TELEGRAM_PRIME_C7,
    check_dh_params,
    check_safe_prime,
    in_dh_range,
)
from protocol.errors import DhValidationError

GA_OK = (1 << 2000).to_bytes(256, "big")


def _prime_like(mod: int, residue: int) -> int:
    """2048-bit value with value % mod == residue (primality irrelevant here)."""
    base = 1 << 2047
    return base + ((residue - base) % mod)


def _be(x: int) -> bytes:
    return x.to_bytes((x.bit_length() + 7) // 8, "big")


@pytest.mark.parametrize(
    "g,mod,good,bad",
    [
        (2, 8, [7], [1, 3, 5]),
        (3, 3, [2], [1]),
        (5, 5, [1, 4], [2, 3]),
        (6, 24, [19, 23], [1, 5, 7, 11]),
        (7, 7, [3, 5, 6], [1, 2, 4]),
    ],
)
def test_generator_residue_grid(g, mod, good, bad):
    for r in good:
        check_dh_params(g, _prime_like(mod, r), GA_OK)
    for r in bad:
        with pytest.raises(DhValidationError):
            check_dh_params(g, _prime_like(mod, r), GA_OK)


def test_generator_four_has_no_residue_condition():
    for r in range(8):
        check_dh_params(4, _prime_like(8, r), GA_OK)


@pytest.mark.parametrize("g", [0, 1, 8, 255])
def test_generator_out_of_range(g):
    with pytest.raises(DhValidationError) as ei:
        check_dh_params(g, RFC3526_PRIME_2048, GA_OK)
    assert any("generator" in v for v in ei.value.violations)


def test_known_primes_pass():
    check_dh_params(2, RFC3526_PRIME_2048, GA_OK)
    check_dh_params(3, TELEGRAM_PRIME_C7, GA_OK)


def test_prime_size_must_be_2048():
    with pytest.raises(DhValidationError):
        check_dh_params(4, (1 << 2046) + 1, GA_OK)
    with pytest.raises(DhValidationError):
        check_dh_params(4, (1 << 2048) + 1, GA_OK)


def test_range_edges_are_inclusive():
    p = RFC3526_PRIME_2048
    check_dh_params(2, p, _be(RANGE_BOUND))
    check_dh_params(2, p, _be(p - RANGE_BOUND))
    with pytest.raises(DhValidationError):
        check_dh_params(2, p, _be(RANGE_BOUND - 1))
    with pytest.raises(DhValidationError):
        check_dh_params(2, p, _be(p - RANGE_BOUND + 1))
    assert in_dh_range(RANGE_BOUND, p)
    assert not in_dh_range(p - RANGE_BOUND + 1, p)


@pytest.mark.parametrize("ga", [b"", b"\x01" * 257])
def test_ga_length(ga):
    with pytest.raises(DhValidationError):
        check_dh_params(2, RFC3526_PRIME_2048, ga)


def test_all_violations_are_reported():
    with pytest.raises(DhValidationError) as ei:
        check_dh_params(9, (1 << 1023) + 1, b"")
    v = ei.value.violations
    assert any("generator" in s for s in v)
    assert any("bits" in s for s in v)
    assert any("length" in s for s in v)
    assert any("below" in s for s in v)


def test_safe_prime_check():
    check_safe_prime(RFC3526_PRIME_2048)
    check_safe_prime(TELEGRAM_PRIME_C7)
    with pytest.raises(DhValidationError):
        check_safe_prime(3 * ((1 << 2046) + 1))
