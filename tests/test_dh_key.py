# MIT License © 2025 Motohiro Suzuki
import pytest

from crypto.dh import RFC3526_PRIME_2048, compute_dh_key, dh_public, dh_shared, in_dh_range
from crypto.rng import ScriptedRandomSource, SeededRandomSource
from protocol.errors import DhValidationError

P = RFC3526_PRIME_2048


def _b(x: int) -> bytes:
    return x.to_bytes(256, "big")


def test_small_prime_key_agreement():
    p, g = 23, 5
    a, b = 6, 15
    A, B = dh_public(g, a, p), dh_public(g, b, p)
    assert (A, B) == (8, 19)
    assert dh_shared(B, a, p) == dh_shared(A, b, p) == 2


def test_compute_dh_key_matches_server_side():
    a = int.from_bytes(SeededRandomSource(11).token_bytes(256), "big") % (P - 3) + 2
    ga = pow(2, a, P)
    pair = compute_dh_key(2, P, ga, SeededRandomSource(12))
    assert len(pair.auth_key) == 256
    gb = int.from_bytes(pair.g_b, "big")
    assert in_dh_range(gb, P)
    assert pow(gb, a, P).to_bytes(256, "big") == pair.auth_key


def test_out_of_range_gb_is_resampled_once():
    ga = pow(2, 12345, P)
    rng = ScriptedRandomSource([_b(2)], rest=SeededRandomSource(13))  # g^2 = 4 is far below 2^1984
    pair = compute_dh_key(2, P, ga, rng)
    assert in_dh_range(int.from_bytes(pair.g_b, "big"), P)


def test_second_out_of_range_gb_fails():
    rng = ScriptedRandomSource([_b(2), _b(3)])
    with pytest.raises(DhValidationError):
        compute_dh_key(2, P, pow(2, 999, P), rng)


def test_exponent_draws_are_bounded():
    rng = ScriptedRandomSource([_b(0)] * 4 + [_b(1)] * 4)
    with pytest.raises(DhValidationError):
        compute_dh_key(2, P, pow(2, 999, P), rng, max_draws=8)


def test_key_pair_repr_hides_key():
    pair = compute_dh_key(2, P, pow(2, 4321, P), SeededRandomSource(1))
    assert "redacted" in repr(pair)
    assert pair.auth_key.hex() not in repr(pair)
