# MIT License © 2025 Motohiro Suzuki
import pytest

import crypto.rsa as rsa_mod
from crypto.aes_ige import ige_decrypt
from crypto.kdf import sha256
from crypto.rng import SeededRandomSource
from crypto.rsa import encrypt_raw, rsa_pad_encrypt
from protocol.errors import RsaEncryptionError


def _unpad(private_key, ct: bytes) -> bytes:
    nums = private_key.private_numbers()
    m = pow(int.from_bytes(ct, "big"), nums.d, nums.public_numbers.n).to_bytes(256, "big")
    key_xor, aes_encrypted = m[:32], m[32:]
    temp_key = bytes(a ^ b for a, b in zip(key_xor, sha256(aes_encrypted)))
    dwh = ige_decrypt(aes_encrypted, temp_key, b"\x00" * 32)
    padded = dwh[:192][::-1]
    assert dwh[192:] == sha256(temp_key + padded)
    return padded


def test_round_trip_through_private_key(rsa_private_key):
    pub = rsa_private_key.public_key().public_numbers()
    inner = b"inner-data" * 10
    ct = rsa_pad_encrypt(inner, pub.n, pub.e, SeededRandomSource(1))
    assert len(ct) == 256
    padded = _unpad(rsa_private_key, ct)
    assert len(padded) == 192
    assert padded[: len(inner)] == inner


def test_inner_data_limit(rsa_private_key):
    pub = rsa_private_key.public_key().public_numbers()
    rsa_pad_encrypt(b"\x00" * 144, pub.n, pub.e, SeededRandomSource(1))
    with pytest.raises(RsaEncryptionError):
        rsa_pad_encrypt(b"\x00" * 145, pub.n, pub.e, SeededRandomSource(1))


def test_encrypt_raw_rejects_block_above_modulus(rsa_private_key):
    n = rsa_private_key.public_key().public_numbers().n
    with pytest.raises(RsaEncryptionError):
        encrypt_raw(b"\xff" * 256, n, 65537)


def test_gives_up_after_bounded_attempts(rsa_private_key, monkeypatch):
    pub = rsa_private_key.public_key().public_numbers()
    calls = []

    def always_too_big(block, n, e):
        calls.append(block)
        raise RsaEncryptionError("RSA block >= modulus")

    monkeypatch.setattr(rsa_mod, "encrypt_raw", always_too_big)
    with pytest.raises(RsaEncryptionError):
        rsa_pad_encrypt(b"x" * 32, pub.n, pub.e, SeededRandomSource(3))
    assert len(calls) == 10
    assert len(set(calls)) == 10  # fresh temp key every attempt


def test_retries_then_succeeds(rsa_private_key, monkeypatch):
    pub = rsa_private_key.public_key().public_numbers()
    real = rsa_mod.encrypt_raw
    calls = []

    def fail_twice(block, n, e):
        calls.append(block)
        if len(calls) <= 2:
            raise RsaEncryptionError("RSA block >= modulus")
        return real(block, n, e)

    monkeypatch.setattr(rsa_mod, "encrypt_raw", fail_twice)
    ct = rsa_pad_encrypt(b"y" * 40, pub.n, pub.e, SeededRandomSource(5))
    assert len(calls) == 3
    assert _unpad(rsa_private_key, ct)[:40] == b"y" * 40


def test_rejects_non_2048_bit_key():
    with pytest.raises(RsaEncryptionError):
        rsa_pad_encrypt(b"x", (1 << 1023) + 1, 65537, SeededRandomSource(1))
