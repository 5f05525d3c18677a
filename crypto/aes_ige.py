# MIT License © 2025 Motohiro Suzuki
"""
crypto/aes_ige.py

AES-256 in IGE mode, built from the AES block cipher of `cryptography`.

IGE with a 32-byte IV split into (iv1, iv2):
  encrypt: c_i = E(p_i ^ c_{i-1}) ^ p_{i-1}     with c_0 = iv1, p_0 = iv2
  decrypt: p_i = D(c_i ^ p_{i-1}) ^ c_{i-1}
Input length must be a multiple of 16.
"""

from __future__ import annotations

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

BLOCK = 16


def _xor(a: bytes, b: bytes) -> bytes:
    return bytes(x ^ y for x, y in zip(a, b))


def _check(key: bytes, iv: bytes, data: bytes) -> None:
    if len(key) != 32:
        raise ValueError("AES-IGE key must be 32 bytes")
    if len(iv) != 32:
        raise ValueError("AES-IGE iv must be 32 bytes")
    if len(data) % BLOCK != 0:
        raise ValueError("AES-IGE data length must be a multiple of 16")


def ige_encrypt(plaintext: bytes, key: bytes, iv: bytes) -> bytes:
    _check(key, iv, plaintext)
    enc = Cipher(algorithms.AES(bytes(key)), modes.ECB()).encryptor()
    prev_c, prev_p = bytes(iv[:BLOCK]), bytes(iv[BLOCK:])
    out = bytearray()
    for i in range(0, len(plaintext), BLOCK):
        p = bytes(plaintext[i:i + BLOCK])
        c = _xor(enc.update(_xor(p, prev_c)), prev_p)
        out += c
        prev_c, prev_p = c, p
    enc.finalize()
    return bytes(out)


def ige_decrypt(ciphertext: bytes, key: bytes, iv: bytes) -> bytes:
    _check(key, iv, ciphertext)
    dec = Cipher(algorithms.AES(bytes(key)), modes.ECB()).decryptor()
    prev_c, prev_p = bytes(iv[:BLOCK]), bytes(iv[BLOCK:])
    out = bytearray()
    for i in range(0, len(ciphertext), BLOCK):
        c = bytes(ciphertext[i:i + BLOCK])
        p = _xor(dec.update(_xor(c, prev_p)), prev_c)
        out += p
        prev_c, prev_p = c, p
    dec.finalize()
    return bytes(out)
