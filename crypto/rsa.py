# MIT License © 2025 Motohiro Suzuki
"""
crypto/rsa.py

RSA_PAD encryption of p_q_inner_data (MTProto 2.0).

  data_with_padding = inner_data || random  (192 bytes)
  repeat (bounded):
      temp_key       = random 32 bytes
      data_with_hash = reverse(data_with_padding) || SHA256(temp_key || data_with_padding)
      aes_encrypted  = AES256-IGE(data_with_hash, temp_key, iv=0^32)
      temp_key_xor   = temp_key XOR SHA256(aes_encrypted)
      key_aes        = temp_key_xor || aes_encrypted      (256 bytes)
      retry while int(key_aes) >= n
  encrypted_data = key_aes ^ e mod n                      (256 bytes big-endian)
"""

from __future__ import annotations

import logging

from crypto.aes_ige import ige_encrypt
from crypto.kdf import sha256
from crypto.rng import RandomSource
from crypto.zeroize import wipe
from protocol.errors import RsaEncryptionError

logger = logging.getLogger(__name__)

MAX_INNER_DATA_SIZE = 144
PADDED_SIZE = 192
RSA_BYTES = 256
DEFAULT_MAX_ATTEMPTS = 10

_ZERO_IV = b"\x00" * 32


def encrypt_raw(block: bytes, n: int, e: int) -> bytes:
    """
    Textbook RSA over a 256-byte block (big-endian). The block must encode
    an integer < n; otherwise RsaEncryptionError.
    """
    if len(block) != RSA_BYTES:
        raise RsaEncryptionError(f"RSA block must be {RSA_BYTES} bytes")
    m = int.from_bytes(block, "big")
    if m >= n:
        raise RsaEncryptionError("RSA block >= modulus")
    return pow(m, e, n).to_bytes(RSA_BYTES, "big")


def rsa_pad_encrypt(
    inner_data: bytes,
    n: int,
    e: int,
    rng: RandomSource,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> bytes:
    if n.bit_length() != 2048:
        raise RsaEncryptionError(f"RSA key must be 2048-bit, got {n.bit_length()}")
    if len(inner_data) > MAX_INNER_DATA_SIZE:
        raise RsaEncryptionError(
            f"inner data too large: {len(inner_data)} > {MAX_INNER_DATA_SIZE}"
        )

    padded = bytearray(inner_data)
    padded += rng.token_bytes(PADDED_SIZE - len(inner_data))
    reversed_padded = bytes(reversed(padded))

    try:
        for attempt in range(1, int(max_attempts) + 1):
            temp_key = bytearray(rng.token_bytes(32))
            data_with_hash = reversed_padded + sha256(bytes(temp_key) + bytes(padded))
            aes_encrypted = ige_encrypt(data_with_hash, bytes(temp_key), _ZERO_IV)
            digest = sha256(aes_encrypted)
            key_aes = bytes(a ^ b for a, b in zip(temp_key, digest)) + aes_encrypted
            wipe(temp_key)
            try:
                return encrypt_raw(key_aes, n, e)
            except RsaEncryptionError:
                logger.debug("[rsa] attempt=%d block >= modulus, retrying", attempt)
                continue
    finally:
        wipe(padded)

    raise RsaEncryptionError(f"RSA_PAD failed after {max_attempts} attempts")
