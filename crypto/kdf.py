# MIT License © 2025 Motohiro Suzuki
"""
crypto/kdf.py

Key derivations used by the auth-key handshake (SHA-1 based, MTProto 2.0):

  tmp_aes_key = SHA1(new_nonce||server_nonce) || SHA1(server_nonce||new_nonce)[0:12]
  tmp_aes_iv  = SHA1(server_nonce||new_nonce)[12:20] || SHA1(new_nonce||new_nonce) || new_nonce[0:4]

  new_nonce_hashN = SHA1(new_nonce || N || SHA1(auth_key)[0:8])[4:20]   N = 1 ok / 2 retry / 3 fail
  server_salt     = low64(new_nonce) XOR low64(server_nonce)            (little-endian)
  auth_key_id     = SHA1(auth_key)[12:20]
"""

from __future__ import annotations

import hashlib

NNH_OK = 1
NNH_RETRY = 2
NNH_FAIL = 3


def sha1(b: bytes) -> bytes:
    return hashlib.sha1(b).digest()


def sha256(b: bytes) -> bytes:
    return hashlib.sha256(b).digest()


def tmp_aes_key_iv(new_nonce: bytes, server_nonce: bytes) -> tuple[bytes, bytes]:
    if len(new_nonce) != 32:
        raise ValueError("new_nonce must be 32 bytes")
    if len(server_nonce) != 16:
        raise ValueError("server_nonce must be 16 bytes")

    ns = sha1(new_nonce + server_nonce)
    sn = sha1(server_nonce + new_nonce)
    nn = sha1(new_nonce + new_nonce)
    key = ns + sn[:12]
    iv = sn[12:20] + nn + new_nonce[:4]
    return key, iv


def new_nonce_hash(new_nonce: bytes, auth_key: bytes, marker: int) -> bytes:
    if marker not in (NNH_OK, NNH_RETRY, NNH_FAIL):
        raise ValueError("marker must be 1, 2 or 3")
    aux = sha1(auth_key)[:8]
    return sha1(new_nonce + bytes([marker]) + aux)[4:20]


def server_salt(new_nonce: bytes, server_nonce: bytes) -> int:
    a = int.from_bytes(new_nonce[:8], "little", signed=False)
    b = int.from_bytes(server_nonce[:8], "little", signed=False)
    return a ^ b


def auth_key_id(auth_key: bytes) -> int:
    return int.from_bytes(sha1(auth_key)[-8:], "little", signed=False)
