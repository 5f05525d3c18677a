# MIT License © 2025 Motohiro Suzuki
"""
protocol/client_answer.py

g_b -> set_client_DH_params.

encrypted_data = AES256-IGE(tmp_aes_key, tmp_aes_iv) over
    SHA1(client_DH_inner_data) || client_DH_inner_data || random padding (to 16)
"""

from __future__ import annotations

from crypto.aes_ige import ige_encrypt
from crypto.kdf import sha1, tmp_aes_key_iv
from crypto.rng import RandomSource
from protocol.messages import ClientDHInnerData, SetClientDHParams


def encode_set_client_dh_params(
    nonce: bytes,
    server_nonce: bytes,
    new_nonce: bytes,
    g_b: bytes,
    rng: RandomSource,
    retry_id: int = 0,
) -> bytes:
    inner = ClientDHInnerData(
        nonce=nonce,
        server_nonce=server_nonce,
        retry_id=retry_id,
        g_b=g_b,
    ).to_bytes()

    plain = sha1(inner) + inner
    pad = (-len(plain)) % 16
    if pad:
        plain += rng.token_bytes(pad)

    key, iv = tmp_aes_key_iv(new_nonce, server_nonce)
    return SetClientDHParams(
        nonce=nonce,
        server_nonce=server_nonce,
        encrypted_data=ige_encrypt(plain, key, iv),
    ).to_bytes()
