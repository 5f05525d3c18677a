# MIT License © 2025 Motohiro Suzuki
"""
protocol/inner_data.py

resPQ -> req_DH_params.

Factorizes pq, builds p_q_inner_data_dc / p_q_inner_data_temp_dc and wraps
it with RSA_PAD under the server key the client holds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from crypto.factor import factorize_pq, int_to_be
from crypto.rng import RandomSource
from crypto.rsa import MAX_INNER_DATA_SIZE, rsa_pad_encrypt
from keys.rsa_keys import RsaPublicKey
from protocol.dc import DcId
from protocol.errors import RsaEncryptionError
from protocol.handshake_types import HandshakeMode
from protocol.messages import PQInnerData, ReqDHParams, ResPQ

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PQSplit:
    p: int
    q: int


def split_pq(res_pq: ResPQ) -> PQSplit:
    p, q = factorize_pq(res_pq.pq_int)
    return PQSplit(p=p, q=q)


def build_inner_data(
    res_pq: ResPQ,
    split: PQSplit,
    new_nonce: bytes,
    dc_id: DcId,
    mode: HandshakeMode,
) -> bytes:
    inner = PQInnerData(
        pq=res_pq.pq,
        p=int_to_be(split.p),
        q=int_to_be(split.q),
        nonce=res_pq.nonce,
        server_nonce=res_pq.server_nonce,
        new_nonce=new_nonce,
        dc=dc_id.wire_value(),
        expires_in=mode.expires_in if mode.temp else None,
    ).to_bytes()
    if len(inner) > MAX_INNER_DATA_SIZE:
        raise RsaEncryptionError(f"p_q_inner_data is {len(inner)} bytes (max {MAX_INNER_DATA_SIZE})")
    return inner


def encode_req_dh_params(
    res_pq: ResPQ,
    new_nonce: bytes,
    dc_id: DcId,
    mode: HandshakeMode,
    key: RsaPublicKey,
    rng: RandomSource,
    rsa_max_attempts: int = 10,
) -> bytes:
    split = split_pq(res_pq)
    logger.debug("[inner_data] pq split ok (%d-bit, %d-bit)", split.p.bit_length(), split.q.bit_length())

    inner = build_inner_data(res_pq, split, new_nonce, dc_id, mode)
    encrypted = rsa_pad_encrypt(inner, key.n, key.e, rng, max_attempts=rsa_max_attempts)

    return ReqDHParams(
        nonce=res_pq.nonce,
        server_nonce=res_pq.server_nonce,
        p=int_to_be(split.p),
        q=int_to_be(split.q),
        fingerprint=key.fingerprint,
        encrypted_data=encrypted,
    ).to_bytes()
