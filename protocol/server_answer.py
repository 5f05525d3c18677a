# MIT License © 2025 Motohiro Suzuki
"""
protocol/server_answer.py

server_DH_params_ok -> server_DH_inner_data.

encrypted_answer = AES256-IGE(tmp_aes_key, tmp_aes_iv) over
    SHA1(server_DH_inner_data) || server_DH_inner_data || padding(0..15)
"""

from __future__ import annotations

import hmac

from crypto.aes_ige import ige_decrypt
from crypto.kdf import sha1, tmp_aes_key_iv
from protocol.errors import (
    DecryptionError,
    HashMismatchError,
    ServerDhParamsFailError,
    TlDecodeError,
)
from protocol.messages import (
    ServerDHInnerData,
    ServerDHParamsFail,
    check_nonces,
    parse_server_dh_params,
)

SHA1_SIZE = 20


def decode_server_dh_params(
    blob: bytes,
    nonce: bytes,
    server_nonce: bytes,
    new_nonce: bytes,
) -> ServerDHInnerData:
    msg = parse_server_dh_params(blob)
    check_nonces(msg, nonce, server_nonce)

    if isinstance(msg, ServerDHParamsFail):
        # new_nonce_hash here is SHA1(new_nonce)[4:20]; a mismatch means forged
        expected = server_dh_params_fail_hash(new_nonce)
        forged = not hmac.compare_digest(expected, msg.new_nonce_hash)
        raise ServerDhParamsFailError(
            "server_DH_params_fail" + (" (new_nonce_hash mismatch)" if forged else "")
        )

    enc = msg.encrypted_answer
    if not enc or len(enc) % 16 != 0:
        raise DecryptionError(f"encrypted_answer length {len(enc)} is not a non-zero multiple of 16")

    key, iv = tmp_aes_key_iv(new_nonce, server_nonce)
    plain = ige_decrypt(enc, key, iv)

    if len(plain) < SHA1_SIZE:
        raise HashMismatchError("decrypted answer shorter than its hash")
    digest, body = plain[:SHA1_SIZE], plain[SHA1_SIZE:]

    try:
        inner, used = ServerDHInnerData.parse_prefix(body)
    except TlDecodeError as e:
        # garbage after decryption is indistinguishable from tampering
        raise HashMismatchError(f"answer does not decode: {e}") from e

    if len(body) - used > 15:
        raise HashMismatchError(f"{len(body) - used} padding bytes after inner data")
    if not hmac.compare_digest(sha1(body[:used]), digest):
        raise HashMismatchError("server_DH_inner_data hash mismatch")

    check_nonces(inner, nonce, server_nonce)
    return inner


def server_dh_params_fail_hash(new_nonce: bytes) -> bytes:
    return sha1(new_nonce)[4:20]
