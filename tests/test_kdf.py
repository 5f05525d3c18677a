# MIT License © 2025 Motohiro Suzuki
import hashlib

import pytest

from crypto.kdf import (
    NNH_FAIL,
    NNH_OK,
    NNH_RETRY,
    auth_key_id,
    new_nonce_hash,
    server_salt,
    tmp_aes_key_iv,
)

NEW_NONCE = bytes(range(32))
SERVER_NONCE = bytes(range(100, 116))


def _sha1(b):
    return hashlib.sha1(b).digest()


def test_tmp_key_iv_layout():
    key, iv = tmp_aes_key_iv(NEW_NONCE, SERVER_NONCE)
    assert len(key) == 32 and len(iv) == 32
    assert key[:20] == _sha1(NEW_NONCE + SERVER_NONCE)
    assert key[20:] == _sha1(SERVER_NONCE + NEW_NONCE)[:12]
    assert iv[:8] == _sha1(SERVER_NONCE + NEW_NONCE)[12:20]
    assert iv[8:28] == _sha1(NEW_NONCE + NEW_NONCE)
    assert iv[28:] == NEW_NONCE[:4]


def test_tmp_key_iv_is_deterministic():
    assert tmp_aes_key_iv(NEW_NONCE, SERVER_NONCE) == tmp_aes_key_iv(NEW_NONCE, SERVER_NONCE)


def test_tmp_key_iv_rejects_bad_sizes():
    with pytest.raises(ValueError):
        tmp_aes_key_iv(NEW_NONCE[:16], SERVER_NONCE)
    with pytest.raises(ValueError):
        tmp_aes_key_iv(NEW_NONCE, SERVER_NONCE + b"\x00")


def test_new_nonce_hash_markers_differ():
    auth_key = b"\x42" * 256
    hashes = {new_nonce_hash(NEW_NONCE, auth_key, m) for m in (NNH_OK, NNH_RETRY, NNH_FAIL)}
    assert len(hashes) == 3
    h1 = new_nonce_hash(NEW_NONCE, auth_key, NNH_OK)
    assert h1 == _sha1(NEW_NONCE + b"\x01" + _sha1(auth_key)[:8])[4:20]


def test_new_nonce_hash_rejects_unknown_marker():
    with pytest.raises(ValueError):
        new_nonce_hash(NEW_NONCE, b"\x00" * 256, 4)


def test_server_salt_is_xor_of_low_halves():
    nn = (0x1122334455667788).to_bytes(8, "little") + b"\xff" * 24
    sn = (0x0F0F0F0F0F0F0F0F).to_bytes(8, "little") + b"\xee" * 8
    assert server_salt(nn, sn) == 0x1122334455667788 ^ 0x0F0F0F0F0F0F0F0F


def test_auth_key_id_is_sha1_tail():
    key = bytes(range(256))
    assert auth_key_id(key) == int.from_bytes(_sha1(key)[12:20], "little")
