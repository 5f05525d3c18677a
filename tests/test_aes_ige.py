# MIT License © 2025 Motohiro Suzuki
import pytest
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from crypto.aes_ige import ige_decrypt, ige_encrypt

KEY = bytes(range(32))
IV = bytes(range(32, 64))


def _xor(a, b):
    return bytes(x ^ y for x, y in zip(a, b))


def test_first_block_matches_definition():
    p0 = b"\x5a" * 16
    enc = Cipher(algorithms.AES(KEY), modes.ECB()).encryptor()
    want = _xor(enc.update(_xor(p0, IV[:16])), IV[16:])
    assert ige_encrypt(p0, KEY, IV) == want


def test_decrypt_inverts_encrypt():
    data = bytes(range(256)) * 2
    assert ige_decrypt(ige_encrypt(data, KEY, IV), KEY, IV) == data


def test_error_propagates_forward():
    data = b"\x00" * 64
    ct = bytearray(ige_encrypt(data, KEY, IV))
    ct[0] ^= 1
    pt = ige_decrypt(bytes(ct), KEY, IV)
    for i in range(0, 64, 16):
        assert pt[i:i + 16] != data[i:i + 16]


@pytest.mark.parametrize("n", [1, 15, 17])
def test_length_must_be_block_multiple(n):
    with pytest.raises(ValueError):
        ige_encrypt(b"\x00" * n, KEY, IV)


def test_key_and_iv_sizes():
    with pytest.raises(ValueError):
        ige_encrypt(b"\x00" * 16, KEY[:16], IV)
    with pytest.raises(ValueError):
        ige_decrypt(b"\x00" * 16, KEY, IV[:16])
