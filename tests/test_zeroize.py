# MIT License © 2025 Motohiro Suzuki
import pytest

from crypto.zeroize import SecretBox, wipe


def test_wipe_bytearray_and_memoryview():
    b = bytearray(b"secret")
    wipe(b)
    assert b == bytearray(6)
    m = memoryview(bytearray(b"abc"))
    wipe(m)
    assert bytes(m) == b"\x00\x00\x00"
    wipe(None)


def test_secret_box():
    box = SecretBox(b"\x01" * 32)
    assert box.bytes() == b"\x01" * 32
    assert "01" not in repr(box)
    box.wipe()
    assert box.wiped
    with pytest.raises(ValueError):
        box.bytes()


def test_new_nonce_is_wiped_after_finish(make_handshake, server, run_until):
    hs = make_handshake()
    run_until(hs, server)
    assert hs._new_nonce.wiped


def test_new_nonce_is_wiped_after_failure(make_handshake, server, run_until):
    server.flip_hash_bit = 3
    hs = make_handshake()
    run_until(hs, server)
    assert hs._new_nonce.wiped
