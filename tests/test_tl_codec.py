# MIT License © 2025 Motohiro Suzuki
import pytest

from protocol.errors import TlDecodeError
from protocol.messages import REQ_PQ_MULTI, RES_PQ, ReqPqMulti, ResPQ, DhGenAnswer
from protocol.tl import TlReader, TlWriter, pack_bytes


def test_short_bytes_are_padded_to_four():
    assert pack_bytes(b"") == b"\x00\x00\x00\x00"
    assert pack_bytes(b"abc") == b"\x03abc"
    assert pack_bytes(b"abcd") == b"\x04abcd\x00\x00\x00"


def test_long_bytes_use_fe_prefix():
    data = bytes(range(256)) * 2  # 512 bytes
    enc = pack_bytes(data)
    assert enc[:4] == b"\xfe\x00\x02\x00"
    assert len(enc) % 4 == 0
    assert TlReader(enc).bytes_() == data


def test_boundary_253_and_254():
    assert pack_bytes(b"x" * 253)[0] == 253
    assert pack_bytes(b"x" * 254)[:4] == b"\xfe\xfe\x00\x00"


def test_req_pq_multi_layout():
    nonce = bytes(range(16))
    out = ReqPqMulti(nonce=nonce).to_bytes()
    assert len(out) == 20
    assert out[:4] == REQ_PQ_MULTI.to_bytes(4, "little")
    assert out[4:] == nonce
    assert ReqPqMulti.parse(out).nonce == nonce


def test_res_pq_parse():
    blob = (
        TlWriter()
        .ctor(RES_PQ)
        .int128(b"\x01" * 16)
        .int128(b"\x02" * 16)
        .bytes_(bytes.fromhex("17ED48941A08F981"))
        .vector_long([-4344800451088585951, 42])
        .getvalue()
    )
    m = ResPQ.parse(blob)
    assert m.pq_int == 1724114033281923457
    assert m.fingerprints == [-4344800451088585951, 42]


def test_truncated_input_raises():
    blob = ReqPqMulti(nonce=b"\x00" * 16).to_bytes()
    with pytest.raises(TlDecodeError):
        ReqPqMulti.parse(blob[:-1])


def test_unknown_constructor_raises():
    with pytest.raises(TlDecodeError):
        DhGenAnswer.parse(b"\xde\xad\xbe\xef" + b"\x00" * 48)


def test_trailing_bytes_rejected():
    blob = ReqPqMulti(nonce=b"\x00" * 16).to_bytes() + b"\x00\x00\x00\x00"
    with pytest.raises(TlDecodeError):
        ReqPqMulti.parse(blob)


def test_bad_vector_id():
    blob = TlWriter().uint32(0x12345678).int32(1).int64(1).getvalue()
    with pytest.raises(TlDecodeError):
        TlReader(blob).vector_long()
