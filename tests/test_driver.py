# MIT License © 2025 Motohiro Suzuki
import asyncio
import json
import struct

import pytest

from protocol.config import HandshakeConfig
from protocol.driver import client_handshake
from protocol.errors import TransportError
from protocol.failure import FailureCode
from protocol.handshake_types import Complete, HandshakeState
from protocol.messages import REQ_PQ_MULTI
from transport.io_async import TAG_INTERMEDIATE, IntermediateIO
from transport.plain_message import MsgIdGenerator, PlainMessage


class LoopbackIO:
    """Feeds client packets to a SyntheticServer and queues its answers."""

    def __init__(self, server, silent_after=None, fail_after=None):
        self.server = server
        self.handlers = [server.res_pq, server.server_dh_params, server.dh_gen]
        self.replies: asyncio.Queue = asyncio.Queue()
        self.sent = []
        self.silent_after = silent_after
        self.fail_after = fail_after

    async def send_packet(self, payload: bytes) -> None:
        msg = PlainMessage.parse(payload)
        self.sent.append(msg)
        step = len(self.sent) - 1
        if self.fail_after is not None and step >= self.fail_after:
            raise TransportError("transport error -404", error_code=-404)
        if self.silent_after is not None and step >= self.silent_after:
            return
        body = self.handlers[step](msg.body)
        await self.replies.put(PlainMessage(msg_id=msg.msg_id + 1, body=body).to_bytes())

    async def recv_packet(self) -> bytes:
        return await self.replies.get()


def test_driver_completes_and_audits(make_handshake, server, tmp_path):
    audit = tmp_path / "audit" / "handshake.jsonl"
    cfg = HandshakeConfig(audit_log_path=str(audit))
    hs = make_handshake(cfg=cfg)
    io = LoopbackIO(server)

    r = asyncio.run(client_handshake(io, hs, cfg))

    assert r.ok and isinstance(r.value, Complete)
    assert r.value.auth_key == server.auth_key
    assert len(io.sent) == 3
    ids = [m.msg_id for m in io.sent]
    assert ids == sorted(ids) and all(i % 4 == 0 for i in ids)
    assert io.sent[0].body[:4] == REQ_PQ_MULTI.to_bytes(4, "little")

    rec = json.loads(audit.read_text(encoding="utf-8").strip())
    assert rec["outcome"] == "ok"
    assert rec["failure_code"] is None
    assert rec["auth_key_id"] == f"{hs.auth_key_id:016x}"


def test_driver_timeout(make_handshake, server, tmp_path):
    audit = tmp_path / "a.jsonl"
    cfg = HandshakeConfig(step_timeout=0.05, audit_log_path=str(audit))
    hs = make_handshake(cfg=cfg)

    r = asyncio.run(client_handshake(LoopbackIO(server, silent_after=1), hs, cfg))

    assert r.code is FailureCode.ERR_TIMEOUT
    assert r.failure.phase.value == HandshakeState.SERVER_DH_PARAMS.value
    assert hs.failure == r.failure
    assert hs.failure.code is FailureCode.ERR_TIMEOUT
    assert hs.auth_key is None
    rec = json.loads(audit.read_text(encoding="utf-8"))
    assert rec["failure_code"] == "ERR_TIMEOUT"
    assert rec["fatal"] is True


def test_driver_transport_error(make_handshake, server):
    hs = make_handshake()
    r = asyncio.run(client_handshake(LoopbackIO(server, fail_after=0), hs))
    assert r.code is FailureCode.ERR_IO
    assert "-404" in r.failure.detail
    assert hs.failure.code is FailureCode.ERR_IO
    assert hs.start().code is FailureCode.ERR_INVALID_STATE


def test_driver_unwritable_audit_keeps_result(make_handshake, server, tmp_path):
    # a directory cannot be opened for append
    cfg = HandshakeConfig(audit_log_path=str(tmp_path))
    hs = make_handshake(cfg=cfg)

    r = asyncio.run(client_handshake(LoopbackIO(server), hs, cfg))

    assert r.ok and isinstance(r.value, Complete)
    assert r.value.auth_key == server.auth_key


def test_driver_reports_protocol_failure(make_handshake, server):
    server.fingerprints = [99]
    hs = make_handshake()
    r = asyncio.run(client_handshake(LoopbackIO(server), hs))
    assert r.code is FailureCode.ERR_RSA_KEY_NOT_FOUND


def test_plain_message_layout():
    m = PlainMessage(msg_id=0x51E57AC42770964A, body=b"\x01\x02\x03\x04")
    raw = m.to_bytes()
    assert raw[:8] == b"\x00" * 8
    assert struct.unpack("<i", raw[16:20])[0] == 4
    assert PlainMessage.parse(raw) == m


def test_plain_message_rejects_encrypted_and_short():
    from protocol.errors import TlDecodeError

    with pytest.raises(TlDecodeError):
        PlainMessage.parse(b"\x01" + b"\x00" * 19)
    with pytest.raises(TlDecodeError):
        PlainMessage.parse(b"\x00" * 10)


def test_msg_ids_are_monotonic():
    gen = MsgIdGenerator(clock=lambda: 1_700_000_000.0)
    a, b, c = gen.next(), gen.next(), gen.next()
    assert a < b < c
    assert a % 4 == b % 4 == c % 4 == 0
    assert a >> 32 == 1_700_000_000


def test_intermediate_framing_and_error_code():
    async def scenario():
        received = {}

        async def handle(reader, writer):
            received["tag"] = await reader.readexactly(4)
            ln = struct.unpack("<I", await reader.readexactly(4))[0]
            received["payload"] = await reader.readexactly(ln)
            writer.write(struct.pack("<I", 8) + b"pong" * 2)
            writer.write(struct.pack("<I", 4) + struct.pack("<i", -404))
            await writer.drain()
            writer.close()

        srv = await asyncio.start_server(handle, "127.0.0.1", 0)
        port = srv.sockets[0].getsockname()[1]
        io = await IntermediateIO.connect("127.0.0.1", port)
        try:
            await io.send_packet(b"ping" * 2)
            first = await io.recv_packet()
            with pytest.raises(TransportError) as ei:
                await io.recv_packet()
        finally:
            await io.close()
            srv.close()
            await srv.wait_closed()
        return received, first, ei.value

    received, first, err = asyncio.run(scenario())
    assert received["tag"] == TAG_INTERMEDIATE
    assert received["payload"] == b"ping" * 2
    assert first == b"pong" * 2
    assert err.error_code == -404
