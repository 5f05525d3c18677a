# MIT License © 2025 Motohiro Suzuki
"""
protocol/driver.py

Runs one MTProtoHandshake over a packet transport.

The state machine stays I/O-free; this module owns the unencrypted envelope,
per-step timeouts and the audit trail (JSON lines, one per handshake).
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from pathlib import Path
from typing import Any, Optional, Protocol

from crypto.rng import RandomSource
from protocol.config import HandshakeConfig
from protocol.dc import DcId
from protocol.errors import TlDecodeError
from protocol.failure import Failure, FailureCode, FailureLayer, FailurePhase
from protocol.handshake import MTProtoHandshake
from protocol.handshake_types import Complete, HandshakeMode, Send
from protocol.result import Result
from transport.io_async import IntermediateIO
from transport.plain_message import MsgIdGenerator, PlainMessage

logger = logging.getLogger(__name__)


class PacketIO(Protocol):
    async def send_packet(self, payload: bytes) -> None:
        ...

    async def recv_packet(self) -> bytes:
        ...


def _emit_audit(cfg: Any, record: dict) -> None:
    path = getattr(cfg, "audit_log_path", None)
    if isinstance(path, str) and path.strip():
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        with p.open("a", encoding="utf-8") as f:
            json.dump(record, f, ensure_ascii=False)
            f.write("\n")


def _driver_failure(hs: MTProtoHandshake, code: FailureCode, detail: str) -> Failure:
    layer = FailureLayer.PROTOCOL if code is FailureCode.ERR_PARSE else FailureLayer.TRANSPORT
    return Failure(
        layer=layer,
        phase=FailurePhase(hs.state.value),
        code=code,
        detail=detail,
    )


async def client_handshake(
    io: PacketIO,
    hs: MTProtoHandshake,
    cfg: Optional[HandshakeConfig] = None,
    msg_ids: Optional[MsgIdGenerator] = None,
) -> Result[Complete]:
    """
    Drive `hs` to FINISH or failure. Returns Ok(Complete) or Err(Failure).
    Transport problems become ERR_IO / ERR_TIMEOUT / ERR_PARSE and abort `hs`.
    """
    cfg = cfg if cfg is not None else HandshakeConfig()
    msg_ids = msg_ids if msg_ids is not None else MsgIdGenerator()
    handshake_id = uuid.uuid4().hex
    t0 = time.monotonic()

    result: Result = hs.start()
    failure: Optional[Failure] = None
    try:
        while result.ok and isinstance(result.value, Send):
            out = PlainMessage(msg_id=msg_ids.next(), body=result.value.data)
            await io.send_packet(out.to_bytes())

            packet = await asyncio.wait_for(io.recv_packet(), timeout=cfg.step_timeout)
            reply = PlainMessage.parse(packet)
            result = hs.on_message(reply.body)
    except asyncio.TimeoutError:
        failure = _driver_failure(hs, FailureCode.ERR_TIMEOUT, f"no reply within {cfg.step_timeout}s")
    except TlDecodeError as e:
        failure = _driver_failure(hs, FailureCode.ERR_PARSE, str(e))
    except ConnectionError as e:
        failure = _driver_failure(hs, FailureCode.ERR_IO, str(e) or type(e).__name__)
    if failure is not None:
        hs.abort(failure)
        result = Result.Err(failure)

    elapsed = time.monotonic() - t0
    if result.ok:
        logger.info("[driver] dc=%s handshake ok in %.3fs", hs.dc_id, elapsed)
        if hs.server_time_diff is not None:
            msg_ids.time_offset = hs.server_time_diff
    else:
        logger.warning("[driver] dc=%s handshake failed in %.3fs: %s", hs.dc_id, elapsed, result.failure)

    f = result.failure
    record = {
        "handshake_id": handshake_id,
        "dc_id": str(hs.dc_id),
        "mode": hs.mode.name,
        "outcome": "ok" if result.ok else "failed",
        "failure_code": None if f is None else f.code.value,
        "failure_phase": None if f is None else f.phase.value,
        "fatal": None if f is None else f.fatal,
        "auth_key_id": None if hs.auth_key_id is None else f"{hs.auth_key_id:016x}",
        "timestamp": time.time(),
        "elapsed": round(elapsed, 6),
    }
    try:
        _emit_audit(cfg, record)
    except OSError as e:
        logger.warning("[driver] audit write failed (%s): %s", cfg.audit_log_path, e)
    return result


async def create_auth_key(
    host: str,
    port: int,
    dc_id: DcId,
    mode: Optional[HandshakeMode] = None,
    cfg: Optional[HandshakeConfig] = None,
    rng: Optional[RandomSource] = None,
) -> Result[Complete]:
    """Open a TCP connection, run one handshake, close."""
    cfg = cfg if cfg is not None else HandshakeConfig()
    hs = MTProtoHandshake(
        dc_id,
        mode if mode is not None else HandshakeMode.main(),
        cfg.load_rsa_keys(),
        rng=rng,
        cfg=cfg,
    )
    io = await IntermediateIO.connect(host, port)
    try:
        return await client_handshake(io, hs, cfg)
    finally:
        await io.close()
