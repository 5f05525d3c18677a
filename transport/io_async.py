# MIT License © 2025 Motohiro Suzuki
"""
transport/io_async.py

TCP "intermediate" framing over asyncio streams.

- client sends the 0xeeeeeeee tag once, before the first packet
- every packet: length (u32 LE) | payload
- a 4-byte packet holding a negative int32 is a transport error code
  (e.g. -404 auth key not found, -429 flood)
"""

from __future__ import annotations

import asyncio
import logging
import struct

from protocol.errors import TransportError

logger = logging.getLogger(__name__)

TAG_INTERMEDIATE = b"\xee\xee\xee\xee"
MAX_PACKET = 16 * 1024 * 1024

_LEN = struct.Struct("<I")
_ERR = struct.Struct("<i")


class IntermediateIO:
    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self._r = reader
        self._w = writer
        self._tag_sent = False
        self._closed = False

    @staticmethod
    async def connect(host: str, port: int) -> "IntermediateIO":
        reader, writer = await asyncio.open_connection(host, port)
        logger.info("[io] connected %s:%d", host, port)
        return IntermediateIO(reader, writer)

    async def send_packet(self, payload: bytes) -> None:
        if self._closed:
            raise TransportError("send on closed transport")
        p = bytes(payload)
        if len(p) % 4 != 0:
            raise TransportError(f"packet length {len(p)} not a multiple of 4")
        if not self._tag_sent:
            self._w.write(TAG_INTERMEDIATE)
            self._tag_sent = True
        self._w.write(_LEN.pack(len(p)) + p)
        await self._w.drain()

    async def recv_packet(self) -> bytes:
        try:
            hdr = await self._r.readexactly(_LEN.size)
            (ln,) = _LEN.unpack(hdr)
            if ln > MAX_PACKET:
                raise TransportError(f"packet too large: {ln}")
            payload = await self._r.readexactly(ln) if ln else b""
        except asyncio.IncompleteReadError as e:
            raise TransportError("connection closed by peer") from e

        if len(payload) == 4:
            (code,) = _ERR.unpack(payload)
            if code < 0:
                raise TransportError(f"transport error {code}", error_code=code)
        return payload

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._w.close()
        try:
            await self._w.wait_closed()
        except ConnectionError:
            pass
