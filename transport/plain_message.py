# MIT License © 2025 Motohiro Suzuki
"""
transport/plain_message.py

Unencrypted MTProto envelope used before an auth key exists:

    auth_key_id (int64, always 0) | msg_id (int64) | length (int32) | body

msg_id ~ unixtime * 2^32; client ids are divisible by 4 and strictly increasing.
"""

from __future__ import annotations

import struct
import time
from dataclasses import dataclass
from typing import Callable

from protocol.errors import TlDecodeError

_HDR = struct.Struct("<qqi")


@dataclass(frozen=True)
class PlainMessage:
    msg_id: int
    body: bytes

    def to_bytes(self) -> bytes:
        b = bytes(self.body)
        return _HDR.pack(0, int(self.msg_id), len(b)) + b

    @staticmethod
    def parse(blob: bytes) -> "PlainMessage":
        b = bytes(blob)
        if len(b) < _HDR.size:
            raise TlDecodeError(f"plain message too short ({len(b)} bytes)")
        auth_key_id, msg_id, ln = _HDR.unpack_from(b, 0)
        if auth_key_id != 0:
            raise TlDecodeError(f"expected unencrypted message, auth_key_id={auth_key_id}")
        if ln < 0 or _HDR.size + ln > len(b):
            raise TlDecodeError(f"plain message length {ln} exceeds packet")
        return PlainMessage(msg_id=msg_id, body=b[_HDR.size:_HDR.size + ln])


class MsgIdGenerator:
    def __init__(self, clock: Callable[[], float] = time.time, time_offset: float = 0.0) -> None:
        self._clock = clock
        self.time_offset = float(time_offset)
        self._last = 0

    def next(self) -> int:
        mid = int((self._clock() + self.time_offset) * (1 << 32)) & ~3
        if mid <= self._last:
            mid = self._last + 4
        self._last = mid
        return mid
