# MIT License © 2025 Motohiro Suzuki
"""
protocol/tl.py

Minimal TL (Type Language) binary codec for the auth-key handshake.

Wire rules (all little-endian, 4-byte aligned):
- int    : 4 bytes signed
- long   : 8 bytes signed
- int128 : 16 raw bytes, int256 : 32 raw bytes
- bytes  : len < 254 -> len(u8) + data
           else      -> 0xFE + len(u24) + data
           then zero padding to a multiple of 4 (prefix included)
- Vector<long> : 0x1cb5c415 + count(int) + items
- every boxed object starts with its constructor id as u32
"""

from __future__ import annotations

import struct

from protocol.errors import TlDecodeError

VECTOR_ID = 0x1CB5C415

_I32 = struct.Struct("<i")
_U32 = struct.Struct("<I")
_I64 = struct.Struct("<q")

MAX_BYTES_LEN = 0xFFFFFF


def pack_bytes(b: bytes) -> bytes:
    data = bytes(b)
    n = len(data)
    if n < 254:
        head = bytes([n])
    elif n <= MAX_BYTES_LEN:
        head = b"\xfe" + n.to_bytes(3, "little")
    else:
        raise ValueError("TL bytes too long")
    out = head + data
    return out + b"\x00" * ((-len(out)) % 4)


class TlWriter:
    def __init__(self) -> None:
        self._buf = bytearray()

    def ctor(self, cid: int) -> "TlWriter":
        return self.uint32(cid)

    def int32(self, x: int) -> "TlWriter":
        self._buf += _I32.pack(int(x))
        return self

    def uint32(self, x: int) -> "TlWriter":
        self._buf += _U32.pack(int(x) & 0xFFFFFFFF)
        return self

    def int64(self, x: int) -> "TlWriter":
        self._buf += _I64.pack(int(x))
        return self

    def raw(self, b: bytes, size: int) -> "TlWriter":
        if len(b) != size:
            raise ValueError(f"expected {size} raw bytes, got {len(b)}")
        self._buf += bytes(b)
        return self

    def int128(self, b: bytes) -> "TlWriter":
        return self.raw(b, 16)

    def int256(self, b: bytes) -> "TlWriter":
        return self.raw(b, 32)

    def bytes_(self, b: bytes) -> "TlWriter":
        self._buf += pack_bytes(b)
        return self

    def vector_long(self, items: list[int]) -> "TlWriter":
        self.uint32(VECTOR_ID)
        self.int32(len(items))
        for x in items:
            self.int64(x)
        return self

    def getvalue(self) -> bytes:
        return bytes(self._buf)


class TlReader:
    def __init__(self, data: bytes) -> None:
        self._b = bytes(data)
        self._i = 0

    @property
    def offset(self) -> int:
        return self._i

    def remaining(self) -> int:
        return len(self._b) - self._i

    def raw(self, n: int) -> bytes:
        if n < 0 or self._i + n > len(self._b):
            raise TlDecodeError(f"truncated: need {n} bytes at offset {self._i}")
        v = self._b[self._i:self._i + n]
        self._i += n
        return v

    def int32(self) -> int:
        return _I32.unpack(self.raw(4))[0]

    def uint32(self) -> int:
        return _U32.unpack(self.raw(4))[0]

    def int64(self) -> int:
        return _I64.unpack(self.raw(8))[0]

    def int128(self) -> bytes:
        return self.raw(16)

    def int256(self) -> bytes:
        return self.raw(32)

    def bytes_(self) -> bytes:
        first = self.raw(1)[0]
        if first == 254:
            n = int.from_bytes(self.raw(3), "little")
            head = 4
        elif first == 255:
            raise TlDecodeError("invalid TL bytes prefix 0xFF")
        else:
            n = first
            head = 1
        data = self.raw(n)
        self.raw((-(head + n)) % 4)
        return data

    def vector_long(self) -> list[int]:
        vid = self.uint32()
        if vid != VECTOR_ID:
            raise TlDecodeError(f"expected vector id, got 0x{vid:08x}")
        count = self.int32()
        if count < 0 or count * 8 > self.remaining():
            raise TlDecodeError(f"bad vector length {count}")
        return [self.int64() for _ in range(count)]

    def expect_ctor(self, *cids: int) -> int:
        cid = self.uint32()
        if cid not in cids:
            want = ", ".join(f"0x{c:08x}" for c in cids)
            raise TlDecodeError(f"unexpected constructor 0x{cid:08x} (want {want})")
        return cid

    def expect_end(self) -> None:
        if self.remaining():
            raise TlDecodeError(f"{self.remaining()} trailing bytes")
