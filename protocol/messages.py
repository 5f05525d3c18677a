# MIT License © 2025 Motohiro Suzuki
"""
protocol/messages.py

Handshake messages (TL constructors) with to_bytes()/parse().

Both directions are encodable and parseable so the same codec serves the
client and the synthetic server used in tests.
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import List, Optional, Tuple

from protocol.errors import NonceMismatchError, ServerNonceMismatchError
from protocol.tl import TlReader, TlWriter

REQ_PQ_MULTI = 0xBE7E8EF1
RES_PQ = 0x05162463
P_Q_INNER_DATA_DC = 0xA9F55F95
P_Q_INNER_DATA_TEMP_DC = 0x56FDDF88
REQ_DH_PARAMS = 0xD712E4BE
SERVER_DH_PARAMS_OK = 0xD0E8075C
SERVER_DH_PARAMS_FAIL = 0x79CB045D
SERVER_DH_INNER_DATA = 0xB5890DBA
CLIENT_DH_INNER_DATA = 0x6643B654
SET_CLIENT_DH_PARAMS = 0xF5045F1F
DH_GEN_OK = 0x3BCBF734
DH_GEN_RETRY = 0x46DC1FB9
DH_GEN_FAIL = 0xA69DAE02


@dataclass(frozen=True)
class ReqPqMulti:
    nonce: bytes

    def to_bytes(self) -> bytes:
        return TlWriter().ctor(REQ_PQ_MULTI).int128(self.nonce).getvalue()

    @staticmethod
    def parse(blob: bytes) -> "ReqPqMulti":
        r = TlReader(blob)
        r.expect_ctor(REQ_PQ_MULTI)
        m = ReqPqMulti(nonce=r.int128())
        r.expect_end()
        return m


@dataclass(frozen=True)
class ResPQ:
    nonce: bytes
    server_nonce: bytes
    pq: bytes
    fingerprints: List[int]

    @property
    def pq_int(self) -> int:
        return int.from_bytes(self.pq, "big")

    def to_bytes(self) -> bytes:
        return (
            TlWriter()
            .ctor(RES_PQ)
            .int128(self.nonce)
            .int128(self.server_nonce)
            .bytes_(self.pq)
            .vector_long(list(self.fingerprints))
            .getvalue()
        )

    @staticmethod
    def parse(blob: bytes) -> "ResPQ":
        r = TlReader(blob)
        r.expect_ctor(RES_PQ)
        m = ResPQ(
            nonce=r.int128(),
            server_nonce=r.int128(),
            pq=r.bytes_(),
            fingerprints=r.vector_long(),
        )
        r.expect_end()
        return m


@dataclass(frozen=True)
class PQInnerData:
    """
    p_q_inner_data_dc (expires_in is None) or p_q_inner_data_temp_dc.
    """
    pq: bytes
    p: bytes
    q: bytes
    nonce: bytes
    server_nonce: bytes
    new_nonce: bytes
    dc: int
    expires_in: int | None = None

    def to_bytes(self) -> bytes:
        temp = self.expires_in is not None
        w = TlWriter().ctor(P_Q_INNER_DATA_TEMP_DC if temp else P_Q_INNER_DATA_DC)
        w.bytes_(self.pq).bytes_(self.p).bytes_(self.q)
        w.int128(self.nonce).int128(self.server_nonce).int256(self.new_nonce)
        w.int32(self.dc)
        if temp:
            w.int32(int(self.expires_in))
        return w.getvalue()

    @staticmethod
    def parse_prefix(blob: bytes) -> Tuple["PQInnerData", int]:
        r = TlReader(blob)
        cid = r.expect_ctor(P_Q_INNER_DATA_DC, P_Q_INNER_DATA_TEMP_DC)
        pq, p, q = r.bytes_(), r.bytes_(), r.bytes_()
        nonce, server_nonce, new_nonce = r.int128(), r.int128(), r.int256()
        dc = r.int32()
        expires_in = r.int32() if cid == P_Q_INNER_DATA_TEMP_DC else None
        m = PQInnerData(pq, p, q, nonce, server_nonce, new_nonce, dc, expires_in)
        return m, r.offset


@dataclass(frozen=True)
class ReqDHParams:
    nonce: bytes
    server_nonce: bytes
    p: bytes
    q: bytes
    fingerprint: int
    encrypted_data: bytes

    def to_bytes(self) -> bytes:
        return (
            TlWriter()
            .ctor(REQ_DH_PARAMS)
            .int128(self.nonce)
            .int128(self.server_nonce)
            .bytes_(self.p)
            .bytes_(self.q)
            .int64(self.fingerprint)
            .bytes_(self.encrypted_data)
            .getvalue()
        )

    @staticmethod
    def parse(blob: bytes) -> "ReqDHParams":
        r = TlReader(blob)
        r.expect_ctor(REQ_DH_PARAMS)
        m = ReqDHParams(
            nonce=r.int128(),
            server_nonce=r.int128(),
            p=r.bytes_(),
            q=r.bytes_(),
            fingerprint=r.int64(),
            encrypted_data=r.bytes_(),
        )
        r.expect_end()
        return m


@dataclass(frozen=True)
class ServerDHParamsOk:
    nonce: bytes
    server_nonce: bytes
    encrypted_answer: bytes

    def to_bytes(self) -> bytes:
        return (
            TlWriter()
            .ctor(SERVER_DH_PARAMS_OK)
            .int128(self.nonce)
            .int128(self.server_nonce)
            .bytes_(self.encrypted_answer)
            .getvalue()
        )


@dataclass(frozen=True)
class ServerDHParamsFail:
    nonce: bytes
    server_nonce: bytes
    new_nonce_hash: bytes

    def to_bytes(self) -> bytes:
        return (
            TlWriter()
            .ctor(SERVER_DH_PARAMS_FAIL)
            .int128(self.nonce)
            .int128(self.server_nonce)
            .int128(self.new_nonce_hash)
            .getvalue()
        )


def parse_server_dh_params(blob: bytes) -> "ServerDHParamsOk | ServerDHParamsFail":
    r = TlReader(blob)
    cid = r.expect_ctor(SERVER_DH_PARAMS_OK, SERVER_DH_PARAMS_FAIL)
    nonce, server_nonce = r.int128(), r.int128()
    m: ServerDHParamsOk | ServerDHParamsFail
    if cid == SERVER_DH_PARAMS_OK:
        m = ServerDHParamsOk(nonce, server_nonce, r.bytes_())
    else:
        m = ServerDHParamsFail(nonce, server_nonce, r.int128())
    r.expect_end()
    return m


@dataclass(frozen=True)
class ServerDHInnerData:
    nonce: bytes
    server_nonce: bytes
    g: int
    dh_prime: bytes
    g_a: bytes
    server_time: int

    def to_bytes(self) -> bytes:
        return (
            TlWriter()
            .ctor(SERVER_DH_INNER_DATA)
            .int128(self.nonce)
            .int128(self.server_nonce)
            .int32(self.g)
            .bytes_(self.dh_prime)
            .bytes_(self.g_a)
            .int32(self.server_time)
            .getvalue()
        )

    @staticmethod
    def parse_prefix(blob: bytes) -> Tuple["ServerDHInnerData", int]:
        """Parse from the start of blob; returns (message, consumed bytes)."""
        r = TlReader(blob)
        r.expect_ctor(SERVER_DH_INNER_DATA)
        m = ServerDHInnerData(
            nonce=r.int128(),
            server_nonce=r.int128(),
            g=r.int32(),
            dh_prime=r.bytes_(),
            g_a=r.bytes_(),
            server_time=r.int32(),
        )
        return m, r.offset


@dataclass(frozen=True)
class ClientDHInnerData:
    nonce: bytes
    server_nonce: bytes
    retry_id: int
    g_b: bytes

    def to_bytes(self) -> bytes:
        return (
            TlWriter()
            .ctor(CLIENT_DH_INNER_DATA)
            .int128(self.nonce)
            .int128(self.server_nonce)
            .int64(self.retry_id)
            .bytes_(self.g_b)
            .getvalue()
        )

    @staticmethod
    def parse_prefix(blob: bytes) -> Tuple["ClientDHInnerData", int]:
        r = TlReader(blob)
        r.expect_ctor(CLIENT_DH_INNER_DATA)
        m = ClientDHInnerData(
            nonce=r.int128(),
            server_nonce=r.int128(),
            retry_id=r.int64(),
            g_b=r.bytes_(),
        )
        return m, r.offset


@dataclass(frozen=True)
class SetClientDHParams:
    nonce: bytes
    server_nonce: bytes
    encrypted_data: bytes

    def to_bytes(self) -> bytes:
        return (
            TlWriter()
            .ctor(SET_CLIENT_DH_PARAMS)
            .int128(self.nonce)
            .int128(self.server_nonce)
            .bytes_(self.encrypted_data)
            .getvalue()
        )

    @staticmethod
    def parse(blob: bytes) -> "SetClientDHParams":
        r = TlReader(blob)
        r.expect_ctor(SET_CLIENT_DH_PARAMS)
        m = SetClientDHParams(r.int128(), r.int128(), r.bytes_())
        r.expect_end()
        return m


@dataclass(frozen=True)
class DhGenAnswer:
    """
    dh_gen_ok / dh_gen_retry / dh_gen_fail share one layout;
    `marker` is the new_nonce_hash number (1 ok, 2 retry, 3 fail).
    """
    marker: int
    nonce: bytes
    server_nonce: bytes
    new_nonce_hash: bytes

    def to_bytes(self) -> bytes:
        cid = {1: DH_GEN_OK, 2: DH_GEN_RETRY, 3: DH_GEN_FAIL}[self.marker]
        return (
            TlWriter()
            .ctor(cid)
            .int128(self.nonce)
            .int128(self.server_nonce)
            .int128(self.new_nonce_hash)
            .getvalue()
        )

    @staticmethod
    def parse(blob: bytes) -> "DhGenAnswer":
        r = TlReader(blob)
        cid = r.expect_ctor(DH_GEN_OK, DH_GEN_RETRY, DH_GEN_FAIL)
        marker = {DH_GEN_OK: 1, DH_GEN_RETRY: 2, DH_GEN_FAIL: 3}[cid]
        m = DhGenAnswer(marker, r.int128(), r.int128(), r.int128())
        r.expect_end()
        return m


def check_nonces(msg, nonce: bytes, server_nonce: Optional[bytes] = None) -> None:
    """
    Bind a server message to this handshake: nonce first, then server_nonce
    (skipped while server_nonce is still unknown, i.e. for resPQ).
    """
    if not hmac.compare_digest(bytes(msg.nonce), bytes(nonce)):
        raise NonceMismatchError("nonce mismatch")
    if server_nonce is not None and not hmac.compare_digest(
        bytes(msg.server_nonce), bytes(server_nonce)
    ):
        raise ServerNonceMismatchError("server_nonce mismatch")
