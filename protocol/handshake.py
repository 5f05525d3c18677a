# MIT License © 2025 Motohiro Suzuki
"""
protocol/handshake.py

MTProto 2.0 auth-key handshake, client side, as a synchronous state machine.

    START --start()--> RES_PQ --resPQ--> SERVER_DH_PARAMS --server_DH_params_ok-->
    DH_GEN_RESPONSE --dh_gen_ok--> FINISH

The machine never does I/O: every step takes the server's bytes and hands
back a Result carrying the next action (Send / Complete) or a Failure.
Any failure is fatal; a failed instance answers every later call with
ERR_INVALID_STATE. One instance = one nonce pair; retries need a new one.
"""

from __future__ import annotations

import hmac
import logging
import time
from typing import Callable, Optional

from crypto.dh import check_dh_params, check_safe_prime, compute_dh_key
from crypto.kdf import NNH_FAIL, NNH_RETRY, auth_key_id, new_nonce_hash, server_salt
from crypto.rng import RandomSource, default_rng
from crypto.zeroize import SecretBox
from keys.rsa_keys import RsaKeySet
from protocol.client_answer import encode_set_client_dh_params
from protocol.config import HandshakeConfig
from protocol.dc import DcId
from protocol.errors import (
    DhGenFailError,
    DhGenRetryError,
    HandshakeError,
    InvalidStateError,
    NewNonceHashMismatchError,
)
from protocol.failure import Failure, FailureCode, FailureLayer, FailurePhase
from protocol.handshake_types import (
    Complete,
    HandshakeAction,
    HandshakeMode,
    HandshakeState,
    Send,
)
from protocol.inner_data import encode_req_dh_params
from protocol.messages import DhGenAnswer, ReqPqMulti, ResPQ, check_nonces
from protocol.result import Result
from protocol.server_answer import decode_server_dh_params

logger = logging.getLogger(__name__)


class MTProtoHandshake:
    def __init__(
        self,
        dc_id: DcId,
        mode: HandshakeMode,
        rsa_keys: RsaKeySet,
        *,
        rng: Optional[RandomSource] = None,
        cfg: Optional[HandshakeConfig] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._cfg = cfg if cfg is not None else HandshakeConfig()
        if mode.temp and mode.expires_in is None:
            mode = HandshakeMode.temporary(self._cfg.temp_expires_in)

        self._dc_id = dc_id
        self._mode = mode
        self._rsa_keys = rsa_keys
        self._rng = rng if rng is not None else default_rng()
        self._clock = clock

        self._state = HandshakeState.START
        self._failure: Optional[Failure] = None

        self._nonce: Optional[bytes] = None
        self._server_nonce: Optional[bytes] = None
        self._new_nonce: Optional[SecretBox] = None
        self._auth_key: Optional[bytes] = None
        self._server_salt: Optional[int] = None
        self._server_time: Optional[int] = None
        self._server_time_diff: Optional[float] = None

    # -------------------------
    # read accessors
    # -------------------------
    @property
    def state(self) -> HandshakeState:
        return self._state

    @property
    def dc_id(self) -> DcId:
        return self._dc_id

    @property
    def mode(self) -> HandshakeMode:
        return self._mode

    @property
    def failure(self) -> Optional[Failure]:
        return self._failure

    @property
    def nonce(self) -> Optional[bytes]:
        return self._nonce

    @property
    def server_nonce(self) -> Optional[bytes]:
        return self._server_nonce

    @property
    def auth_key(self) -> Optional[bytes]:
        """Only available once the server confirmed the key (FINISH)."""
        return self._auth_key if self._state is HandshakeState.FINISH else None

    @property
    def server_salt(self) -> Optional[int]:
        return self._server_salt if self._state is HandshakeState.FINISH else None

    @property
    def auth_key_id(self) -> Optional[int]:
        key = self.auth_key
        return None if key is None else auth_key_id(key)

    @property
    def server_time(self) -> Optional[int]:
        return self._server_time

    @property
    def server_time_diff(self) -> Optional[float]:
        """server_time - local clock at receipt of server_DH_inner_data."""
        return self._server_time_diff

    @property
    def expires_at(self) -> Optional[int]:
        """Server-time expiry of a temporary key (None for permanent keys)."""
        if not self._mode.temp or self._server_time is None:
            return None
        return self._server_time + int(self._mode.expires_in)

    def set_rsa_keys(self, rsa_keys: RsaKeySet) -> None:
        if self._state is not HandshakeState.START:
            raise InvalidStateError(f"rsa keys are fixed once the handshake started ({self._state.value})")
        self._rsa_keys = rsa_keys

    # -------------------------
    # steps
    # -------------------------
    def start(self) -> Result[HandshakeAction]:
        return self._run(HandshakeState.START, self._do_start, b"")

    def on_message(self, data: bytes) -> Result[HandshakeAction]:
        if self._state is HandshakeState.RES_PQ:
            return self.on_res_pq(data)
        if self._state is HandshakeState.SERVER_DH_PARAMS:
            return self.on_server_dh_params(data)
        if self._state is HandshakeState.DH_GEN_RESPONSE:
            return self.on_dh_gen_response(data)
        return self._invalid_state("on_message")

    def on_res_pq(self, data: bytes) -> Result[HandshakeAction]:
        return self._run(HandshakeState.RES_PQ, self._do_res_pq, data)

    def on_server_dh_params(self, data: bytes) -> Result[HandshakeAction]:
        return self._run(HandshakeState.SERVER_DH_PARAMS, self._do_server_dh_params, data)

    def on_dh_gen_response(self, data: bytes) -> Result[HandshakeAction]:
        return self._run(HandshakeState.DH_GEN_RESPONSE, self._do_dh_gen_response, data)

    def abort(self, failure: Optional[Failure] = None) -> None:
        """
        Drop secrets; the instance is unusable afterwards.
        `failure` records the caller's cause (timeout, I/O) instead of a bare "aborted".
        """
        if self._failure is None and self._state is not HandshakeState.FINISH:
            self._failure = failure if failure is not None else Failure(
                layer=FailureLayer.PROTOCOL,
                phase=FailurePhase(self._state.value),
                code=FailureCode.ERR_INVALID_STATE,
                detail="aborted",
            )
        self._wipe()
        if self._state is not HandshakeState.FINISH:
            self._auth_key = None

    # -------------------------
    # step bodies
    # -------------------------
    def _do_start(self, _data: bytes) -> HandshakeAction:
        self._nonce = self._rng.token_bytes(16)
        out = ReqPqMulti(nonce=self._nonce).to_bytes()
        self._state = HandshakeState.RES_PQ
        logger.info("[handshake] dc=%s mode=%s step=req_pq_multi", self._dc_id, self._mode.name)
        return Send(out)

    def _do_res_pq(self, data: bytes) -> HandshakeAction:
        res = ResPQ.parse(data)
        check_nonces(res, self._nonce)
        logger.info("[handshake] dc=%s step=res_pq fingerprints=%s", self._dc_id, res.fingerprints)

        key = self._rsa_keys.find(res.fingerprints)
        self._server_nonce = res.server_nonce
        self._new_nonce = SecretBox(self._rng.token_bytes(32))

        out = encode_req_dh_params(
            res,
            self._new_nonce.bytes(),
            self._dc_id,
            self._mode,
            key,
            self._rng,
            rsa_max_attempts=self._cfg.rsa_max_attempts,
        )
        self._state = HandshakeState.SERVER_DH_PARAMS
        logger.info("[handshake] dc=%s step=req_dh_params fingerprint=%d", self._dc_id, key.fingerprint)
        return Send(out)

    def _do_server_dh_params(self, data: bytes) -> HandshakeAction:
        new_nonce = self._new_nonce.bytes()
        inner = decode_server_dh_params(data, self._nonce, self._server_nonce, new_nonce)

        dh_prime = int.from_bytes(inner.dh_prime, "big")
        check_dh_params(inner.g, dh_prime, inner.g_a)
        if self._cfg.verify_dh_prime:
            check_safe_prime(dh_prime)

        ga = int.from_bytes(inner.g_a, "big")
        pair = compute_dh_key(inner.g, dh_prime, ga, self._rng, max_draws=self._cfg.dh_max_draws)

        out = encode_set_client_dh_params(
            self._nonce,
            self._server_nonce,
            new_nonce,
            pair.g_b,
            self._rng,
        )

        self._auth_key = pair.auth_key
        self._server_salt = server_salt(new_nonce, self._server_nonce)
        self._server_time = inner.server_time
        self._server_time_diff = inner.server_time - self._clock()
        self._state = HandshakeState.DH_GEN_RESPONSE
        logger.info(
            "[handshake] dc=%s step=set_client_dh_params g=%d time_diff=%.1f",
            self._dc_id,
            inner.g,
            self._server_time_diff,
        )
        return Send(out)

    def _do_dh_gen_response(self, data: bytes) -> HandshakeAction:
        ans = DhGenAnswer.parse(data)
        check_nonces(ans, self._nonce, self._server_nonce)

        expected = new_nonce_hash(self._new_nonce.bytes(), self._auth_key, ans.marker)
        if not hmac.compare_digest(expected, ans.new_nonce_hash):
            raise NewNonceHashMismatchError(f"new_nonce_hash{ans.marker} mismatch")
        if ans.marker == NNH_RETRY:
            raise DhGenRetryError("server answered dh_gen_retry")
        if ans.marker == NNH_FAIL:
            raise DhGenFailError("server answered dh_gen_fail")

        self._state = HandshakeState.FINISH
        self._wipe()
        logger.info("[handshake] dc=%s step=finish auth_key_id=%016x", self._dc_id, self.auth_key_id)
        return Complete(auth_key=self._auth_key, server_salt=self._server_salt)

    # -------------------------
    # plumbing
    # -------------------------
    def _run(
        self,
        expected: HandshakeState,
        body: Callable[[bytes], HandshakeAction],
        data: bytes,
    ) -> Result[HandshakeAction]:
        if self._failure is not None or self._state is not expected:
            return self._invalid_state(body.__name__.replace("_do_", ""))

        phase = FailurePhase(self._state.value)
        try:
            return Result.Ok(body(bytes(data)))
        except HandshakeError as e:
            f = Failure(layer=e.layer, phase=phase, code=e.code, detail=str(e) or type(e).__name__)
        except Exception as e:
            f = Failure(
                layer=FailureLayer.PROTOCOL,
                phase=phase,
                code=FailureCode.ERR_INTERNAL,
                detail=f"{type(e).__name__}: {e}",
            )
        self._failure = f
        self._auth_key = None
        self._wipe()
        logger.warning("[handshake] dc=%s failed: %s", self._dc_id, f)
        return Result.Err(f)

    def _invalid_state(self, what: str) -> Result[HandshakeAction]:
        if self._failure is not None:
            detail = f"{what}: handshake already failed ({self._failure.code.value})"
        else:
            detail = f"{what} not allowed in state {self._state.value}"
        return Result.Err(
            Failure(
                layer=FailureLayer.PROTOCOL,
                phase=FailurePhase(self._state.value),
                code=FailureCode.ERR_INVALID_STATE,
                detail=detail,
            )
        )

    def _wipe(self) -> None:
        if self._new_nonce is not None and not self._new_nonce.wiped:
            self._new_nonce.wipe()
