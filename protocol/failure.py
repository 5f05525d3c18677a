# MIT License © 2025 Motohiro Suzuki
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class FailureLayer(str, Enum):
    PROTOCOL = "protocol"
    CRYPTO = "crypto"
    TRANSPORT = "transport"


class FailurePhase(str, Enum):
    START = "start"
    RES_PQ = "res_pq"
    SERVER_DH_PARAMS = "server_dh_params"
    DH_GEN_RESPONSE = "dh_gen_response"
    FINISH = "finish"


class FailureCode(str, Enum):
    ERR_INVALID_STATE = "ERR_INVALID_STATE"
    ERR_PARSE = "ERR_PARSE"
    ERR_NONCE_MISMATCH = "ERR_NONCE_MISMATCH"
    ERR_SERVER_NONCE_MISMATCH = "ERR_SERVER_NONCE_MISMATCH"
    ERR_FACTORIZATION_FAILED = "ERR_FACTORIZATION_FAILED"
    ERR_RSA_KEY_NOT_FOUND = "ERR_RSA_KEY_NOT_FOUND"
    ERR_RSA_ENCRYPTION_FAILED = "ERR_RSA_ENCRYPTION_FAILED"
    ERR_DECRYPTION_FAILED = "ERR_DECRYPTION_FAILED"
    ERR_DH_VALIDATION_FAILED = "ERR_DH_VALIDATION_FAILED"
    ERR_HASH_MISMATCH = "ERR_HASH_MISMATCH"
    ERR_NEW_NONCE_HASH_MISMATCH = "ERR_NEW_NONCE_HASH_MISMATCH"

    # server-side refusals (server_DH_params_fail / dh_gen_retry / dh_gen_fail)
    ERR_SERVER_DH_PARAMS_FAIL = "ERR_SERVER_DH_PARAMS_FAIL"
    ERR_DH_GEN_RETRY = "ERR_DH_GEN_RETRY"
    ERR_DH_GEN_FAIL = "ERR_DH_GEN_FAIL"

    # driver only
    ERR_TIMEOUT = "ERR_TIMEOUT"
    ERR_IO = "ERR_IO"

    ERR_INTERNAL = "ERR_INTERNAL"


@dataclass(frozen=True)
class Failure:
    """
    Error carrier returned inside Result.Err.
    Every handshake failure is fatal; `fatal` is written to the driver's audit record.
    detail is LOCAL-ONLY (may name fingerprints or violated checks, never secrets).
    """
    layer: FailureLayer
    phase: FailurePhase
    code: FailureCode
    fatal: bool = True
    detail: Optional[str] = None

    def redacted(self) -> "Failure":
        return Failure(
            layer=self.layer,
            phase=self.phase,
            code=self.code,
            fatal=self.fatal,
            detail=None,
        )

    def __str__(self) -> str:
        s = f"{self.code.value} ({self.layer.value}/{self.phase.value})"
        return f"{s}: {self.detail}" if self.detail else s
