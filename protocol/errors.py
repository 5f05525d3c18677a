# MIT License © 2025 Motohiro Suzuki
"""
protocol/errors.py

Exception types raised by the handshake building blocks.

Each HandshakeError subclass pins a stable FailureCode / FailureLayer so the
orchestrator can turn any raised error into a Failure value without a
lookup table.
"""

from __future__ import annotations

from protocol.failure import FailureCode, FailureLayer


class MTProtoError(Exception):
    pass


class HandshakeError(MTProtoError):
    code: FailureCode = FailureCode.ERR_INTERNAL
    layer: FailureLayer = FailureLayer.PROTOCOL


class InvalidStateError(HandshakeError):
    code = FailureCode.ERR_INVALID_STATE


class NonceMismatchError(HandshakeError):
    code = FailureCode.ERR_NONCE_MISMATCH


class ServerNonceMismatchError(HandshakeError):
    code = FailureCode.ERR_SERVER_NONCE_MISMATCH


class TlDecodeError(HandshakeError, ValueError):
    code = FailureCode.ERR_PARSE


class FactorizationError(HandshakeError):
    code = FailureCode.ERR_FACTORIZATION_FAILED
    layer = FailureLayer.CRYPTO


class RsaKeyNotFoundError(HandshakeError):
    code = FailureCode.ERR_RSA_KEY_NOT_FOUND
    layer = FailureLayer.CRYPTO

    def __init__(self, fingerprint: int) -> None:
        super().__init__(f"no RSA key for fingerprint {fingerprint}")
        self.fingerprint = fingerprint


class RsaEncryptionError(HandshakeError):
    code = FailureCode.ERR_RSA_ENCRYPTION_FAILED
    layer = FailureLayer.CRYPTO


class DecryptionError(HandshakeError):
    code = FailureCode.ERR_DECRYPTION_FAILED
    layer = FailureLayer.CRYPTO


class DhValidationError(HandshakeError):
    code = FailureCode.ERR_DH_VALIDATION_FAILED
    layer = FailureLayer.CRYPTO

    def __init__(self, violations: list[str] | str) -> None:
        if isinstance(violations, str):
            violations = [violations]
        self.violations = list(violations)
        super().__init__("; ".join(self.violations))


class HashMismatchError(HandshakeError):
    code = FailureCode.ERR_HASH_MISMATCH
    layer = FailureLayer.CRYPTO


class NewNonceHashMismatchError(HandshakeError):
    code = FailureCode.ERR_NEW_NONCE_HASH_MISMATCH
    layer = FailureLayer.CRYPTO


class ServerDhParamsFailError(HandshakeError):
    code = FailureCode.ERR_SERVER_DH_PARAMS_FAIL


class DhGenRetryError(HandshakeError):
    code = FailureCode.ERR_DH_GEN_RETRY


class DhGenFailError(HandshakeError):
    code = FailureCode.ERR_DH_GEN_FAIL


class TransportError(MTProtoError, ConnectionError):
    """Raised by transport/io_async.py; the driver maps it to ERR_IO."""

    def __init__(self, message: str, error_code: int | None = None) -> None:
        super().__init__(message)
        self.error_code = error_code
