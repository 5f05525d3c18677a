# MIT License © 2025 Motohiro Suzuki
"""
attack_scenarios/common.py

Shared setup for the runners: fresh server key, synthetic server and a
client handshake that trusts only that key.

Run a scenario from the repository root:
    python -m attack_scenarios.attack_01_nonce_spoof.runner
"""

from __future__ import annotations

import logging

from cryptography.hazmat.primitives.asymmetric import rsa

from attack_scenarios.mtproto_server import SyntheticServer
from keys.rsa_keys import RsaKeySet
from protocol.dc import DcId
from protocol.failure import FailureCode
from protocol.handshake import MTProtoHandshake
from protocol.handshake_types import HandshakeMode


def setup() -> tuple[MTProtoHandshake, SyntheticServer]:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s %(message)s")
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    server = SyntheticServer(key)
    hs = MTProtoHandshake(DcId.internal(2), HandshakeMode.main(), RsaKeySet.of([server.public]))
    return hs, server


def expect_rejected(label: str, results: list, code: FailureCode, hs: MTProtoHandshake) -> int:
    last = results[-1]
    if last.ok:
        print(f"[FAIL] {label}: accepted (should have been rejected)")
        return 1
    if last.failure.code is not code:
        print(f"[FAIL] {label}: rejected, but unexpected reason: {last.failure}")
        return 1
    if hs.auth_key is not None:
        print(f"[FAIL] {label}: rejected, but auth_key is exposed")
        return 1
    print(f"[OK] {label} rejected: {last.failure.code.value}")
    return 0
