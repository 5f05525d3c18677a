# MIT License © 2025 Motohiro Suzuki
"""
Shared fixtures: a throwaway RSA key pair, the synthetic server and a
handshake factory bound to it.
"""

from __future__ import annotations

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa as rsa_backend

from attack_scenarios.mtproto_server import SERVER_TIME, SyntheticServer, run_exchange
from crypto.rng import SeededRandomSource
from keys.rsa_keys import RsaKeySet
from protocol.config import HandshakeConfig
from protocol.dc import DcId
from protocol.handshake import MTProtoHandshake
from protocol.handshake_types import HandshakeMode


@pytest.fixture(scope="session")
def rsa_private_key():
    return rsa_backend.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def server(rsa_private_key) -> SyntheticServer:
    return SyntheticServer(rsa_private_key)


@pytest.fixture
def rsa_keys(server) -> RsaKeySet:
    return RsaKeySet.of([server.public])


@pytest.fixture
def make_handshake(rsa_keys):
    def _make(mode=None, seed=7, cfg=None, keys=None):
        return MTProtoHandshake(
            DcId.internal(2),
            mode if mode is not None else HandshakeMode.main(),
            keys if keys is not None else rsa_keys,
            rng=SeededRandomSource(seed),
            cfg=cfg if cfg is not None else HandshakeConfig(),
            clock=lambda: float(SERVER_TIME - 5),
        )

    return _make


@pytest.fixture
def run_until():
    return run_exchange
