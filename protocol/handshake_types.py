# MIT License © 2025 Motohiro Suzuki
"""
protocol/handshake_types.py

Shared handshake types: state, mode and the actions a step hands back.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from protocol.config import DEFAULT_TEMP_EXPIRES_IN


class HandshakeState(str, Enum):
    START = "start"
    RES_PQ = "res_pq"
    SERVER_DH_PARAMS = "server_dh_params"
    DH_GEN_RESPONSE = "dh_gen_response"
    FINISH = "finish"


@dataclass(frozen=True)
class HandshakeMode:
    """MAIN = permanent key, TEMP = temporary key bound to expires_in seconds."""
    temp: bool = False
    expires_in: Optional[int] = None

    @staticmethod
    def main() -> "HandshakeMode":
        return HandshakeMode(temp=False, expires_in=None)

    @staticmethod
    def temporary(expires_in: int = DEFAULT_TEMP_EXPIRES_IN) -> "HandshakeMode":
        if int(expires_in) <= 0:
            raise ValueError("expires_in must be > 0")
        return HandshakeMode(temp=True, expires_in=int(expires_in))

    @property
    def name(self) -> str:
        return "temp" if self.temp else "main"


@dataclass(frozen=True)
class Send:
    data: bytes

    def __repr__(self) -> str:
        return f"Send(<{len(self.data)} bytes>)"


@dataclass(frozen=True)
class Complete:
    auth_key: bytes
    server_salt: int

    def __repr__(self) -> str:
        return "Complete(auth_key=<redacted>, server_salt=<redacted>)"


HandshakeAction = Union[Send, Complete]
