# MIT License © 2025 Motohiro Suzuki
"""
attack_scenarios/attack_01_nonce_spoof/runner.py

Attack A-01: resPQ carrying a nonce the client never sent
(blind injection / cross-session replay of resPQ).
Expected: fail-closed ERR_NONCE_MISMATCH.

Exit code:
- 0 if rejected correctly
- 1 otherwise
"""

from attack_scenarios.common import expect_rejected, setup
from attack_scenarios.mtproto_server import run_exchange
from protocol.failure import FailureCode


def main() -> int:
    hs, server = setup()
    honest = server.res_pq

    def spoofed(blob: bytes) -> bytes:
        out = bytearray(honest(blob))
        out[4:20] = b"\xaa" * 16
        return bytes(out)

    server.res_pq = spoofed
    return expect_rejected("spoofed nonce", run_exchange(hs, server), FailureCode.ERR_NONCE_MISMATCH, hs)


if __name__ == "__main__":
    raise SystemExit(main())
