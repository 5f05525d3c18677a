# MIT License © 2025 Motohiro Suzuki
"""
attack_scenarios/attack_02_tampered_answer/runner.py

Attack A-02: on-path bit flip inside server_DH_params_ok.encrypted_answer.
Expected: fail-closed ERR_HASH_MISMATCH (SHA1 over the decrypted inner data).

Exit code:
- 0 if rejected correctly
- 1 otherwise
"""

from attack_scenarios.common import expect_rejected, setup
from attack_scenarios.mtproto_server import run_exchange
from protocol.failure import FailureCode
from protocol.messages import ServerDHParamsOk, parse_server_dh_params


def main() -> int:
    hs, server = setup()
    honest = server.server_dh_params

    def tampered(blob: bytes) -> bytes:
        m = parse_server_dh_params(honest(blob))
        enc = bytearray(m.encrypted_answer)
        enc[40] ^= 0x80
        return ServerDHParamsOk(m.nonce, m.server_nonce, bytes(enc)).to_bytes()

    server.server_dh_params = tampered
    return expect_rejected("tampered answer", run_exchange(hs, server), FailureCode.ERR_HASH_MISMATCH, hs)


if __name__ == "__main__":
    raise SystemExit(main())
