# MIT License © 2025 Motohiro Suzuki
"""
attack_scenarios/attack_04_forged_new_nonce_hash/runner.py

Attack A-04: dh_gen_ok with a forged new_nonce_hash1 (server that does not
hold the key claims success).
Expected: fail-closed ERR_NEW_NONCE_HASH_MISMATCH, no auth_key exposed.

Exit code:
- 0 if rejected correctly
- 1 otherwise
"""

from attack_scenarios.common import expect_rejected, setup
from attack_scenarios.mtproto_server import run_exchange
from protocol.failure import FailureCode


def main() -> int:
    hs, server = setup()
    server.flip_hash_bit = 77
    results = run_exchange(hs, server)
    return expect_rejected("forged new_nonce_hash", results, FailureCode.ERR_NEW_NONCE_HASH_MISMATCH, hs)


if __name__ == "__main__":
    raise SystemExit(main())
