# MIT License © 2025 Motohiro Suzuki
"""
attack_scenarios/attack_03_weak_dh_params/runner.py

Attack A-03: malicious server pushes g_a = 1 (small subgroup) so the
shared key would collapse to a constant.
Expected: fail-closed ERR_DH_VALIDATION_FAILED before g_b is sent.

Exit code:
- 0 if rejected correctly
- 1 otherwise
"""

from attack_scenarios.common import expect_rejected, setup
from attack_scenarios.mtproto_server import run_exchange
from protocol.failure import FailureCode


def main() -> int:
    hs, server = setup()
    server.g_a = b"\x01"
    results = run_exchange(hs, server)
    return expect_rejected("small-subgroup g_a", results, FailureCode.ERR_DH_VALIDATION_FAILED, hs)


if __name__ == "__main__":
    raise SystemExit(main())
