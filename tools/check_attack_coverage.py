# MIT License © 2025 Motohiro Suzuki
"""
tools/check_attack_coverage.py

Ensures that every attack in attacks/attack_table.yml names executable
evidence: a test (path::test_name, the test function must exist in that
file) and a runner script.

Exit code 1 (CI failure) when any attack lacks evidence.
"""

import re
import sys
from pathlib import Path

import yaml

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ATTACK_TABLE = PROJECT_ROOT / "attacks" / "attack_table.yml"


def find_missing(table: Path, root: Path) -> tuple[list[str], int]:
    data = yaml.safe_load(table.read_text(encoding="utf-8")) or {}
    attacks = data.get("attacks", [])
    if not attacks:
        return ["no attacks defined in attack_table.yml"], 0

    missing = []
    seen = set()
    for attack in attacks:
        attack_id = attack.get("attack_id")
        if not attack_id:
            missing.append("attack without attack_id")
            continue
        if attack_id in seen:
            missing.append(f"{attack_id}: duplicate attack_id")
        seen.add(attack_id)

        test_ref = attack.get("evidence_test")
        if test_ref:
            test_path, _, test_name = test_ref.partition("::")
            p = root / test_path
            if not p.exists():
                missing.append(f"{attack_id}: missing test {test_path}")
            elif test_name and not re.search(
                rf"^def {re.escape(test_name)}\(", p.read_text(encoding="utf-8"), re.M
            ):
                missing.append(f"{attack_id}: {test_path} has no {test_name}")
        else:
            missing.append(f"{attack_id}: evidence_test not defined")

        script_ref = attack.get("evidence_script")
        if script_ref:
            if not (root / script_ref).exists():
                missing.append(f"{attack_id}: missing script {script_ref}")
        else:
            missing.append(f"{attack_id}: evidence_script not defined")

    return missing, len(attacks)


def main(table: Path = ATTACK_TABLE, root: Path = PROJECT_ROOT) -> int:
    if not table.exists():
        print(f"[FAIL] attack table not found: {table}")
        return 1

    missing, count = find_missing(table, root)
    if missing:
        print("[FAIL] attack coverage incomplete:")
        for m in missing:
            print(f"  - {m}")
        return 1

    print(f"[OK] attack coverage complete ({count} attacks)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
