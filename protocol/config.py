# MIT License © 2025 Motohiro Suzuki
from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Optional

import yaml

DEFAULT_TEMP_EXPIRES_IN = 86400


class HandshakeConfig:
    """
    Tunables for one auth-key handshake.

    Unknown keyword arguments are ignored so a shared YAML file can carry
    settings for other layers.
    """

    def __init__(
        self,
        *,
        temp_expires_in: int = DEFAULT_TEMP_EXPIRES_IN,
        rsa_max_attempts: int = 10,
        dh_max_draws: int = 64,
        verify_dh_prime: bool = True,
        step_timeout: float = 15.0,
        audit_log_path: str | None = None,
        rsa_key_files: Iterable[str] | None = None,
        test_dc: bool = False,
        **_ignored: Any,
    ) -> None:
        self.temp_expires_in = int(temp_expires_in)
        self.rsa_max_attempts = int(rsa_max_attempts)
        self.dh_max_draws = int(dh_max_draws)
        self.verify_dh_prime = bool(verify_dh_prime)
        self.step_timeout = float(step_timeout)
        self.test_dc = bool(test_dc)

        self.audit_log_path: Optional[str] = None
        if isinstance(audit_log_path, str) and audit_log_path.strip():
            self.audit_log_path = audit_log_path.strip()

        self.rsa_key_files = [str(p) for p in (rsa_key_files or [])]

        if self.temp_expires_in <= 0:
            raise ValueError("temp_expires_in must be > 0")
        if self.rsa_max_attempts <= 0:
            raise ValueError("rsa_max_attempts must be > 0")
        if self.dh_max_draws <= 0:
            raise ValueError("dh_max_draws must be > 0")
        if self.step_timeout <= 0:
            raise ValueError("step_timeout must be > 0")

    def load_rsa_keys(self):
        """Key set from rsa_key_files, or the bundled Telegram keys when none are set."""
        from keys.rsa_keys import default_key_set, load_key_set

        if self.rsa_key_files:
            return load_key_set(self.rsa_key_files)
        return default_key_set(test=self.test_dc)

    def __repr__(self) -> str:
        return (
            f"HandshakeConfig(temp_expires_in={self.temp_expires_in}, "
            f"rsa_max_attempts={self.rsa_max_attempts}, dh_max_draws={self.dh_max_draws}, "
            f"verify_dh_prime={self.verify_dh_prime}, step_timeout={self.step_timeout})"
        )


def load_config(path: str | Path) -> HandshakeConfig:
    """
    Read a YAML file. Settings may sit at top level or under a `handshake:` key.
    """
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"config root must be a mapping: {path}")
    section = data.get("handshake", data)
    if not isinstance(section, dict):
        raise ValueError("`handshake` section must be a mapping")
    return HandshakeConfig(**section)
