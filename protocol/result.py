# MIT License © 2025 Motohiro Suzuki
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    What MTProtoHandshake steps and client_handshake() hand back.

    Ok carries the next action (Send / Complete); Err carries the Failure
    that ended the handshake. `code` is a shortcut for asserting on the
    failure code without unwrapping.
    """
    ok: bool
    value: Optional[T] = None
    failure: Optional["Failure"] = None

    @staticmethod
    def Ok(v: T) -> "Result[T]":
        return Result(ok=True, value=v, failure=None)

    @staticmethod
    def Err(f: "Failure") -> "Result[T]":
        return Result(ok=False, value=None, failure=f)

    @property
    def code(self) -> Optional["FailureCode"]:
        return None if self.failure is None else self.failure.code

    def unwrap(self) -> T:
        """The action, or RuntimeError naming the (redacted) failure."""
        if not self.ok or self.value is None:
            raise RuntimeError(f"handshake step failed: {self.failure.redacted() if self.failure else None}")
        return self.value


from protocol.failure import Failure, FailureCode  # noqa: E402
