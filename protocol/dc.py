# MIT License © 2025 Motohiro Suzuki
from __future__ import annotations

from dataclasses import dataclass

MAX_RAW_DC_ID = 1000
TEST_DC_OFFSET = 10000


@dataclass(frozen=True)
class DcId:
    """
    Data-center identity a handshake is bound to.

    `wire_value()` is what p_q_inner_data carries in its `dc` field:
    raw id, +10000 on the test network, negated for media-only DCs.
    """
    raw_id: int
    external: bool = False
    test: bool = False
    media: bool = False

    def __post_init__(self) -> None:
        if not 1 <= int(self.raw_id) <= MAX_RAW_DC_ID:
            raise ValueError(f"dc id {self.raw_id} not in 1..{MAX_RAW_DC_ID}")

    @staticmethod
    def internal(raw_id: int) -> "DcId":
        return DcId(raw_id=int(raw_id))

    @staticmethod
    def cdn(raw_id: int) -> "DcId":
        return DcId(raw_id=int(raw_id), external=True)

    def wire_value(self) -> int:
        v = self.raw_id + (TEST_DC_OFFSET if self.test else 0)
        return -v if self.media else v

    def __str__(self) -> str:
        s = f"dc{self.raw_id}"
        if self.external:
            s += "/cdn"
        if self.test:
            s += "/test"
        if self.media:
            s += "/media"
        return s
