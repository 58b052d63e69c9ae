"""期間と有効期限の計算ユーティリティ"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Literal

TimeSpanUnit = Literal["ms", "s", "m", "h", "d", "w"]

_UNIT_MILLISECONDS: dict[str, int] = {
    "ms": 1,
    "s": 1000,
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
    "w": 7 * 24 * 60 * 60 * 1000,
}


@dataclass(frozen=True)
class TimeSpan:
    """単位付きの期間。例: TimeSpan(30, "d")"""

    value: int | float
    unit: TimeSpanUnit

    def __post_init__(self) -> None:
        if self.unit not in _UNIT_MILLISECONDS:
            raise ValueError(f"Unknown time span unit: {self.unit!r}")

    def milliseconds(self) -> float:
        return self.value * _UNIT_MILLISECONDS[self.unit]

    def seconds(self) -> float:
        return self.milliseconds() / 1000

    def to_timedelta(self) -> timedelta:
        return timedelta(milliseconds=self.milliseconds())

    def half(self) -> timedelta:
        """期間の半分を timedelta で返す。スライディング更新の閾値計算に使う。"""
        return self.to_timedelta() / 2


def utcnow() -> datetime:
    """タイムゾーン付きの現在 UTC 時刻を返す。"""
    return datetime.now(timezone.utc)


def create_date(span: TimeSpan, now: datetime | None = None) -> datetime:
    """now (省略時は現在時刻) から span 後の時刻を返す。"""
    base = now if now is not None else utcnow()
    return base + span.to_timedelta()


def is_within_expiration_date(expires_at: datetime, now: datetime | None = None) -> bool:
    """expires_at がまだ未来であれば True。等しい場合は期限切れとみなす。"""
    current = now if now is not None else utcnow()
    return current < expires_at
