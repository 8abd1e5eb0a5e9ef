"""Small value objects shared across the domain model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Final

ZERO: Final[Decimal] = Decimal(0)
ONE_DAY: Final[timedelta] = timedelta(days=1)


class InvalidDateRangeError(ValueError):
    """Raised when a date range is empty, inverted, or outside its allowed window."""


@dataclass(frozen=True, slots=True)
class DateRange:
    """Half-open stay window: ``check_out`` is exclusive."""

    check_in: date
    check_out: date

    def __post_init__(self) -> None:
        if self.check_out <= self.check_in:
            raise InvalidDateRangeError(
                f"check-out {self.check_out} must be after check-in {self.check_in}"
            )

    @classmethod
    def single_day(cls, day: date) -> DateRange:
        return cls(day, day + ONE_DAY)

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    def contains_day(self, day: date) -> bool:
        return self.check_in <= day < self.check_out

    def within(self, other: DateRange) -> bool:
        return other.check_in <= self.check_in and self.check_out <= other.check_out

    def as_iso(self) -> tuple[str, str]:
        return self.check_in.isoformat(), self.check_out.isoformat()


def to_decimal(value: object) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)  # type: ignore[arg-type]
