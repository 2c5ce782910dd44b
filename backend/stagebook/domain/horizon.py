from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Callable

from ..utils.time import add_months, local_today, parse_date_key, to_date_key
from .errors import ValidationError


@dataclass(frozen=True)
class Horizon:
    """
    Rolling booking window: from today up to ``months`` calendar months ahead.

    Recomputed from the clock on every call so a long-lived process rolls over
    at midnight without a restart.
    """

    months: int = 3
    clock: Callable[[], date] = field(default=local_today)

    def __post_init__(self) -> None:
        if self.months < 1:
            raise ValueError("horizon months must be >= 1")

    def today(self) -> date:
        return self.clock()

    def today_key(self) -> str:
        return to_date_key(self.today())

    def end_date(self) -> date:
        return add_months(self.today(), self.months)

    def max_date_key(self) -> str:
        return to_date_key(self.end_date())

    def is_past(self, date_key: str) -> bool:
        return date_key < self.today_key()

    def is_too_future(self, date_key: str) -> bool:
        return date_key > self.max_date_key()

    def is_bookable(self, date_key: str) -> bool:
        return not self.is_past(date_key) and not self.is_too_future(date_key)

    def month_bounds(self) -> tuple[tuple[int, int], tuple[int, int]]:
        """First and last (year, month) a calendar view may page to."""
        today = self.today()
        end = self.end_date()
        return (today.year, today.month), (end.year, end.month)

    def can_show_month(self, year: int, month: int) -> bool:
        low, high = self.month_bounds()
        return low <= (year, month) <= high


def check_date_key(date_key: str) -> date:
    try:
        return parse_date_key(date_key)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
