"""Settlement period presets.

대시보드의 기간 필터(오늘/어제/주간/월간/분기/직접선택)를 절대 시각 구간으로
변환합니다. 날짜 경계는 정산 타임존 기준 자정입니다.
"""

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum

from affiliate_admin.utils.errors import ErrorCode, SettlementError


class PeriodPreset(str, Enum):
    """Dashboard period filter."""

    TODAY = "today"
    YESTERDAY = "yesterday"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    CUSTOM = "custom"


@dataclass(frozen=True)
class SettlementWindow:
    """Absolute time window [start, end]."""

    start: datetime
    end: datetime


def _midnight(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def _subtract_months(day: date, months: int) -> date:
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def resolve_period(
    preset: PeriodPreset,
    now: datetime,
    tz: tzinfo,
    custom_start: date | None = None,
    custom_end: date | None = None,
) -> SettlementWindow:
    """Turn a period preset into a settlement window.

    Args:
        preset: Period filter
        now: Current time (aware)
        tz: Settlement timezone for day boundaries
        custom_start: First day (CUSTOM only)
        custom_end: Last day, inclusive (CUSTOM only, defaults to custom_start)

    Returns:
        SettlementWindow

    Raises:
        SettlementError: INVALID_PERIOD for an incomplete or inverted custom range
    """
    today = now.astimezone(tz).date()
    tomorrow = _midnight(today + timedelta(days=1), tz)

    if preset == PeriodPreset.TODAY:
        return SettlementWindow(_midnight(today, tz), tomorrow)

    if preset == PeriodPreset.YESTERDAY:
        return SettlementWindow(
            _midnight(today - timedelta(days=1), tz),
            _midnight(today, tz),
        )

    if preset == PeriodPreset.WEEK:
        return SettlementWindow(_midnight(today - timedelta(days=7), tz), tomorrow)

    if preset == PeriodPreset.MONTH:
        return SettlementWindow(_midnight(today.replace(day=1), tz), tomorrow)

    if preset == PeriodPreset.QUARTER:
        return SettlementWindow(_midnight(_subtract_months(today, 3), tz), tomorrow)

    if preset == PeriodPreset.CUSTOM:
        if custom_start is None:
            raise SettlementError(
                ErrorCode.INVALID_PERIOD,
                "직접 선택 기간에는 시작일이 필요합니다",
            )
        last_day = custom_end or custom_start
        if last_day < custom_start:
            raise SettlementError(
                ErrorCode.INVALID_PERIOD,
                "종료일이 시작일보다 빠릅니다",
                details={
                    "start": custom_start.isoformat(),
                    "end": last_day.isoformat(),
                },
            )
        return SettlementWindow(
            _midnight(custom_start, tz),
            _midnight(last_day + timedelta(days=1), tz),
        )

    raise SettlementError(
        ErrorCode.INVALID_PERIOD,
        f"알 수 없는 기간 타입: {preset}",
    )


def month_bounds(now: datetime, tz: tzinfo) -> SettlementWindow:
    """First day 00:00 through the last instant of the last day of now's month."""
    local = now.astimezone(tz)
    first_day = local.date().replace(day=1)
    last_day = first_day.replace(
        day=calendar.monthrange(first_day.year, first_day.month)[1]
    )
    return SettlementWindow(
        _midnight(first_day, tz),
        datetime.combine(last_day, time.max, tzinfo=tz),
    )
