"""Date and time functions.

Timestamps travel as ISO 8601 strings. Format strings use the .NET custom
and standard date format vocabulary that exported flows carry.
"""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta, timezone
from typing import Any

from ...errors import EvaluationError
from .registry import builtin, require_text, to_int, to_text

_EPOCH_TICKS = datetime(1, 1, 1, tzinfo=timezone.utc)

_STANDARD_FORMATS = {
    "d": "M/d/yyyy",
    "D": "dddd, MMMM d, yyyy",
    "f": "dddd, MMMM d, yyyy h:mm tt",
    "F": "dddd, MMMM d, yyyy h:mm:ss tt",
    "g": "M/d/yyyy h:mm tt",
    "G": "M/d/yyyy h:mm:ss tt",
    "m": "MMMM d",
    "M": "MMMM d",
    "r": "ddd, dd MMM yyyy HH':'mm':'ss 'GMT'",
    "R": "ddd, dd MMM yyyy HH':'mm':'ss 'GMT'",
    "s": "yyyy'-'MM'-'dd'T'HH':'mm':'ss",
    "t": "h:mm tt",
    "T": "h:mm:ss tt",
    "u": "yyyy'-'MM'-'dd HH':'mm':'ss'Z'",
    "y": "MMMM yyyy",
    "Y": "MMMM yyyy",
}


def parse_timestamp(value: Any, fn_name: str) -> datetime:
    if isinstance(value, datetime):
        dt = value
    else:
        text = require_text(value, fn_name).strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        if "." in text:
            head, _, tail = text.partition(".")
            digits = ""
            while tail and tail[0].isdigit():
                digits, tail = digits + tail[0], tail[1:]
            text = f"{head}.{digits[:6].ljust(6, '0')}{tail}"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError as exc:
            raise EvaluationError(f"{fn_name}() could not parse timestamp {value!r}") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _pad_fraction(dt: datetime, width: int) -> str:
    return f"{dt.microsecond:06d}0"[:width]


def format_timestamp(dt: datetime, fmt: Any = None) -> str:
    pattern = to_text(fmt) if fmt is not None else ""
    if not pattern or pattern in {"o", "O"}:
        return dt.strftime("%Y-%m-%dT%H:%M:%S.") + _pad_fraction(dt, 7) + "Z"
    if len(pattern) == 1:
        if pattern not in _STANDARD_FORMATS:
            raise EvaluationError(f"formatDateTime() does not understand the format '{pattern}'")
        pattern = _STANDARD_FORMATS[pattern]
    return _render_custom(dt, pattern)


def _render_custom(dt: datetime, pattern: str) -> str:
    out: list[str] = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch in {"'", '"'}:
            end = pattern.find(ch, i + 1)
            if end == -1:
                end = len(pattern)
            out.append(pattern[i + 1 : end])
            i = end + 1
            continue
        if ch == "\\" and i + 1 < len(pattern):
            out.append(pattern[i + 1])
            i += 2
            continue
        run = 1
        while i + run < len(pattern) and pattern[i + run] == ch:
            run += 1
        out.append(_render_token(dt, ch, run))
        i += run
    return "".join(out)


def _render_token(dt: datetime, ch: str, run: int) -> str:
    hour12 = dt.hour % 12 or 12
    if ch == "y":
        return f"{dt.year % 100:02d}" if run <= 2 else f"{dt.year:0{run}d}"
    if ch == "M":
        if run >= 4:
            return calendar.month_name[dt.month]
        if run == 3:
            return calendar.month_abbr[dt.month]
        return f"{dt.month:0{run}d}"
    if ch == "d":
        if run >= 4:
            return calendar.day_name[dt.weekday()]
        if run == 3:
            return calendar.day_abbr[dt.weekday()]
        return f"{dt.day:0{run}d}"
    if ch == "H":
        return f"{dt.hour:0{min(run, 2)}d}"
    if ch == "h":
        return f"{hour12:0{min(run, 2)}d}"
    if ch == "m":
        return f"{dt.minute:0{min(run, 2)}d}"
    if ch == "s":
        return f"{dt.second:0{min(run, 2)}d}"
    if ch in {"f", "F"}:
        fraction = _pad_fraction(dt, min(run, 7))
        return fraction.rstrip("0") if ch == "F" else fraction
    if ch == "t":
        marker = "AM" if dt.hour < 12 else "PM"
        return marker[:run] if run < 2 else marker
    if ch == "K":
        return "Z"
    if ch == "z":
        return "+00:00" if run >= 3 else "+00" if run == 2 else "+0"
    return ch * run


def add_interval(dt: datetime, amount: int, unit: str) -> datetime:
    key = unit.strip().lower().rstrip("s")
    if key == "second":
        return dt + timedelta(seconds=amount)
    if key == "minute":
        return dt + timedelta(minutes=amount)
    if key == "hour":
        return dt + timedelta(hours=amount)
    if key == "day":
        return dt + timedelta(days=amount)
    if key == "week":
        return dt + timedelta(weeks=amount)
    if key in {"month", "year"}:
        months = amount * (12 if key == "year" else 1)
        total = dt.year * 12 + (dt.month - 1) + months
        year, month = divmod(total, 12)
        day = min(dt.day, calendar.monthrange(year, month + 1)[1])
        return dt.replace(year=year, month=month + 1, day=day)
    raise EvaluationError(f"Unknown time unit '{unit}'")


def _now() -> datetime:
    return datetime.now(timezone.utc)


@builtin("utcNow", max_args=1)
def utc_now(rt, fmt=None) -> str:
    return format_timestamp(_now(), fmt)


def _shift(value, amount, unit: str, fmt, fn_name: str) -> str:
    dt = parse_timestamp(value, fn_name)
    return format_timestamp(add_interval(dt, to_int(amount, fn_name), unit), fmt)


@builtin("addDays", min_args=2, max_args=3)
def add_days(rt, timestamp, days, fmt=None) -> str:
    return _shift(timestamp, days, "day", fmt, "addDays")


@builtin("addHours", min_args=2, max_args=3)
def add_hours(rt, timestamp, hours, fmt=None) -> str:
    return _shift(timestamp, hours, "hour", fmt, "addHours")


@builtin("addMinutes", min_args=2, max_args=3)
def add_minutes(rt, timestamp, minutes, fmt=None) -> str:
    return _shift(timestamp, minutes, "minute", fmt, "addMinutes")


@builtin("addSeconds", min_args=2, max_args=3)
def add_seconds(rt, timestamp, seconds, fmt=None) -> str:
    return _shift(timestamp, seconds, "second", fmt, "addSeconds")


@builtin("addToTime", min_args=3, max_args=4)
def add_to_time(rt, timestamp, interval, unit, fmt=None) -> str:
    return _shift(timestamp, interval, to_text(unit), fmt, "addToTime")


@builtin("subtractFromTime", min_args=3, max_args=4)
def subtract_from_time(rt, timestamp, interval, unit, fmt=None) -> str:
    return _shift(timestamp, -to_int(interval, "subtractFromTime"), to_text(unit), fmt, "subtractFromTime")


@builtin("getPastTime", min_args=2, max_args=3)
def get_past_time(rt, interval, unit, fmt=None) -> str:
    return format_timestamp(add_interval(_now(), -to_int(interval, "getPastTime"), to_text(unit)), fmt or None)


@builtin("getFutureTime", min_args=2, max_args=3)
def get_future_time(rt, interval, unit, fmt=None) -> str:
    return format_timestamp(add_interval(_now(), to_int(interval, "getFutureTime"), to_text(unit)), fmt or None)


@builtin("startOfDay", min_args=1, max_args=2)
def start_of_day(rt, timestamp, fmt=None) -> str:
    dt = parse_timestamp(timestamp, "startOfDay")
    return format_timestamp(dt.replace(hour=0, minute=0, second=0, microsecond=0), fmt)


@builtin("startOfHour", min_args=1, max_args=2)
def start_of_hour(rt, timestamp, fmt=None) -> str:
    dt = parse_timestamp(timestamp, "startOfHour")
    return format_timestamp(dt.replace(minute=0, second=0, microsecond=0), fmt)


@builtin("startOfMonth", min_args=1, max_args=2)
def start_of_month(rt, timestamp, fmt=None) -> str:
    dt = parse_timestamp(timestamp, "startOfMonth")
    return format_timestamp(dt.replace(day=1, hour=0, minute=0, second=0, microsecond=0), fmt)


@builtin("dayOfMonth", min_args=1, max_args=1)
def day_of_month(rt, timestamp) -> int:
    return parse_timestamp(timestamp, "dayOfMonth").day


@builtin("dayOfWeek", min_args=1, max_args=1)
def day_of_week(rt, timestamp) -> int:
    # Sunday is 0.
    return (parse_timestamp(timestamp, "dayOfWeek").weekday() + 1) % 7


@builtin("dayOfYear", min_args=1, max_args=1)
def day_of_year(rt, timestamp) -> int:
    return parse_timestamp(timestamp, "dayOfYear").timetuple().tm_yday


@builtin("formatDateTime", min_args=1, max_args=3)
def format_date_time(rt, timestamp, fmt=None, locale=None) -> str:
    return format_timestamp(parse_timestamp(timestamp, "formatDateTime"), fmt)


@builtin("ticks", min_args=1, max_args=1)
def ticks(rt, timestamp) -> int:
    delta = parse_timestamp(timestamp, "ticks") - _EPOCH_TICKS
    return (delta.days * 86_400 + delta.seconds) * 10_000_000 + delta.microseconds * 10
