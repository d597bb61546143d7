"""
Weekly log aggregation

Buckets a patient's logs into the seven calendar days ending today (oldest
first) and derives one value per day for the charts:

- sleep: hours slept, from the day's most recent log with sleepStart/sleepEnd
- incidents: logs recording a behavior or consequence
- hydration: logs with hydration == 'drank'
- food: logs with food 'full' or 'partial'
- meds: logs with meds == 'given'

Everything here is pure: callers pass the logs and "now".
"""
import math
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from carecompass.services.utils import ms_to_datetime

DAYS_IN_WEEK = 7
DEFAULT_SLEEP_START = "22:00"
DEFAULT_SLEEP_END = "06:00"
MINUTES_PER_DAY = 24 * 60

# Fixed English abbreviations so labels don't depend on the process locale
MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

RISK_KEYWORDS = ("aggression", "outburst")
RECENT_LOGS_FOR_STATUS = 3

Log = Dict[str, Any]
DayMetric = Callable[[List[Log]], Optional[float]]


def _aware(now: datetime) -> datetime:
    return now if now.tzinfo is not None else now.astimezone()


def _log_zone(now: datetime) -> Optional[tzinfo]:
    """
    Zone to read log timestamps in; None means the system's local rules

    datetime.now().astimezone() carries a fixed offset, which is only right for
    today. When now is local time each log is converted with the offset in
    force at its own instant, so a DST change inside the week is respected.
    """
    zone = now.tzinfo
    if zone is None:
        return None
    if isinstance(zone, timezone) and now.utcoffset() == now.astimezone().utcoffset():
        return None
    return zone


def day_label(day: date) -> str:
    """e.g. '12 Jan'"""
    return f"{day.day} {MONTHS[day.month - 1]}"


def day_window(now: datetime) -> List[date]:
    """
    The seven calendar days ending with now's day, oldest first
    """
    today = _aware(now).date()
    return [today - timedelta(days=offset) for offset in range(DAYS_IN_WEEK - 1, -1, -1)]


def bucket_logs(logs: Iterable[Log], now: datetime) -> List[Tuple[date, List[Log]]]:
    """
    Group logs by the calendar day (in now's timezone) they were created on

    Only the seven days of the window are kept; each day's logs are newest
    first.
    """
    zone = _log_zone(now)
    days = day_window(now)
    buckets: Dict[date, List[Log]] = {day: [] for day in days}
    for log in logs:
        created_at = log.get("createdAt")
        if created_at is None:
            continue
        day = ms_to_datetime(created_at, zone).date()
        if day in buckets:
            buckets[day].append(log)
    return [
        (day, sorted(buckets[day], key=lambda l: l["createdAt"], reverse=True))
        for day in days
    ]


def parse_clock(value: str) -> Optional[float]:
    """
    Minutes after midnight for an 'HH:MM' string, None when unreadable

    An empty hour or minute part counts as zero ('7:' is 07:00).
    """
    parts = str(value).split(":")
    if len(parts) < 2:
        return None
    numbers = []
    for part in parts[:2]:
        part = part.strip()
        if not part:
            numbers.append(0.0)
            continue
        try:
            number = float(part)
        except ValueError:
            return None
        if not math.isfinite(number):
            return None
        numbers.append(number)
    hours, minutes = numbers
    return hours * 60 + minutes


def sleep_hours(log: Log) -> Optional[float]:
    """
    Hours between sleepStart and sleepEnd

    A missing end (or start) falls back to the default bedtime/wake time.
    An end at or before the start means the sleep crossed midnight.
    """
    if not log.get("sleepStart") and not log.get("sleepEnd"):
        return None
    start = parse_clock(log.get("sleepStart") or DEFAULT_SLEEP_START)
    end = parse_clock(log.get("sleepEnd") or DEFAULT_SLEEP_END)
    if start is None or end is None:
        return None
    if end <= start:
        end += MINUTES_PER_DAY
    return (end - start) / 60


# Per-day metrics. Each takes one day's logs, newest first.

def daily_sleep(day_logs: List[Log]) -> Optional[float]:
    for log in day_logs:
        if log.get("sleepStart") or log.get("sleepEnd"):
            return sleep_hours(log)
    return None


def count_incidents(day_logs: List[Log]) -> int:
    return sum(1 for log in day_logs if log.get("behavior") or log.get("consequence"))


def count_hydration(day_logs: List[Log]) -> int:
    return sum(1 for log in day_logs if log.get("hydration") == "drank")


def count_meals(day_logs: List[Log]) -> int:
    return sum(1 for log in day_logs if log.get("food") in ("full", "partial"))


def count_meds(day_logs: List[Log]) -> int:
    return sum(1 for log in day_logs if log.get("meds") == "given")


METRICS: Dict[str, DayMetric] = {
    "sleep": daily_sleep,
    "incidents": count_incidents,
    "hydration": count_hydration,
    "food": count_meals,
    "meds": count_meds,
}


def _resolve(metric) -> DayMetric:
    if callable(metric):
        return metric
    try:
        return METRICS[metric]
    except KeyError:
        raise ValueError(f"Unknown metric '{metric}'. Expected one of: {', '.join(METRICS)}")


def weekly_series(logs: Iterable[Log], now: datetime, metric) -> List[Tuple[str, Optional[float]]]:
    """
    Seven (label, value) pairs, oldest day first

    metric is a METRICS name or any callable taking one day's logs.
    """
    compute = _resolve(metric)
    return [(day_label(day), compute(day_logs)) for day, day_logs in bucket_logs(logs, now)]


def weekly_summary(logs: Iterable[Log], now: datetime) -> Dict[str, Any]:
    """
    All metrics for the week in one pass over the buckets
    """
    logs = list(logs)
    buckets = bucket_logs(logs, now)
    summary: Dict[str, Any] = {"labels": [day_label(day) for day, _ in buckets]}
    for name, compute in METRICS.items():
        summary[name] = [compute(day_logs) for _, day_logs in buckets]
    summary["status"] = compute_status_from_logs(logs)
    return summary


def _split(series: List[Tuple[str, Any]]) -> Tuple[List[str], List[Any]]:
    return [label for label, _ in series], [value for _, value in series]


# Chart payloads in the shape the dashboard pages consume

def aggregate_weekly(logs: Iterable[Log], now: datetime) -> Dict[str, List]:
    logs = list(logs)
    labels, sleeps = _split(weekly_series(logs, now, "sleep"))
    _, behaviors = _split(weekly_series(logs, now, "incidents"))
    return {"sleeps": sleeps, "behaviors": behaviors, "labels": labels}


def aggregate_hydration_weekly(logs: Iterable[Log], now: datetime) -> Dict[str, List]:
    labels, water = _split(weekly_series(logs, now, "hydration"))
    return {"water": water, "labels": labels}


def aggregate_food_weekly(logs: Iterable[Log], now: datetime) -> Dict[str, List]:
    labels, food = _split(weekly_series(logs, now, "food"))
    return {"food": food, "labels": labels}


def aggregate_meds_weekly(logs: Iterable[Log], now: datetime) -> Dict[str, List]:
    labels, meds = _split(weekly_series(logs, now, "meds"))
    return {"meds": meds, "labels": labels}


def compute_status_from_logs(logs: Iterable[Log]) -> str:
    """
    'risk' if any of the three most recent logs mentions aggression or an
    outburst, otherwise 'stable'
    """
    recent = sorted(logs, key=lambda l: l.get("createdAt") or 0, reverse=True)[:RECENT_LOGS_FOR_STATUS]
    for log in recent:
        behavior = str(log.get("behavior") or "").lower()
        if any(keyword in behavior for keyword in RISK_KEYWORDS):
            return "risk"
    return "stable"


# Display helpers

def format_time_ago(timestamp_ms: int, now_ms: int) -> str:
    mins = (now_ms - timestamp_ms) // 60000
    if mins < 1:
        return "just now"
    if mins < 60:
        return f"{mins}m ago"
    hrs = mins // 60
    if hrs < 24:
        return f"{hrs}h ago"
    return f"{hrs // 24}d ago"


def format_date_time(timestamp_ms: int, tz=None) -> str:
    """e.g. 'Jan 12, 14:05'"""
    moment = ms_to_datetime(timestamp_ms, tz)
    return f"{MONTHS[moment.month - 1]} {moment.day}, {moment:%H:%M}"


def minutes_until(timestamp_ms: int, now_ms: int) -> int:
    """Whole minutes left, rounded half up, never negative"""
    return max(0, math.floor((timestamp_ms - now_ms) / 60000 + 0.5))
