"""
Time helpers shared by services

Stored timestamps are epoch milliseconds, as the browser client writes them.
"""
import time
from datetime import datetime, tzinfo
from typing import Optional


def now_ms() -> int:
    return int(time.time() * 1000)


def ms_to_datetime(timestamp_ms: int, tz: Optional[tzinfo] = None) -> datetime:
    """
    Convert epoch ms to an aware datetime in tz (local time when tz is None)
    """
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=tz)
    return moment if tz is not None else moment.astimezone()


def datetime_to_ms(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return int(moment.timestamp() * 1000)
