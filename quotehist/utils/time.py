from datetime import datetime as dt, date as Date, time, timedelta, timezone as tz
from zoneinfo import ZoneInfo

from quotehist.const import MARKET_CLOSE_HOUR


def handle_zone(time_zone: str | ZoneInfo) -> ZoneInfo:
  if isinstance(time_zone, str):
    time_zone = ZoneInfo(time_zone)

  return time_zone


def now_seconds() -> int:
  return int(dt.now(tz.utc).timestamp())


def market_close_seconds(date: Date, time_zone: str | ZoneInfo) -> int:
  """Seconds since epoch of 16:00 local time on `date` in `time_zone`.

  Ambiguous local times resolve to the earlier instant. Local times that fall
  into a gap are shifted forward by the length of the gap (fold=0 semantics).
  """
  local = dt.combine(date, time(MARKET_CLOSE_HOUR), tzinfo=handle_zone(time_zone))
  return int(local.timestamp())


def seconds_before_now(duration: timedelta) -> int:
  return now_seconds() - int(duration.total_seconds())
