from dataclasses import dataclass
from datetime import date as Date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Self
from zoneinfo import ZoneInfo

import httpx
from pydantic import BaseModel, ConfigDict, NonNegativeInt, model_validator

from quotehist.const import OPEN_END
from quotehist.utils.time import market_close_seconds, now_seconds, seconds_before_now


class Frequency(Enum):
  DAILY = "d"
  WEEKLY = "wk"
  MONTHLY = "mo"

  @property
  def interval(self) -> str:
    return f"1{self.value}"


class TickVariant(Enum):
  HISTORY = "history"
  DIVIDEND = "div"
  SPLIT = "split"


class PeriodSpec(BaseModel):
  """Closed interval in seconds since the Unix epoch (UTC)."""

  model_config = ConfigDict(frozen=True)

  start_seconds: int = 0
  end_seconds: int = OPEN_END

  @model_validator(mode="after")
  def validate_bounds(self) -> Self:
    if self.start_seconds > now_seconds():
      raise ValueError("start > now")

    if self.start_seconds > self.end_seconds:
      raise ValueError("start > end")

    return self

  @classmethod
  def from_seconds(cls, start: int, end: int = OPEN_END) -> "PeriodSpec":
    return cls(start_seconds=start, end_seconds=end)

  @classmethod
  def since(cls, duration: timedelta) -> "PeriodSpec":
    return cls(start_seconds=seconds_before_now(duration))

  @classmethod
  def from_dates(
    cls, time_zone: str | ZoneInfo, start: Date, end: Date | None = None
  ) -> "PeriodSpec":
    start_seconds = market_close_seconds(start, time_zone)
    if end is None:
      return cls(start_seconds=start_seconds)

    return cls(
      start_seconds=start_seconds,
      end_seconds=market_close_seconds(end, time_zone),
    )


class HistoryTick(BaseModel):
  model_config = ConfigDict(frozen=True)

  date: Date
  open: Decimal
  high: Decimal
  low: Decimal
  close: Decimal
  adjusted_close: Decimal
  volume: NonNegativeInt


class DividendTick(BaseModel):
  model_config = ConfigDict(frozen=True)

  date: Date
  dividend: Decimal


class SplitTick(BaseModel):
  model_config = ConfigDict(frozen=True)

  date: Date
  before_split: Decimal
  after_split: Decimal


type Tick = HistoryTick | DividendTick | SplitTick


@dataclass(frozen=True, slots=True)
class FetchRequest:
  symbol: str
  period: PeriodSpec
  frequency: Frequency
  variant: TickVariant


@dataclass(frozen=True, slots=True)
class SessionCredentials:
  # the client holds the cookie jar the crumb is bound to
  client: httpx.AsyncClient
  crumb: str
