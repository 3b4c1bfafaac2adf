import csv
from datetime import date as Date
from decimal import Decimal, InvalidOperation
import logging
from typing import AsyncIterable, AsyncIterator, Callable, Iterable, Iterator

from quotehist.yahoo.models import (
  DividendTick,
  HistoryTick,
  SplitTick,
  Tick,
  TickVariant,
)

logger = logging.getLogger(__name__)


def parse_decimal(text: str) -> Decimal | None:
  try:
    value = Decimal(text.strip())
  except InvalidOperation:
    return None

  # rejects "NaN" and "Infinity" as well
  if not value.is_finite():
    return None

  return value


def parse_int(text: str) -> int | None:
  value = parse_decimal(text)
  if value is None or value != value.to_integral_value() or value < 0:
    return None

  return int(value)


def parse_date(text: str) -> Date | None:
  try:
    return Date.fromisoformat(text.strip())
  except ValueError:
    return None


def parse_history(fields: list[str]) -> HistoryTick | None:
  if len(fields) != 7:
    return None

  date = parse_date(fields[0])
  prices = [parse_decimal(f) for f in fields[1:6]]
  volume = parse_int(fields[6])
  if date is None or volume is None or None in prices:
    return None

  open_, high, low, close, adjusted_close = prices
  return HistoryTick(
    date=date,
    open=open_,
    high=high,
    low=low,
    close=close,
    adjusted_close=adjusted_close,
    volume=volume,
  )


def parse_dividend(fields: list[str]) -> DividendTick | None:
  if len(fields) != 2:
    return None

  date = parse_date(fields[0])
  dividend = parse_decimal(fields[1])
  if date is None or dividend is None:
    return None

  return DividendTick(date=date, dividend=dividend)


def parse_split(fields: list[str]) -> SplitTick | None:
  if len(fields) != 2:
    return None

  date = parse_date(fields[0])
  parts = fields[1].split("/")
  if date is None or len(parts) != 2:
    return None

  before, after = (parse_decimal(p) for p in parts)
  if before is None or after is None:
    return None

  return SplitTick(date=date, before_split=before, after_split=after)


PARSERS: dict[TickVariant, Callable[[list[str]], Tick | None]] = {
  TickVariant.HISTORY: parse_history,
  TickVariant.DIVIDEND: parse_dividend,
  TickVariant.SPLIT: parse_split,
}


def parse_row(fields: list[str], variant: TickVariant) -> Tick | None:
  return PARSERS[variant](fields)


def _decode(fields: list[str], variant: TickVariant) -> Tick | None:
  if not any(field.strip() for field in fields):
    return None  # blank line

  tick = parse_row(fields, variant)
  if tick is None:
    logger.debug("Dropped %s row: %r", variant.value, fields)

  return tick


def _terminated(lines: Iterable[str]) -> Iterator[str]:
  for line in lines:
    yield line if line.endswith("\n") else line + "\n"


def iter_ticks(lines: Iterable[str], variant: TickVariant) -> Iterator[Tick]:
  """Lazily decode CSV lines, skipping the header and malformed rows.

  One reader spans the whole stream, so a quoted field may contain line breaks.
  """
  records = csv.reader(_terminated(lines))
  next(records, None)  # header

  for fields in records:
    tick = _decode(fields, variant)
    if tick is not None:
      yield tick


async def aiter_records(lines: AsyncIterable[str]) -> AsyncIterator[list[str]]:
  """Group lines into CSV records.

  A line that leaves a quoted field open is joined with the lines that follow
  until the quotes balance; escaped quotes (`""`) keep the count even.
  """
  pending: list[str] = []
  quotes = 0
  async for line in lines:
    pending.append(line)
    quotes += line.count('"')
    if quotes % 2:
      continue

    yield next(csv.reader(["\n".join(pending)]), [])
    pending, quotes = [], 0

  if pending:
    yield next(csv.reader(["\n".join(pending)]), [])


async def aiter_ticks(
  lines: AsyncIterable[str], variant: TickVariant
) -> AsyncIterator[Tick]:
  header = True
  async for fields in aiter_records(lines):
    if header:
      header = False
      continue

    tick = _decode(fields, variant)
    if tick is not None:
      yield tick
