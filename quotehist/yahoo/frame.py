from typing import Sequence

import pandas as pd
from pandera import DataFrameModel, Field
from pandera.dtypes import Timestamp
from pandera.typing import DataFrame, Index, Series

from quotehist.yahoo.models import Tick, TickVariant


class TickFrame(DataFrameModel):
  date: Index[Timestamp]

  class Config:
    coerce = True


class HistoryFrame(TickFrame):
  open: Series[float]
  high: Series[float]
  low: Series[float]
  close: Series[float]
  adjusted_close: Series[float]
  volume: Series[int] = Field(ge=0)


class DividendFrame(TickFrame):
  dividend: Series[float]


class SplitFrame(TickFrame):
  before_split: Series[float] = Field(gt=0)
  after_split: Series[float] = Field(gt=0)


FRAMES: dict[TickVariant, type[TickFrame]] = {
  TickVariant.HISTORY: HistoryFrame,
  TickVariant.DIVIDEND: DividendFrame,
  TickVariant.SPLIT: SplitFrame,
}


def to_frame(ticks: Sequence[Tick] | None, variant: TickVariant) -> DataFrame:
  if ticks is None:
    raise ValueError("No ticks to convert: symbol was not found")

  model = FRAMES[variant]
  columns = list(model.to_schema().columns)

  df = pd.DataFrame.from_records(
    [tick.model_dump() for tick in ticks], columns=["date", *columns]
  )
  df["date"] = pd.to_datetime(df["date"])
  df.set_index("date", inplace=True)

  return model.validate(df)


def concat_frames(
  results: dict[str, Sequence[Tick] | None], variant: TickVariant
) -> pd.DataFrame:
  """Join per-symbol frames column-wise under a (symbol, field) header.

  Symbols without data (None) are left out.
  """
  frames = {
    symbol: to_frame(ticks, variant)
    for symbol, ticks in results.items()
    if ticks is not None
  }
  if not frames:
    raise ValueError("No data returned for any symbol")

  return pd.concat(frames, axis=1)
