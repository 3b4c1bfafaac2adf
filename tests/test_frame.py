from datetime import date
from decimal import Decimal

import pandas as pd
import pytest

from quotehist.yahoo.decode import iter_ticks
from quotehist.yahoo.frame import concat_frames, to_frame
from quotehist.yahoo.models import SplitTick, TickVariant

from conftest import C_HISTORY


def history_ticks():
  return list(iter_ticks(C_HISTORY.splitlines(), TickVariant.HISTORY))


def test_history_frame():
  df = to_frame(history_ticks(), TickVariant.HISTORY)

  assert list(df.columns) == [
    "open",
    "high",
    "low",
    "close",
    "adjusted_close",
    "volume",
  ]
  assert df.index.name == "date"
  assert df.index[0] == pd.Timestamp("2017-10-10")
  assert df["close"].iloc[0] == pytest.approx(75.18)
  assert df["volume"].dtype == "int64"


def test_empty_frame_keeps_columns():
  df = to_frame([], TickVariant.DIVIDEND)

  assert df.empty
  assert list(df.columns) == ["dividend"]


def test_split_frame():
  ticks = [
    SplitTick(date=date(2014, 6, 9), before_split=Decimal(7), after_split=Decimal(1))
  ]
  df = to_frame(ticks, TickVariant.SPLIT)
  assert df["before_split"].iloc[0] == 7.0
  assert df.index[0] == pd.Timestamp("2014-06-09")


def test_absent_symbol_cannot_be_framed():
  with pytest.raises(ValueError):
    to_frame(None, TickVariant.HISTORY)


def test_concat_frames_skips_absent_symbols():
  ticks = history_ticks()
  df = concat_frames({"C": ticks, "X": None, "Y": ticks}, TickVariant.HISTORY)

  assert list(df.columns.get_level_values(0).unique()) == ["C", "Y"]
  assert df[("Y", "close")].iloc[-1] == pytest.approx(72.370003)


def test_concat_frames_without_data():
  with pytest.raises(ValueError):
    concat_frames({"X": None}, TickVariant.HISTORY)
