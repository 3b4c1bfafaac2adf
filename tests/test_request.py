from itertools import product

import httpx
import pytest

from quotehist.yahoo.models import FetchRequest, Frequency, PeriodSpec, TickVariant
from quotehist.yahoo.request import build_url, mask_crumb

PERIOD = PeriodSpec.from_seconds(1_507_665_600, 1_507_838_400)


@pytest.mark.parametrize("frequency, variant", list(product(Frequency, TickVariant)))
def test_url_params_roundtrip(frequency: Frequency, variant: TickVariant):
  request = FetchRequest("AAPL", PERIOD, frequency, variant)
  url = httpx.URL(str(build_url(request, "abc.DEF")))

  assert url.host == "query1.finance.yahoo.com"
  assert url.path == "/v7/finance/download/AAPL"
  assert dict(url.params) == {
    "period1": "1507665600",
    "period2": "1507838400",
    "interval": f"1{frequency.value}",
    "events": variant.value,
    "crumb": "abc.DEF",
  }


def test_url_expected_string():
  request = FetchRequest("C", PERIOD, Frequency.WEEKLY, TickVariant.DIVIDEND)
  assert str(build_url(request, "xyz")) == (
    "https://query1.finance.yahoo.com/v7/finance/download/C"
    "?period1=1507665600&period2=1507838400&interval=1wk&events=div&crumb=xyz"
  )


def test_symbol_is_encoded_as_path_segment():
  request = FetchRequest("EURUSD=X", PERIOD, Frequency.DAILY, TickVariant.HISTORY)
  url = build_url(request, "xyz")

  assert url.raw_path.startswith(b"/v7/finance/download/EURUSD%3DX?")
  assert url.path == "/v7/finance/download/EURUSD=X"


def test_custom_base_url():
  request = FetchRequest("C", PERIOD, Frequency.DAILY, TickVariant.SPLIT)
  url = build_url(request, "xyz", base_url="http://localhost:8000/download/")
  assert url.path == "/download/C"


def test_mask_crumb():
  request = FetchRequest("C", PERIOD, Frequency.DAILY, TickVariant.HISTORY)
  url = mask_crumb(build_url(request, "secret"))

  assert url.params["crumb"] == "***"
  assert "secret" not in str(url)
