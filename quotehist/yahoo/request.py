from urllib.parse import quote

import httpx

from quotehist.const import DOWNLOAD_URL
from quotehist.yahoo.models import FetchRequest


def build_params(request: FetchRequest, crumb: str) -> dict[str, str]:
  return {
    "period1": str(request.period.start_seconds),
    "period2": str(request.period.end_seconds),
    "interval": request.frequency.interval,
    "events": request.variant.value,
    "crumb": crumb,
  }


def build_url(
  request: FetchRequest, crumb: str, base_url: str = DOWNLOAD_URL
) -> httpx.URL:
  url = f"{base_url.rstrip('/')}/{quote(request.symbol, safe='')}"
  return httpx.URL(url, params=build_params(request, crumb))


def mask_crumb(url: httpx.URL) -> httpx.URL:
  if "crumb" not in url.params:
    return url

  return url.copy_set_param("crumb", "***")
