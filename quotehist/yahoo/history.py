import asyncio
from dataclasses import dataclass
import logging
from typing import Sequence

import httpx

from quotehist.const import DOWNLOAD_URL
from quotehist.utils.validate import validate_symbol, validate_symbols
from quotehist.yahoo.decode import aiter_ticks
from quotehist.yahoo.errors import TransportError
from quotehist.yahoo.models import (
  DividendTick,
  FetchRequest,
  Frequency,
  HistoryTick,
  PeriodSpec,
  SessionCredentials,
  SplitTick,
  Tick,
  TickVariant,
)
from quotehist.yahoo.request import build_url, mask_crumb
from quotehist.yahoo.session import SessionManager, default_session

logger = logging.getLogger(__name__)


class Unauthorized(Exception):
  pass


@dataclass(slots=True)
class History:
  session: SessionManager | None = None
  base_url: str = DOWNLOAD_URL

  def _get_session(self) -> SessionManager:
    if self.session is None:
      return default_session()

    return self.session

  async def fetch_many(
    self,
    symbols: Sequence[str],
    period: PeriodSpec | None = None,
    frequency: Frequency = Frequency.DAILY,
    variant: TickVariant = TickVariant.HISTORY,
  ) -> dict[str, list[Tick] | None]:
    """Fetch ticks for every symbol concurrently.

    Absent symbols (404) map to None. Any other failure is raised once every
    fetch has finished; the first failing symbol in input order wins.
    """
    symbols = validate_symbols(symbols)
    if period is None:
      period = PeriodSpec()

    tasks: list[asyncio.Task] = []
    for symbol in symbols:
      request = FetchRequest(symbol, period, frequency, variant)
      tasks.append(asyncio.create_task(self._fetch_ticks(request)))

    results = await asyncio.gather(*tasks, return_exceptions=True)

    for result in results:
      if isinstance(result, BaseException):
        raise result

    return dict(zip(symbols, results))

  async def fetch(
    self,
    symbol: str,
    period: PeriodSpec | None = None,
    frequency: Frequency = Frequency.DAILY,
    variant: TickVariant = TickVariant.HISTORY,
  ) -> list[Tick] | None:
    symbol = validate_symbol(symbol)
    if period is None:
      period = PeriodSpec()

    return await self._fetch_ticks(FetchRequest(symbol, period, frequency, variant))

  async def get_history(
    self,
    symbols: str | Sequence[str],
    period: PeriodSpec | None = None,
    frequency: Frequency = Frequency.DAILY,
  ) -> list[HistoryTick] | None | dict[str, list[HistoryTick] | None]:
    return await self._fetch_any(symbols, period, frequency, TickVariant.HISTORY)

  async def get_dividends(
    self, symbols: str | Sequence[str], period: PeriodSpec | None = None
  ) -> list[DividendTick] | None | dict[str, list[DividendTick] | None]:
    return await self._fetch_any(
      symbols, period, Frequency.DAILY, TickVariant.DIVIDEND
    )

  async def get_splits(
    self, symbols: str | Sequence[str], period: PeriodSpec | None = None
  ) -> list[SplitTick] | None | dict[str, list[SplitTick] | None]:
    return await self._fetch_any(symbols, period, Frequency.DAILY, TickVariant.SPLIT)

  async def _fetch_any(
    self,
    symbols: str | Sequence[str],
    period: PeriodSpec | None,
    frequency: Frequency,
    variant: TickVariant,
  ):
    if isinstance(symbols, str):
      return await self.fetch(symbols, period, frequency, variant)

    return await self.fetch_many(symbols, period, frequency, variant)

  async def _fetch_ticks(self, request: FetchRequest) -> list[Tick] | None:
    session = self._get_session()
    extra = {"symbol": request.symbol}

    async with session.lease() as credentials:
      try:
        return await self._download(request, credentials, retried=False)
      except Unauthorized:
        logger.info(
          "Unauthorized response for %s, refreshing crumb", request.symbol, extra=extra
        )

    async with session.lease(force_refresh=True, stale=credentials) as credentials:
      return await self._download(request, credentials, retried=True)

  async def _download(
    self, request: FetchRequest, credentials: SessionCredentials, retried: bool
  ) -> list[Tick] | None:
    extra = {"symbol": request.symbol}
    url = build_url(request, credentials.crumb, self.base_url)
    logger.debug("GET %s", mask_crumb(url), extra=extra)

    try:
      async with credentials.client.stream("GET", url) as response:
        if response.status_code == httpx.codes.NOT_FOUND:
          logger.info("No data for %s", request.symbol, extra=extra)
          return None

        if response.status_code == httpx.codes.UNAUTHORIZED:
          if not retried:
            raise Unauthorized(request.symbol)

          logger.warning(
            "Still unauthorized for %s after refresh", request.symbol, extra=extra
          )

        response.raise_for_status()
        ticks = aiter_ticks(response.aiter_lines(), request.variant)
        return [tick async for tick in ticks]

    except httpx.HTTPStatusError as e:
      status_code = e.response.status_code
      raise TransportError(
        f"Failed to fetch {request.symbol}: HTTP {status_code}",
        request.symbol,
        status_code,
      ) from e

    except httpx.HTTPError as e:
      raise TransportError(
        f"Failed to fetch {request.symbol}: {e}", request.symbol
      ) from e
