import asyncio
from collections import Counter
from contextlib import asynccontextmanager
import logging
import re
from typing import AsyncIterator

import httpx

from quotehist.const import CRUMB_URL, HEADERS, LANDING_URL
from quotehist.yahoo.errors import AuthError
from quotehist.yahoo.models import SessionCredentials

logger = logging.getLogger(__name__)

CRUMB_PATTERN = re.compile(r"^[^\s<>\"{}]+$")


def _consume_exception(task: asyncio.Task) -> None:
  # waiters may all have been cancelled before the acquisition failed
  if not task.cancelled():
    task.exception()


class SessionManager:
  """Owns the crumb/cookie pair shared by every download request.

  Credentials are cached after the first acquisition and only replaced by a
  forced refresh. Concurrent refresh requests share a single in-flight
  acquisition, and the cached value is swapped in one assignment so readers
  never observe a half-built pair.

  The underlying `httpx.AsyncClient` is bound to the event loop that created
  it. When the manager is used from another loop (e.g. a second
  `asyncio.run`), the cached credentials are discarded and acquired anew.
  """

  def __init__(
    self,
    transport: httpx.AsyncBaseTransport | None = None,
    landing_url: str = LANDING_URL,
    crumb_url: str = CRUMB_URL,
    headers: dict[str, str] = HEADERS,
    timeout: float | httpx.Timeout = 10.0,
  ):
    self._transport = transport
    self._landing_url = landing_url
    self._crumb_url = crumb_url
    self._headers = headers
    self._timeout = timeout

    self._loop: asyncio.AbstractEventLoop | None = None
    self._credentials: SessionCredentials | None = None
    self._acquisition: asyncio.Task[SessionCredentials] | None = None
    self._leases: Counter[httpx.AsyncClient] = Counter()
    self._retired: list[httpx.AsyncClient] = []

  async def __aenter__(self) -> "SessionManager":
    return self

  async def __aexit__(self, *args) -> None:
    await self.aclose()

  @property
  def credentials(self) -> SessionCredentials | None:
    return self._credentials

  async def get_credentials(
    self, force_refresh: bool = False, stale: SessionCredentials | None = None
  ) -> SessionCredentials:
    """Return cached credentials, acquiring new ones when needed.

    `stale` names the credentials a caller saw rejected. If they have
    already been replaced, the current ones are returned without a new
    acquisition.
    """
    self._bind_loop()

    credentials = self._credentials
    if credentials is not None:
      if not force_refresh:
        return credentials

      if stale is not None and credentials is not stale:
        return credentials

    if self._acquisition is None or self._acquisition.done():
      self._acquisition = asyncio.create_task(self._acquire())
      self._acquisition.add_done_callback(_consume_exception)

    # a cancelled waiter must not cancel the acquisition other waiters share
    return await asyncio.shield(self._acquisition)

  @asynccontextmanager
  async def lease(
    self, force_refresh: bool = False, stale: SessionCredentials | None = None
  ) -> AsyncIterator[SessionCredentials]:
    """Hold credentials for the duration of a request.

    A client replaced by a refresh is closed once its last lease ends.
    """
    credentials = await self.get_credentials(force_refresh, stale)
    client = credentials.client
    self._leases[client] += 1
    try:
      yield credentials
    finally:
      self._leases[client] -= 1
      if self._leases[client] <= 0:
        del self._leases[client]
        if client in self._retired:
          self._retired.remove(client)
          await client.aclose()

  def _bind_loop(self) -> None:
    loop = asyncio.get_running_loop()
    if self._loop is loop:
      return

    if self._loop is not None:
      # clients from another loop cannot be closed or reused here
      logger.info("Event loop changed, discarding cached crumb")

    self._loop = loop
    self._credentials = None
    self._acquisition = None
    self._leases.clear()
    self._retired = []

  async def _acquire(self) -> SessionCredentials:
    client = httpx.AsyncClient(
      headers=self._headers,
      transport=self._transport,
      timeout=self._timeout,
      follow_redirects=True,
    )
    try:
      crumb = await self._fetch_crumb(client)
    except BaseException:
      await client.aclose()
      raise

    credentials = SessionCredentials(client=client, crumb=crumb)
    previous, self._credentials = self._credentials, credentials
    logger.info("Acquired crumb with %d cookie(s)", len(client.cookies))

    if previous is not None:
      await self._retire(previous.client)

    return credentials

  async def _retire(self, client: httpx.AsyncClient) -> None:
    if self._leases[client]:
      self._retired.append(client)
    else:
      await client.aclose()

  async def _fetch_crumb(self, client: httpx.AsyncClient) -> str:
    try:
      # the landing host may answer 404 while still setting the session cookie
      await client.get(self._landing_url)
      response = await client.get(self._crumb_url)
      response.raise_for_status()
    except httpx.HTTPError as e:
      raise AuthError(f"Failed to acquire crumb: {e}") from e

    crumb = response.text.strip()
    if not CRUMB_PATTERN.match(crumb):
      raise AuthError(f"Unparsable crumb response: {crumb[:80]!r}")

    return crumb

  async def aclose(self) -> None:
    clients = self._retired
    self._retired = []
    self._leases.clear()
    if self._credentials is not None:
      clients.append(self._credentials.client)
      self._credentials = None

    for client in clients:
      await client.aclose()


_default_session: SessionManager | None = None


def default_session() -> SessionManager:
  global _default_session

  if _default_session is None:
    _default_session = SessionManager()

  return _default_session
