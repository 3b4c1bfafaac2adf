import asyncio
from collections import Counter

import httpx
import pytest

from quotehist.yahoo.history import History
from quotehist.yahoo.session import SessionManager

HISTORY_HEADER = "Date,Open,High,Low,Close,Adj Close,Volume"

C_HISTORY = "\n".join(
  [
    HISTORY_HEADER,
    "2017-10-10,74.919998,75.650002,74.650002,75.180000,68.945755,16445200",
    "2017-10-11,75.019997,75.300003,74.650002,74.940002,68.725655,13788500",
    "2017-10-12,73.099998,73.529999,72.260002,72.370003,66.368736,31437300",
  ]
)

AAPL_DIVIDENDS = "Date,Dividends\n2016-02-04,0.52\n"
AAPL_SPLITS = "Date,Stock Splits\n2014-06-09,7/1\n"


class FakeYahoo:
  """In-memory stand-in for the landing, crumb and download endpoints.

  Only the most recently issued crumb is accepted by the download endpoint.
  """

  def __init__(self, data: dict[str, str] | None = None):
    self.data = data if data is not None else {"C": C_HISTORY}
    self.status: dict[str, int] = {}
    self.delays: dict[str, float] = {}
    self.calls: Counter[str] = Counter()
    self.downloads: list[httpx.Request] = []
    self.issued = 0
    self.valid_crumb: str | None = None
    self.always_unauthorized = False
    self.fail_landing = False
    self.crumb_status = 200
    self.crumb_body: str | None = None
    self.hang = False
    self.started = asyncio.Event()

  def expire(self):
    self.valid_crumb = None

  async def __call__(self, request: httpx.Request) -> httpx.Response:
    host = request.url.host
    if host == "fc.yahoo.com":
      return self.landing(request)

    if request.url.path == "/v1/test/getcrumb":
      return self.crumb(request)

    return await self.download(request)

  def landing(self, request: httpx.Request) -> httpx.Response:
    self.calls["landing"] += 1
    if self.fail_landing:
      raise httpx.ConnectError("landing unreachable", request=request)

    return httpx.Response(
      404, headers={"set-cookie": "A3=session; Domain=.yahoo.com; Path=/"}
    )

  def crumb(self, request: httpx.Request) -> httpx.Response:
    self.calls["crumb"] += 1
    if self.crumb_status != 200:
      return httpx.Response(self.crumb_status, text="error")

    if self.crumb_body is not None:
      return httpx.Response(200, text=self.crumb_body)

    self.issued += 1
    self.valid_crumb = f"crumb{self.issued}"
    return httpx.Response(200, text=self.valid_crumb)

  async def download(self, request: httpx.Request) -> httpx.Response:
    self.calls["download"] += 1
    self.downloads.append(request)
    symbol = request.url.path.rsplit("/", 1)[-1]

    if self.hang:
      self.started.set()
      await asyncio.Event().wait()

    if symbol in self.delays:
      await asyncio.sleep(self.delays[symbol])

    crumb = request.url.params.get("crumb")
    if self.always_unauthorized or crumb != self.valid_crumb:
      return httpx.Response(401, text="Invalid cookie")

    if symbol in self.status:
      return httpx.Response(self.status[symbol], text="error")

    if symbol not in self.data:
      return httpx.Response(404, text="No data found, symbol may be delisted")

    return httpx.Response(200, text=self.data[symbol])


@pytest.fixture
def fake() -> FakeYahoo:
  return FakeYahoo()


@pytest.fixture
async def session(fake: FakeYahoo):
  async with SessionManager(transport=httpx.MockTransport(fake)) as session:
    yield session


@pytest.fixture
def history(session: SessionManager) -> History:
  return History(session=session)
