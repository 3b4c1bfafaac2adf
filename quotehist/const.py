DOWNLOAD_URL = "https://query1.finance.yahoo.com/v7/finance/download"
LANDING_URL = "https://fc.yahoo.com"
CRUMB_URL = "https://query1.finance.yahoo.com/v1/test/getcrumb"

# 16:00 local is the market close convention used for calendar dates
MARKET_CLOSE_HOUR = 16

OPEN_END = 2**63 - 1

HEADERS = {
  "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
  "Accept-Encoding": "gzip, deflate",
  "Accept-Language": "en-US,en;q=0.5",
  "DNT": "1",
  "Connection": "keep-alive",
  #'Sec-Fetch-Dest': 'empty',
  #'Sec-Fetch-Mode': 'cors',
  "Upgrade-Insecure-Requests": "1",
  "User-Agent": (
    "Mozilla/5.0 (X11; Linux x86_64; rv:109.0) Gecko/20100101 Firefox/112.0"
  ),
}
