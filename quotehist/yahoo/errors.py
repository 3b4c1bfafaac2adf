class QuoteHistError(Exception):
  pass


class ValidationError(QuoteHistError, ValueError):
  """Raised for an invalid symbol list before any request is sent."""


class AuthError(QuoteHistError):
  """Raised when a crumb/cookie pair could not be acquired."""


class TransportError(QuoteHistError):
  """Raised for HTTP or network failures other than 404 and a single 401."""

  def __init__(self, message: str, symbol: str, status_code: int | None = None):
    super().__init__(message)
    self.symbol = symbol
    self.status_code = status_code
