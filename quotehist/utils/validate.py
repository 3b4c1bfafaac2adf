from collections import Counter
from typing import Sequence

from quotehist.yahoo.errors import ValidationError


def validate_symbol(symbol: str) -> str:
  if not isinstance(symbol, str):
    raise ValidationError(f"Symbol must be a string, got {type(symbol).__name__}.")

  if not symbol.strip():
    raise ValidationError("Empty string.")

  return symbol


def validate_symbols(symbols: Sequence[str]) -> list[str]:
  if isinstance(symbols, str):
    raise ValidationError("Expected a sequence of symbols, got a string.")

  symbols = list(symbols)
  if not symbols:
    raise ValidationError("Empty list.")

  for i, symbol in enumerate(symbols):
    if not isinstance(symbol, str):
      raise ValidationError(
        f"Symbol at index {i} must be a string, got {type(symbol).__name__}."
      )
    if not symbol.strip():
      raise ValidationError(f"Empty string at index {i}.")

  duplicates = [s for s, n in Counter(symbols).items() if n > 1]
  if duplicates:
    quoted = ", ".join(f'"{s}"' for s in duplicates)
    raise ValidationError(f"Duplicate symbol(s): {quoted}.")

  return symbols
