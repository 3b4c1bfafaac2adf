import atexit
import datetime as dt
import json
import logging
from logging.config import dictConfig
import logging.handlers
from pathlib import Path
from queue import Queue

from typing_extensions import override

CONFIG_FILE = Path(__file__).resolve().parent / "logging_config.json"

# attributes every LogRecord carries; anything else arrived through `extra`
LOG_RECORD_BUILTIN_ATTRS = set(
  vars(logging.LogRecord("", logging.NOTSET, "", 0, "", None, None))
) | {"message", "asctime"}


def setup_logging(
  config_file: str | Path = CONFIG_FILE,
  level: str | None = None,
  log_file: str | Path | None = None,
):
  """Configure the `quotehist` logger from a dictConfig JSON file.

  Console output is plain text. The `file` handler writes one JSON object per
  line; `log_file` overrides its location.
  """
  with open(config_file, "r") as f:
    config = json.load(f)

  if level is not None:
    config["loggers"]["quotehist"]["level"] = level

  file_handler = config["handlers"].get("file")
  if file_handler is not None:
    if log_file is not None:
      file_handler["filename"] = str(log_file)

    Path(file_handler["filename"]).parent.mkdir(parents=True, exist_ok=True)

  dictConfig(config)


def setup_queue_handler(
  log_file: str | Path | None = None,
) -> logging.handlers.QueueHandler:
  queue: Queue = Queue(-1)
  queue_handler = logging.handlers.QueueHandler(queue)

  handlers: list[logging.Handler] = [logging.StreamHandler()]
  if log_file is not None:
    file_handler = logging.handlers.RotatingFileHandler(
      log_file, maxBytes=1_000_000, backupCount=3
    )
    file_handler.setFormatter(LogJSONFormatter())
    handlers.append(file_handler)

  listener = logging.handlers.QueueListener(queue, *handlers)
  listener.start()
  atexit.register(listener.stop)

  return queue_handler


class LogJSONFormatter(logging.Formatter):
  """Render a record as a single JSON line.

  `fmt_keys` maps output keys to record attributes. Context passed through
  `extra` (such as the symbol a download belongs to) is appended as is.
  """

  def __init__(self, fmt_keys: dict[str, str] | None = None):
    super().__init__()
    self.fmt_keys = fmt_keys if fmt_keys is not None else {"level": "levelname"}

  @override
  def format(self, record: logging.LogRecord) -> str:
    return json.dumps(self._payload(record), default=str)

  def _payload(self, record: logging.LogRecord) -> dict:
    computed = {
      "message": record.getMessage(),
      "timestamp": dt.datetime.fromtimestamp(record.created, tz=dt.UTC).isoformat(),
    }

    payload = {
      key: computed[attr] if attr in computed else getattr(record, attr, None)
      for key, attr in self.fmt_keys.items()
    }
    for key, value in computed.items():
      payload.setdefault(key, value)

    if record.exc_info:
      payload["exc_info"] = self.formatException(record.exc_info)

    if record.stack_info:
      payload["stack_info"] = self.formatStack(record.stack_info)

    payload.update(
      (key, value)
      for key, value in vars(record).items()
      if key not in LOG_RECORD_BUILTIN_ATTRS
    )
    return payload
