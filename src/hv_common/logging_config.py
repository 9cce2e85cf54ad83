"""Root logger setup, called once from the app factory.

Plain text by default; LOG_JSON=true switches to one JSON object per line
for log shippers.
"""

import json
import logging
from datetime import datetime, timezone

from config.settings import settings

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    EXTRA_FIELDS = ("request_id", "user_id", "song_id", "transaction_id")

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging() -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter() if settings.LOG_JSON else logging.Formatter(_TEXT_FORMAT))
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if settings.DEBUG else settings.LOG_LEVEL.upper())
    root.handlers = [handler]
