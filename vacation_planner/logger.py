import json  # JSON serialization
import logging
from datetime import datetime, timezone

# Context attached by callers through ``extra=``
CONTEXT_FIELDS = ("user_id", "tier", "operation", "source", "direction")


class JsonFormatter(logging.Formatter):
    """One JSON object per line, with tier/sync context when present."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        data = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                data[name] = value
        if record.exc_info:
            data["exc"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


def setup_logging(level: int | str = logging.INFO) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logging.basicConfig(level=level, handlers=[handler])
    # httpx logs every account request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
