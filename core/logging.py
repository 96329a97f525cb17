"""
JSON log formatter used by the LOGGING config in core.settings.
"""
import json
import logging
from datetime import datetime, timezone

# extra= keys that are copied into the JSON record when present
EXTRA_FIELDS = (
    "order_id",
    "order_number",
    "item_id",
    "status",
    "amount",
    "amount_paid",
    "path",
    "method",
    "error",
    "error_type",
    "count",
)


class JsonFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record):
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)
