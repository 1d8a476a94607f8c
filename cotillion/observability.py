"""Logging setup: JSON lines in production, plain text in development."""

import json
import logging
from datetime import datetime, timezone

# Extra attributes surfaced in JSON output when a log call passes them
EXTRA_FIELDS = (
    "participant_id",
    "ask_id",
    "error_code",
    "path",
    "attempt",
)


class JSONFormatter(logging.Formatter):
    """Format log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = str(val)
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


def setup_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Configure the root logger once at startup."""
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    root = logging.getLogger()
    # Replace handlers from a previous call (tests start the app repeatedly)
    for existing in list(root.handlers):
        if getattr(existing, "_cotillion", False):
            root.removeHandler(existing)
    handler._cotillion = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
