# backend/app/logging_config.py
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from .config import Settings, settings as default_settings
from .middleware.request_id import get_request_id

# Structured extras copied onto the JSON line when a log call sets them.
EXTRA_KEYS = ("event", "account_id", "reservation_id", "listing_id", "route")


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line: ts, level, logger, message, service, env,
    request_id when inside a request, exc_info, plus any EXTRA_KEYS the
    caller passed via extra=.
    """

    def __init__(self, *, service: str = "perrastay", env: str = "local") -> None:
        super().__init__()
        self.service = service
        self.env = env

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service,
            "env": self.env,
        }

        rid = get_request_id()
        if rid:
            payload["request_id"] = rid

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        for k in EXTRA_KEYS:
            if hasattr(record, k):
                payload[k] = getattr(record, k)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(cfg: Optional[Settings] = None) -> None:
    cfg = cfg or default_settings
    level = (cfg.log_level or "INFO").upper()

    root = logging.getLogger()
    root.setLevel(level)

    # uvicorn --reload re-imports main; drop the previous handler
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter(service=cfg.app_name.lower(), env=cfg.app_env))
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel((cfg.sql_log_level or "WARNING").upper())
