from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone

from delivery_bot.core.config import LOG_LEVEL
from delivery_bot.core.request_context import get_conversation, get_message_id, get_tenant_id

_SENSITIVE_PATTERNS = [
    re.compile(r"(authorization\s*[:=]\s*bearer\s+)([^\s\"]+)", re.IGNORECASE),
    re.compile(r"(access_token\s*[:=]\s*)([^\s\",}]+)", re.IGNORECASE),
    re.compile(r"(verify_token\s*[:=]\s*)([^\s\",}]+)", re.IGNORECASE),
]


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "tenant_id": getattr(record, "tenant_id", None) or get_tenant_id(),
            "conversation": getattr(record, "conversation", None) or get_conversation(),
            "message_id": get_message_id(),
            "module": record.name,
            "message": self._mask(record.getMessage()),
        }
        state = getattr(record, "state", None)
        if state is not None:
            payload["state"] = state
        if record.exc_info:
            payload["exception"] = self._mask(self.formatException(record.exc_info))
        return json.dumps(payload, ensure_ascii=False)

    def _mask(self, value: str) -> str:
        masked = value
        for pattern in _SENSITIVE_PATTERNS:
            masked = pattern.sub(r"\1***", masked)
        return masked


def configure_logging() -> None:
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(LOG_LEVEL)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter("%(message)s"))
    root_logger.addHandler(handler)

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(logger_name).setLevel(LOG_LEVEL)
