from __future__ import annotations

import json
from typing import Any, Iterable, Protocol

from sqlalchemy.orm import Session

from delivery_bot.models.chat_message import ChatMessage
from delivery_bot.models.whatsapp_config import WhatsAppConfig


class WhatsAppProvider(Protocol):
    def send_text(
        self,
        db: Session,
        *,
        tenant_id: int,
        config: WhatsAppConfig | None,
        conversation_id: int | None,
        to_phone: str,
        text: str,
    ) -> ChatMessage:
        ...

    def parse_webhook(self, payload: dict[str, Any]) -> Iterable[dict[str, Any]]:
        ...


SENSITIVE_KEYS = {"access_token", "verify_token", "authorization", "token"}


def _mask_value(value: Any) -> Any:
    if value is None:
        return None
    text = str(value)
    if len(text) <= 4:
        return "****"
    return f"****{text[-4:]}"


def sanitize_payload(payload: dict[str, Any]) -> dict[str, Any]:
    def _sanitize(value: Any) -> Any:
        if isinstance(value, dict):
            return {
                key: _mask_value(inner) if key.lower() in SENSITIVE_KEYS else _sanitize(inner)
                for key, inner in value.items()
            }
        if isinstance(value, list):
            return [_sanitize(item) for item in value]
        return value

    return _sanitize(payload)


def safe_json(payload: dict[str, Any]) -> str:
    try:
        return json.dumps(payload, ensure_ascii=False)
    except (TypeError, ValueError):
        return "{}"


def record_message(
    db: Session,
    *,
    tenant_id: int,
    conversation_id: int | None,
    from_me: bool,
    body: str,
    status: str,
    message_type: str = "text",
    payload: dict[str, Any] | None = None,
    provider_message_id: str | None = None,
    error: str | None = None,
) -> ChatMessage:
    entry = ChatMessage(
        tenant_id=tenant_id,
        conversation_id=conversation_id,
        from_me=from_me,
        message_type=message_type,
        body=body,
        payload_json=safe_json(sanitize_payload(payload)) if payload else None,
        status=status,
        error=error,
        provider_message_id=provider_message_id,
    )
    db.add(entry)
    db.commit()
    return entry


def location_from_message(message: dict[str, Any]) -> dict[str, float] | None:
    raw = message.get("location") or {}
    try:
        latitude = float(raw["latitude"])
        longitude = float(raw["longitude"])
    except (KeyError, TypeError, ValueError):
        return None
    return {"latitude": latitude, "longitude": longitude}
