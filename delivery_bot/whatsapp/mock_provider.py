from __future__ import annotations

import uuid
from typing import Any, Iterable

from sqlalchemy.orm import Session

from delivery_bot.models.chat_message import ChatMessage
from delivery_bot.models.whatsapp_config import WhatsAppConfig
from delivery_bot.whatsapp.base import WhatsAppProvider, location_from_message, record_message


class MockWhatsAppProvider(WhatsAppProvider):
    """Nao envia nada: so registra a mensagem de saida (dev, simulador, testes)."""

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
        return record_message(
            db,
            tenant_id=tenant_id,
            conversation_id=conversation_id,
            from_me=True,
            body=text,
            status="sent",
            payload={"type": "text", "to": to_phone, "provider": "mock"},
            provider_message_id=f"mock-{uuid.uuid4().hex[:10]}",
        )

    def parse_webhook(self, payload: dict[str, Any]) -> Iterable[dict[str, Any]]:
        message = payload.get("message") or {}
        if not message or not message.get("from"):
            return []
        return [
            {
                "message_id": message.get("id") or f"mock-{uuid.uuid4().hex[:8]}",
                "from_number": message.get("from"),
                "text": (message.get("text") or "").strip(),
                "message_type": message.get("type", "text"),
                "location": location_from_message(message),
                "contact_name": message.get("contact_name"),
            }
        ]
