from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from delivery_bot.core.config import WHATSAPP_FALLBACK_TO_MOCK, WHATSAPP_PROVIDER
from delivery_bot.models.chat_message import ChatMessage
from delivery_bot.models.whatsapp_config import WhatsAppConfig
from delivery_bot.whatsapp.base import WhatsAppProvider, record_message
from delivery_bot.whatsapp.cloud_provider import CloudWhatsAppProvider
from delivery_bot.whatsapp.mock_provider import MockWhatsAppProvider

logger = logging.getLogger(__name__)


class WhatsAppService:
    def __init__(self) -> None:
        self._mock_provider = MockWhatsAppProvider()
        self._cloud_provider = CloudWhatsAppProvider()

    def get_config(self, db: Session, tenant_id: int) -> WhatsAppConfig | None:
        return (
            db.query(WhatsAppConfig)
            .filter(WhatsAppConfig.tenant_id == tenant_id)
            .first()
        )

    def _select_provider(self, config: WhatsAppConfig | None) -> WhatsAppProvider:
        if config and config.is_enabled:
            if config.provider == "cloud" and config.access_token and config.phone_number_id:
                return self._cloud_provider
            return self._mock_provider
        if WHATSAPP_PROVIDER == "cloud":
            return self._cloud_provider
        return self._mock_provider

    def send_text(
        self,
        db: Session,
        *,
        tenant_id: int,
        to_phone: str,
        text: str,
        conversation_id: int | None = None,
    ) -> ChatMessage:
        config = self.get_config(db, tenant_id)
        provider = self._select_provider(config)
        log_entry = provider.send_text(
            db,
            tenant_id=tenant_id,
            config=config,
            conversation_id=conversation_id,
            to_phone=to_phone,
            text=text,
        )
        if log_entry.status == "failed" and provider is self._cloud_provider and WHATSAPP_FALLBACK_TO_MOCK:
            logger.warning("WhatsApp Cloud falhou, usando mock (tenant=%s)", tenant_id)
            return self._mock_provider.send_text(
                db,
                tenant_id=tenant_id,
                config=config,
                conversation_id=conversation_id,
                to_phone=to_phone,
                text=text,
            )
        return log_entry

    def log_inbound(
        self,
        db: Session,
        *,
        tenant_id: int,
        conversation_id: int,
        text: str,
        message_type: str,
        payload: dict[str, Any],
        provider_message_id: str | None = None,
    ) -> ChatMessage:
        return record_message(
            db,
            tenant_id=tenant_id,
            conversation_id=conversation_id,
            from_me=False,
            body=text,
            status="received",
            message_type=message_type,
            payload=payload,
            provider_message_id=provider_message_id,
        )

    def parse_webhook(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        if "entry" in payload:
            return list(self._cloud_provider.parse_webhook(payload))
        return list(self._mock_provider.parse_webhook(payload))
