from __future__ import annotations

import json
import logging
import time
from typing import Any, Iterable

import httpx
from sqlalchemy.orm import Session

from delivery_bot.core.config import META_API_VERSION, META_WA_ACCESS_TOKEN, META_WA_PHONE_NUMBER_ID
from delivery_bot.models.chat_message import ChatMessage
from delivery_bot.models.whatsapp_config import WhatsAppConfig
from delivery_bot.whatsapp.base import WhatsAppProvider, location_from_message, record_message

logger = logging.getLogger(__name__)


def parse_cloud_webhook(payload: dict[str, Any]) -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = []
    for entry in payload.get("entry", []) or []:
        for change in entry.get("changes", []) or []:
            value = change.get("value") or {}
            metadata = value.get("metadata") or {}
            phone_number_id = metadata.get("phone_number_id")

            contacts = value.get("contacts") or []
            contact_name = None
            if contacts:
                contact_name = ((contacts[0].get("profile") or {}).get("name")) or None

            for msg in value.get("messages", []) or []:
                msg_type = msg.get("type") or "text"
                message_id = msg.get("id")
                from_number = msg.get("from")
                if not message_id or not from_number:
                    continue

                text = ""
                location = None
                if msg_type == "text":
                    text = ((msg.get("text") or {}).get("body")) or ""
                elif msg_type == "location":
                    location = location_from_message(msg)
                    if location is None:
                        continue
                elif msg_type == "interactive":
                    reply = (msg.get("interactive") or {}).get("button_reply") or {}
                    text = reply.get("title") or reply.get("id") or ""
                else:
                    # audio, imagem, figurinha...: o FSM so entende texto e localizacao
                    logger.info("Mensagem ignorada: tipo=%s from=%s", msg_type, from_number)
                    continue

                messages.append(
                    {
                        "message_id": message_id,
                        "from_number": from_number,
                        "text": text.strip(),
                        "message_type": msg_type,
                        "location": location,
                        "phone_number_id": phone_number_id,
                        "contact_name": contact_name,
                    }
                )
    return messages


class CloudWhatsAppProvider(WhatsAppProvider):
    MAX_RETRIES = 3
    RETRY_DELAY_SECONDS = 0.5

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
        access_token = (config.access_token if config else None) or META_WA_ACCESS_TOKEN
        phone_number_id = (config.phone_number_id if config else None) or META_WA_PHONE_NUMBER_ID
        payload = {
            "messaging_product": "whatsapp",
            "to": to_phone,
            "type": "text",
            "text": {"preview_url": False, "body": text},
        }

        if not access_token or not phone_number_id:
            return record_message(
                db,
                tenant_id=tenant_id,
                conversation_id=conversation_id,
                from_me=True,
                body=text,
                status="failed",
                payload=payload,
                error="Credenciais do WhatsApp Cloud incompletas",
            )

        url = f"https://graph.facebook.com/{META_API_VERSION}/{phone_number_id}/messages"
        headers = {"Authorization": f"Bearer {access_token}", "Content-Type": "application/json"}
        last_error: str | None = None

        for attempt in range(1, self.MAX_RETRIES + 1):
            try:
                with httpx.Client(timeout=20.0) as client:
                    response = client.post(url, headers=headers, json=payload)
            except httpx.HTTPError as exc:
                last_error = str(exc)
            else:
                if 200 <= response.status_code < 300:
                    provider_id = None
                    try:
                        data = response.json()
                        provider_id = (data.get("messages") or [{}])[0].get("id")
                    except json.JSONDecodeError:
                        pass
                    return record_message(
                        db,
                        tenant_id=tenant_id,
                        conversation_id=conversation_id,
                        from_me=True,
                        body=text,
                        status="sent",
                        payload=payload,
                        provider_message_id=provider_id,
                    )
                last_error = f"Erro WhatsApp {response.status_code}: {response.text}"

            logger.warning(
                "WhatsApp Cloud falhou (tentativa %s/%s) tenant=%s: %s",
                attempt,
                self.MAX_RETRIES,
                tenant_id,
                last_error,
            )
            if attempt < self.MAX_RETRIES:
                time.sleep(self.RETRY_DELAY_SECONDS * attempt)

        return record_message(
            db,
            tenant_id=tenant_id,
            conversation_id=conversation_id,
            from_me=True,
            body=text,
            status="failed",
            payload=payload,
            error=last_error,
        )

    def parse_webhook(self, payload: dict[str, Any]) -> Iterable[dict[str, Any]]:
        return parse_cloud_webhook(payload)
