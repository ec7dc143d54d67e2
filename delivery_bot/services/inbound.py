from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from delivery_bot.core.request_context import clear_turn_context, set_turn_context
from delivery_bot.fsm import messages
from delivery_bot.fsm.engine import (
    ConversationEngine,
    CustomerInfo,
    InboundEvent,
    LocationEvent,
    TurnResult,
    is_reset_command,
)
from delivery_bot.models.processed_message import ProcessedMessage
from delivery_bot.services.catalog import TenantCatalog
from delivery_bot.services.conversations import (
    get_or_create_conversation,
    set_conversation_bot_enabled,
    touch_conversation,
)
from delivery_bot.services.customers import get_or_create_customer, update_customer_name
from delivery_bot.services.menu_search import CatalogMatcher
from delivery_bot.services.orders import create_order_from_session
from delivery_bot.services.session_store import SqlSessionStore
from delivery_bot.services.store_settings import get_tenant_settings
from delivery_bot.whatsapp.service import WhatsAppService

logger = logging.getLogger(__name__)


def _already_processed(db: Session, message_id: str) -> bool:
    if db.query(ProcessedMessage).filter_by(message_id=message_id).first():
        return True
    db.add(ProcessedMessage(message_id=message_id))
    db.commit()
    return False


def _apply_turn(db: Session, *, tenant_id: int, conversation, customer, result: TurnResult) -> list[str]:
    """Persiste os efeitos do turno. A sessao e gravada por ultimo."""
    replies = list(result.replies)

    if result.handoff:
        set_conversation_bot_enabled(db, conversation.id, False)
        logger.info("Atendimento humano solicitado: conversa=%s", conversation.id)
    elif result.reset and not conversation.bot_enabled:
        set_conversation_bot_enabled(db, conversation.id, True)

    if result.customer_name:
        update_customer_name(db, customer.id, result.customer_name)

    if result.order_session is not None:
        order = create_order_from_session(db, tenant_id, customer, result.order_session)
        replies.append(messages.order_confirmed(order.display_id))

    SqlSessionStore(db).save(conversation.id, result.session)
    return replies


def _deliver(
    db: Session,
    service: WhatsAppService,
    *,
    tenant_id: int,
    conversation_id: int,
    to_phone: str,
    replies: list[str],
) -> None:
    for reply in replies:
        try:
            service.send_text(
                db,
                tenant_id=tenant_id,
                to_phone=to_phone,
                text=reply,
                conversation_id=conversation_id,
            )
        except Exception:
            logger.exception("Falha ao enviar resposta para %s", to_phone)


def handle_inbound_message(
    db: Session,
    *,
    tenant_id: int,
    message_id: str,
    from_number: str,
    text: str = "",
    location: dict[str, float] | None = None,
    message_type: str = "text",
    contact_name: str | None = None,
    service: WhatsAppService | None = None,
    matcher: CatalogMatcher | None = None,
    deliver_replies: bool = True,
) -> dict[str, Any]:
    """Um turno da conversa: dedupe, sessao, FSM, efeitos e respostas.

    Com deliver_replies=False as respostas so voltam no retorno (simulador).
    """
    service = service or WhatsAppService()
    set_turn_context(tenant_id=tenant_id, conversation=from_number, message_id=message_id)
    try:
        if _already_processed(db, message_id):
            logger.info("Mensagem duplicada ignorada: %s", message_id)
            return {"status": "duplicate"}

        logger.info("WhatsApp recebido: type=%s text='%s'", message_type, text)

        conversation = get_or_create_conversation(db, tenant_id, from_number, contact_name)
        customer = get_or_create_customer(db, tenant_id, from_number, contact_name)
        touch_conversation(conversation)
        service.log_inbound(
            db,
            tenant_id=tenant_id,
            conversation_id=conversation.id,
            text=text,
            message_type=message_type,
            payload={"text": text, "location": location, "contact_name": contact_name},
            provider_message_id=message_id,
        )

        if not conversation.bot_enabled and not is_reset_command(text):
            logger.info("Bot pausado, mensagem fica para o atendente: conversa=%s", conversation.id)
            return {"status": "ok", "flow": "agent", "replies": []}

        event = InboundEvent(
            text=text or "",
            location=LocationEvent(**location) if location else None,
        )
        customer_info = CustomerInfo(id=customer.id, name=customer.name, phone=customer.phone)
        store = get_tenant_settings(db, tenant_id)
        engine = ConversationEngine(TenantCatalog(db, tenant_id), matcher=matcher)

        session = SqlSessionStore(db).load(conversation.id)
        try:
            result = engine.handle(session, event, customer=customer_info, store=store)
            replies = _apply_turn(
                db,
                tenant_id=tenant_id,
                conversation=conversation,
                customer=customer,
                result=result,
            )
            db.commit()
        except Exception:
            logger.exception("Erro ao processar turno: conversa=%s", conversation.id)
            db.rollback()
            if deliver_replies:
                _deliver(
                    db,
                    service,
                    tenant_id=tenant_id,
                    conversation_id=conversation.id,
                    to_phone=from_number,
                    replies=[messages.PROCESSING_ERROR],
                )
            return {"status": "error", "replies": [messages.PROCESSING_ERROR]}

        if deliver_replies:
            _deliver(
                db,
                service,
                tenant_id=tenant_id,
                conversation_id=conversation.id,
                to_phone=from_number,
                replies=replies,
            )

        return {
            "status": "ok",
            "flow": "handoff" if result.handoff else "bot",
            "state": result.session.state.value,
            "replies": replies,
        }
    finally:
        clear_turn_context()
