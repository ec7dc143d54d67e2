from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from delivery_bot.models.conversation import Conversation

logger = logging.getLogger(__name__)


def find_conversation_by_address(db: Session, tenant_id: int, remote_jid: str) -> Conversation | None:
    return (
        db.query(Conversation)
        .filter(Conversation.tenant_id == tenant_id, Conversation.remote_jid == remote_jid)
        .first()
    )


def create_conversation(
    db: Session, tenant_id: int, remote_jid: str, display_name: str | None = None
) -> Conversation:
    conversation = Conversation(
        tenant_id=tenant_id,
        remote_jid=remote_jid,
        contact_name=display_name,
        bot_enabled=True,
    )
    db.add(conversation)
    db.flush()
    logger.info("Nova conversa: tenant=%s remote=%s", tenant_id, remote_jid)
    return conversation


def get_or_create_conversation(
    db: Session, tenant_id: int, remote_jid: str, display_name: str | None = None
) -> Conversation:
    conversation = find_conversation_by_address(db, tenant_id, remote_jid)
    if conversation:
        if display_name and not conversation.contact_name:
            conversation.contact_name = display_name
        return conversation
    return create_conversation(db, tenant_id, remote_jid, display_name)


def set_conversation_bot_enabled(db: Session, conversation_id: int, enabled: bool) -> None:
    conversation = db.query(Conversation).filter(Conversation.id == conversation_id).first()
    if not conversation:
        return
    conversation.bot_enabled = bool(enabled)
    db.flush()


def touch_conversation(conversation: Conversation) -> None:
    conversation.last_message_at = datetime.now(timezone.utc)
