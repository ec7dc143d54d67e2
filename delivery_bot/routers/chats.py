from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from delivery_bot.core.database import get_db
from delivery_bot.fsm.session import SessionData
from delivery_bot.models.chat_message import ChatMessage
from delivery_bot.models.conversation import Conversation
from delivery_bot.services.conversations import set_conversation_bot_enabled
from delivery_bot.whatsapp.service import WhatsAppService

router = APIRouter(prefix="/api/whatsapp/chats", tags=["chats"])


class ChatRead(BaseModel):
    id: int
    tenant_id: int
    remote_jid: str
    contact_name: Optional[str] = None
    bot_enabled: bool
    state: str
    last_message_at: Optional[datetime] = None


class ChatMessageRead(BaseModel):
    id: int
    from_me: bool
    message_type: str
    body: str
    status: str
    created_at: Optional[datetime] = None


class AgentReply(BaseModel):
    text: str = Field(..., min_length=1)


class BotToggle(BaseModel):
    enabled: bool = True


def _get_conversation(db: Session, conversation_id: int) -> Conversation:
    conversation = db.query(Conversation).filter(Conversation.id == conversation_id).first()
    if not conversation:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversa não encontrada")
    return conversation


def _serialize_chat(conversation: Conversation) -> ChatRead:
    return ChatRead(
        id=conversation.id,
        tenant_id=conversation.tenant_id,
        remote_jid=conversation.remote_jid,
        contact_name=conversation.contact_name,
        bot_enabled=bool(conversation.bot_enabled),
        state=SessionData.from_json(conversation.session_json).state.value,
        last_message_at=conversation.last_message_at,
    )


def _serialize_message(message: ChatMessage) -> ChatMessageRead:
    return ChatMessageRead(
        id=message.id,
        from_me=bool(message.from_me),
        message_type=message.message_type,
        body=message.body or "",
        status=message.status,
        created_at=message.created_at,
    )


@router.get("", response_model=List[ChatRead])
def list_chats(tenant_id: int, db: Session = Depends(get_db)):
    conversations = (
        db.query(Conversation)
        .filter(Conversation.tenant_id == tenant_id)
        .order_by(Conversation.last_message_at.desc(), Conversation.id.desc())
        .all()
    )
    return [_serialize_chat(conversation) for conversation in conversations]


@router.get("/{conversation_id}/messages", response_model=List[ChatMessageRead])
def list_chat_messages(conversation_id: int, limit: int = 50, db: Session = Depends(get_db)):
    _get_conversation(db, conversation_id)
    limit = max(1, min(limit, 200))
    messages = (
        db.query(ChatMessage)
        .filter(ChatMessage.conversation_id == conversation_id)
        .order_by(ChatMessage.id.desc())
        .limit(limit)
        .all()
    )
    return [_serialize_message(message) for message in reversed(messages)]


@router.post("/{conversation_id}/messages", response_model=ChatMessageRead)
def send_agent_message(conversation_id: int, payload: AgentReply, db: Session = Depends(get_db)):
    conversation = _get_conversation(db, conversation_id)
    # atendente assumiu: o bot fica quieto ate reset ou reativacao
    set_conversation_bot_enabled(db, conversation.id, False)
    db.commit()

    message = WhatsAppService().send_text(
        db,
        tenant_id=conversation.tenant_id,
        to_phone=conversation.remote_jid,
        text=payload.text.strip(),
        conversation_id=conversation.id,
    )
    return _serialize_message(message)


@router.post("/{conversation_id}/bot", response_model=ChatRead)
def toggle_bot(conversation_id: int, payload: BotToggle, db: Session = Depends(get_db)):
    conversation = _get_conversation(db, conversation_id)
    set_conversation_bot_enabled(db, conversation.id, payload.enabled)
    db.commit()
    db.refresh(conversation)
    return _serialize_chat(conversation)
