from __future__ import annotations

from typing import Protocol

from sqlalchemy.orm import Session

from delivery_bot.fsm.session import SessionData
from delivery_bot.models.conversation import Conversation


class SessionStore(Protocol):
    def load(self, conversation_id: int) -> SessionData:
        ...

    def save(self, conversation_id: int, session: SessionData) -> None:
        ...


class SqlSessionStore:
    """Sessao do FSM guardada em conversations.session_json (uma por conversa)."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def _get(self, conversation_id: int) -> Conversation | None:
        return self._db.query(Conversation).filter(Conversation.id == conversation_id).first()

    def load(self, conversation_id: int) -> SessionData:
        conversation = self._get(conversation_id)
        if not conversation:
            return SessionData.fresh()
        return SessionData.from_json(conversation.session_json)

    def save(self, conversation_id: int, session: SessionData) -> None:
        conversation = self._get(conversation_id)
        if not conversation:
            raise LookupError(f"Conversa {conversation_id} nao encontrada")
        conversation.session_json = session.to_json()
        self._db.flush()
