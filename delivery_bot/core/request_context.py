from __future__ import annotations

from contextvars import ContextVar


_TENANT_ID_CTX: ContextVar[str | None] = ContextVar("tenant_id", default=None)
_CONVERSATION_CTX: ContextVar[str | None] = ContextVar("conversation", default=None)
_MESSAGE_ID_CTX: ContextVar[str | None] = ContextVar("message_id", default=None)


def set_turn_context(
    *, tenant_id: int | str | None = None, conversation: str | None = None, message_id: str | None = None
) -> None:
    if tenant_id is not None:
        _TENANT_ID_CTX.set(str(tenant_id))
    if conversation is not None:
        _CONVERSATION_CTX.set(conversation)
    if message_id is not None:
        _MESSAGE_ID_CTX.set(message_id)


def get_tenant_id() -> str | None:
    return _TENANT_ID_CTX.get()


def get_conversation() -> str | None:
    return _CONVERSATION_CTX.get()


def get_message_id() -> str | None:
    return _MESSAGE_ID_CTX.get()


def clear_turn_context() -> None:
    _TENANT_ID_CTX.set(None)
    _CONVERSATION_CTX.set(None)
    _MESSAGE_ID_CTX.set(None)
