from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import relationship

from delivery_bot.core.database import Base


class Conversation(Base):
    __tablename__ = "conversations"
    __table_args__ = (
        UniqueConstraint("tenant_id", "remote_jid", name="ux_conversations_tenant_remote_jid"),
    )

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), index=True, nullable=False)

    # telefone/JID de quem conversa com o bot
    remote_jid = Column(String, index=True, nullable=False)
    contact_name = Column(String(120), nullable=True)

    # False = atendimento humano, o FSM nao responde
    bot_enabled = Column(Boolean, nullable=False, default=True)

    # sessao do FSM (JSON serializado via SessionData)
    session_json = Column(Text, nullable=True)

    last_message_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    messages = relationship(
        "ChatMessage",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="ChatMessage.id",
    )
