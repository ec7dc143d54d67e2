from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import relationship

from delivery_bot.core.database import Base
from delivery_bot.models.customer import CUSTOMER_NAME_MAX_LENGTH


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("tenant_id", "display_id", name="ux_orders_tenant_display_id"),
    )

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, index=True, nullable=False)

    # numero sequencial que o cliente ve, por tenant
    display_id = Column(Integer, nullable=False)

    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True)
    client_name = Column(String(CUSTOMER_NAME_MAX_LENGTH), default="", nullable=False)
    client_phone = Column(String(30), index=True, nullable=False)
    delivery_address = Column(Text, default="", nullable=False)

    subtotal_cents = Column(Integer, default=0, nullable=False)
    delivery_fee_cents = Column(Integer, default=0, nullable=False)
    total_cents = Column(Integer, default=0, nullable=False)

    payment_method = Column(String(10), default="CASH", nullable=False)  # PIX / CASH / CARD
    source = Column(String(30), default="WHATSAPP_BOT", nullable=False)
    status = Column(String, default="PENDING", nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    customer = relationship("Customer", back_populates="orders")
    order_items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
