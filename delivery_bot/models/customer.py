from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from delivery_bot.core.database import Base

PLACEHOLDER_CUSTOMER_NAME = "Cliente"
CUSTOMER_NAME_MAX_LENGTH = 120


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(CUSTOMER_NAME_MAX_LENGTH), nullable=False, default=PLACEHOLDER_CUSTOMER_NAME)
    phone = Column(String(30), nullable=False, index=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    orders = relationship("Order", back_populates="customer")
