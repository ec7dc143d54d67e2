from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, func

from delivery_bot.core.database import Base


class MenuItem(Base):
    __tablename__ = "menu_items"
    __table_args__ = (Index("ix_menu_items_tenant_category", "tenant_id", "category"),)

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, index=True, nullable=False)
    name = Column(String, nullable=False)
    # SNACK / PIZZA / DRINK / DESSERT
    category = Column(String(30), nullable=False, default="SNACK")
    price_cents = Column(Integer, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
