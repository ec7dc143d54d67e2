from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint, func

from delivery_bot.core.database import Base


class StoreSettings(Base):
    __tablename__ = "store_settings"
    __table_args__ = (
        UniqueConstraint("tenant_id", name="ux_store_settings_tenant_id"),
    )

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(120), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # faixas de frete: [{"minKm": 0, "maxKm": 2, "price": 5.0}, ...]
    delivery_ranges_json = Column(Text, nullable=False, default="[]")

    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
