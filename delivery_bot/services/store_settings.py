from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from delivery_bot.core.config import DEFAULT_STORE_LAT, DEFAULT_STORE_LNG, DEFAULT_STORE_NAME
from delivery_bot.models.store_settings import StoreSettings
from delivery_bot.models.tenant import Tenant
from delivery_bot.services.delivery_fee import FeeTier, parse_fee_tiers


@dataclass(frozen=True)
class TenantSettings:
    name: str = DEFAULT_STORE_NAME
    store_lat: float = DEFAULT_STORE_LAT
    store_lng: float = DEFAULT_STORE_LNG
    fee_tiers: tuple[FeeTier, ...] = field(default_factory=tuple)


def get_tenant_settings(db: Session, tenant_id: int) -> TenantSettings:
    settings = db.query(StoreSettings).filter(StoreSettings.tenant_id == tenant_id).first()
    name = (settings.name or "").strip() if settings else ""
    if not name:
        tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
        name = (tenant.name or "").strip() if tenant else ""

    if not settings:
        return TenantSettings(name=name or DEFAULT_STORE_NAME)

    return TenantSettings(
        name=name or DEFAULT_STORE_NAME,
        store_lat=settings.latitude if settings.latitude is not None else DEFAULT_STORE_LAT,
        store_lng=settings.longitude if settings.longitude is not None else DEFAULT_STORE_LNG,
        fee_tiers=tuple(parse_fee_tiers(settings.delivery_ranges_json)),
    )
