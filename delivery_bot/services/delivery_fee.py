from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable

from delivery_bot.core.config import TEXT_ADDRESS_DELIVERY_FEE_CENTS

logger = logging.getLogger(__name__)

# (distancia maxima em km, frete em centavos) quando nenhuma faixa da loja cobre a distancia
FALLBACK_LADDER: tuple[tuple[float, int], ...] = (
    (2.0, 500),
    (5.0, 800),
    (10.0, 1500),
)
FALLBACK_BEYOND_CENTS = 2000


@dataclass(frozen=True)
class FeeTier:
    min_km: float
    max_km: float
    price_cents: int

    def covers(self, distance_km: float) -> bool:
        return self.min_km <= distance_km <= self.max_km


def _get(d: dict, *keys, default=None):
    for k in keys:
        if k in d and d[k] not in (None, ""):
            return d[k]
    return default


def _tier_from_dict(raw: dict[str, Any]) -> FeeTier:
    min_km = float(_get(raw, "min_km", "minKm", default=0))
    max_km = float(_get(raw, "max_km", "maxKm"))
    price_cents = _get(raw, "price_cents")
    if price_cents is None:
        # formato salvo pelo painel: preco em reais
        price_cents = round(float(_get(raw, "price", default=0)) * 100)
    return FeeTier(min_km=min_km, max_km=max_km, price_cents=max(int(price_cents), 0))


def parse_fee_tiers(raw: str | list | None) -> list[FeeTier]:
    """Le as faixas de frete da configuracao da loja; entradas invalidas sao ignoradas."""
    if raw is None or raw == "":
        return []
    data: Any = raw
    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Faixas de frete com JSON invalido, ignorando: %r", raw[:200])
            return []
    if not isinstance(data, list):
        logger.warning("Faixas de frete nao sao uma lista, ignorando")
        return []

    tiers: list[FeeTier] = []
    for entry in data:
        if not isinstance(entry, dict):
            continue
        try:
            tiers.append(_tier_from_dict(entry))
        except (TypeError, ValueError):
            logger.warning("Faixa de frete invalida ignorada: %s", entry)
    return tiers


def fallback_fee_cents(distance_km: float) -> int:
    for max_km, price_cents in FALLBACK_LADDER:
        if distance_km <= max_km:
            return price_cents
    return FALLBACK_BEYOND_CENTS


def resolve_delivery_fee(distance_km: float, tiers: Iterable[FeeTier]) -> int:
    for tier in tiers:
        if tier.covers(distance_km):
            return max(tier.price_cents, 0)
    return fallback_fee_cents(distance_km)


def flat_fee_cents() -> int:
    """Frete de endereco digitado: sem coordenadas nao ha distancia para calcular."""
    return max(TEXT_ADDRESS_DELIVERY_FEE_CENTS, 0)
