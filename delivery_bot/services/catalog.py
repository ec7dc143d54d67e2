from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from delivery_bot.models.menu_item import MenuItem

# categoria cujos itens podem ser montados meio a meio
COMPOSITE_CATEGORY = "PIZZA"

CATEGORY_LABELS = {
    "SNACK": "🍔 Lanches",
    "PIZZA": "🍕 Pizzas",
    "DRINK": "🥤 Bebidas",
    "DESSERT": "🍰 Sobremesas",
}


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    price_cents: int
    category: str


def _to_product(item: MenuItem) -> Product:
    return Product(
        id=item.id,
        name=item.name,
        price_cents=int(item.price_cents or 0),
        category=(item.category or "").upper(),
    )


def list_active_products(db: Session, tenant_id: int, category: str | None = None) -> list[Product]:
    query = db.query(MenuItem).filter(MenuItem.tenant_id == tenant_id, MenuItem.active.is_(True))
    if category:
        query = query.filter(MenuItem.category == category.upper())
    items = query.order_by(MenuItem.category.asc(), MenuItem.id.asc()).all()
    return [_to_product(item) for item in items]


class TenantCatalog:
    """Leitura do cardapio de um tenant, memorizada durante um turno da conversa."""

    def __init__(self, db: Session, tenant_id: int) -> None:
        self._db = db
        self._tenant_id = tenant_id
        self._cache: dict[str | None, list[Product]] = {}

    def list_products(self, category: str | None = None) -> list[Product]:
        key = category.upper() if category else None
        if key not in self._cache:
            self._cache[key] = list_active_products(self._db, self._tenant_id, key)
        return self._cache[key]
