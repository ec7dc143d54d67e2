#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from delivery_bot.core.config import IS_DEV  # noqa: E402
from delivery_bot.core.database import SessionLocal, engine  # noqa: E402
from delivery_bot.core.startup_checks import ensure_schema  # noqa: E402
from delivery_bot.models.menu_item import MenuItem  # noqa: E402
from delivery_bot.models.store_settings import StoreSettings  # noqa: E402
from delivery_bot.models.tenant import Tenant  # noqa: E402

DEMO_MENU = [
    ("X-Burguer", "SNACK", 2500),
    ("X-Salada", "SNACK", 2700),
    ("Calabresa", "PIZZA", 4000),
    ("Mussarela", "PIZZA", 3800),
    ("Frango com Catupiry", "PIZZA", 4500),
    ("Coca-Cola Lata", "DRINK", 600),
]

DEMO_RANGES = [
    {"minKm": 0, "maxKm": 2, "price": 5.0},
    {"minKm": 2, "maxKm": 6, "price": 8.0},
    {"minKm": 6, "maxKm": 10, "price": 12.0},
]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Cria um tenant de demonstracao com cardapio e faixas de frete.")
    parser.add_argument("--tenant", type=int, default=1, help="Tenant ID")
    parser.add_argument("--name", default="Delivery Master", help="Nome da loja")
    parser.add_argument("--lat", type=float, default=-23.550520, help="Latitude da loja")
    parser.add_argument("--lng", type=float, default=-46.633308, help="Longitude da loja")
    parser.add_argument("--force", action="store_true", help="Permite executar fora de dev")
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    if not IS_DEV and not args.force:
        print("Seed so roda em dev. Use --force para continuar.")
        return 1

    try:
        ensure_schema(engine)
    except RuntimeError as exc:
        print(str(exc))
        return 1

    db = SessionLocal()
    try:
        tenant = db.query(Tenant).filter(Tenant.id == args.tenant).first()
        if not tenant:
            tenant = Tenant(id=args.tenant, name=args.name)
            db.add(tenant)
            db.flush()

        settings = db.query(StoreSettings).filter(StoreSettings.tenant_id == tenant.id).first()
        if not settings:
            settings = StoreSettings(tenant_id=tenant.id)
            db.add(settings)
        settings.name = args.name
        settings.latitude = args.lat
        settings.longitude = args.lng
        settings.delivery_ranges_json = json.dumps(DEMO_RANGES)

        existing = {item.name for item in db.query(MenuItem).filter(MenuItem.tenant_id == tenant.id).all()}
        created = 0
        for name, category, price_cents in DEMO_MENU:
            if name in existing:
                continue
            db.add(MenuItem(tenant_id=tenant.id, name=name, category=category, price_cents=price_cents))
            created += 1
        db.commit()
    finally:
        db.close()

    print(f"Tenant {args.tenant} pronto: {created} itens novos no cardapio")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
