from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from delivery_bot.models.customer import CUSTOMER_NAME_MAX_LENGTH, PLACEHOLDER_CUSTOMER_NAME, Customer

logger = logging.getLogger(__name__)


def is_placeholder_name(name: str | None, phone: str | None) -> bool:
    """Nome ainda nao informado pelo cliente (padrao, vazio ou igual ao telefone)."""
    cleaned = (name or "").strip()
    return not cleaned or cleaned == PLACEHOLDER_CUSTOMER_NAME or cleaned == (phone or "").strip()


def find_active_customer_by_phone(db: Session, tenant_id: int, phone: str) -> Customer | None:
    return (
        db.query(Customer)
        .filter(Customer.tenant_id == tenant_id, Customer.phone == phone, Customer.active.is_(True))
        .first()
    )


def create_customer(db: Session, tenant_id: int, name: str | None, phone: str) -> Customer:
    cleaned = (name or "").strip()[:CUSTOMER_NAME_MAX_LENGTH]
    customer = Customer(tenant_id=tenant_id, name=cleaned or PLACEHOLDER_CUSTOMER_NAME, phone=phone)
    db.add(customer)
    db.flush()
    logger.info("Novo cliente: tenant=%s phone=%s name=%s", tenant_id, phone, customer.name)
    return customer


def get_or_create_customer(db: Session, tenant_id: int, phone: str, contact_name: str | None = None) -> Customer:
    customer = find_active_customer_by_phone(db, tenant_id, phone)
    if customer:
        return customer
    return create_customer(db, tenant_id, contact_name, phone)


def update_customer_name(db: Session, customer_id: int, name: str) -> None:
    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        return
    customer.name = name.strip()
    db.flush()
