import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from delivery_bot.core.config import ORDER_INITIAL_STATUS
from delivery_bot.fsm.session import CartLine, SessionData
from delivery_bot.fsm.states import PaymentMethod
from delivery_bot.models.customer import Customer
from delivery_bot.models.order import Order
from delivery_bot.models.order_item import OrderItem

logger = logging.getLogger(__name__)

ORDER_SOURCE = "WHATSAPP_BOT"
ADDRESS_NOT_INFORMED = "Não informado"


def next_display_id(db: Session, tenant_id: int) -> int:
    """Numero do pedido para o cliente: ultimo do tenant + 1 (cada tenant tem sua sequencia)."""
    last = db.query(func.max(Order.display_id)).filter(Order.tenant_id == tenant_id).scalar()
    return int(last or 0) + 1


def _order_item_from_line(tenant_id: int, line: CartLine) -> OrderItem:
    return OrderItem(
        tenant_id=tenant_id,
        menu_item_id=line.product_id,
        product_name=line.name,
        quantity=line.quantity,
        unit_price_cents=line.unit_price_cents,
        subtotal_cents=line.line_total_cents,
        is_half_half=line.is_composite,
        second_flavor_name=line.second_flavor_name if line.is_composite else None,
    )


def create_order(db: Session, tenant_id: int, payload: dict) -> Order:
    items: list[CartLine] = payload.get("items") or []
    order = Order(
        tenant_id=tenant_id,
        display_id=next_display_id(db, tenant_id),
        customer_id=payload.get("customer_id"),
        client_name=payload.get("client_name") or "",
        client_phone=payload.get("client_phone") or "",
        delivery_address=payload.get("delivery_address") or ADDRESS_NOT_INFORMED,
        subtotal_cents=int(payload.get("subtotal_cents", 0) or 0),
        delivery_fee_cents=int(payload.get("delivery_fee_cents", 0) or 0),
        total_cents=int(payload.get("total_cents", 0) or 0),
        payment_method=payload.get("payment_method") or PaymentMethod.CASH.value,
        source=payload.get("source") or ORDER_SOURCE,
        status=payload.get("status") or ORDER_INITIAL_STATUS,
    )
    order.order_items = [_order_item_from_line(tenant_id, line) for line in items]
    db.add(order)
    db.flush()
    return order


def create_order_from_session(db: Session, tenant_id: int, customer: Customer, session: SessionData) -> Order:
    """Cria o pedido a partir do carrinho confirmado no CONFIRM."""
    subtotal_cents = session.subtotal_cents
    delivery_fee_cents = session.delivery_fee_cents or 0
    payment_method = session.payment_method or PaymentMethod.CASH

    order = create_order(
        db,
        tenant_id,
        {
            "customer_id": customer.id,
            "client_name": customer.name,
            "client_phone": customer.phone,
            "delivery_address": session.address,
            "subtotal_cents": subtotal_cents,
            "delivery_fee_cents": delivery_fee_cents,
            "total_cents": subtotal_cents + delivery_fee_cents,
            "payment_method": payment_method.value,
            "items": list(session.cart),
        },
    )
    logger.info(
        "[KITCHEN] Novo pedido #%s tenant=%s cliente=%s itens=%s total=%s",
        order.display_id,
        tenant_id,
        customer.name,
        len(order.order_items),
        order.total_cents,
    )
    return order
