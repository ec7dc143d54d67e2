from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from delivery_bot.fsm.states import INITIAL_STATE, ConversationState, PaymentMethod

logger = logging.getLogger(__name__)


class SessionInvariantError(Exception):
    """Sessao num estado que exige dados que ela nao tem."""


class CartLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: int | None = None
    name: str
    unit_price_cents: int = Field(ge=0)
    quantity: int = Field(default=1, ge=1)
    is_composite: bool = False
    second_flavor_name: str | None = None

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


class ComponentRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: int
    name: str
    price_cents: int = Field(ge=0)


class PendingComposite(BaseModel):
    first: ComponentRef | None = None


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float


class SessionData(BaseModel):
    state: ConversationState = INITIAL_STATE
    cart: list[CartLine] = Field(default_factory=list)
    pending_composite: PendingComposite | None = None
    address: str | None = None
    coordinates: Coordinates | None = None
    delivery_fee_cents: int | None = None
    total_cents: int | None = None
    payment_method: PaymentMethod | None = None

    @classmethod
    def fresh(cls, state: ConversationState = INITIAL_STATE) -> "SessionData":
        return cls(state=state)

    @classmethod
    def from_json(cls, raw: str | None) -> "SessionData":
        if not raw:
            return cls.fresh()
        try:
            return cls.model_validate_json(raw)
        except ValidationError:
            logger.warning("Sessao com formato invalido, reiniciando: %r", raw[:200])
            return cls.fresh()

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)

    @property
    def subtotal_cents(self) -> int:
        return sum(line.line_total_cents for line in self.cart)

    def check_invariants(self) -> None:
        """Cada estado so e alcancado depois de preencher os campos dos passos anteriores."""
        state = self.state
        if state == ConversationState.PIZZA_BUILDER_2:
            if not self.pending_composite or not self.pending_composite.first:
                raise SessionInvariantError("PIZZA_BUILDER_2 sem o primeiro sabor")
        if state in _CHECKOUT_STATES and not self.cart:
            raise SessionInvariantError(f"{state.value} com carrinho vazio")
        if state in _ADDRESS_FILLED_STATES and (self.address is None or self.delivery_fee_cents is None):
            raise SessionInvariantError(f"{state.value} sem endereco/frete")
        if state in (ConversationState.PAYMENT, ConversationState.CONFIRM) and self.total_cents is None:
            raise SessionInvariantError(f"{state.value} sem total")
        if state == ConversationState.CONFIRM and self.payment_method is None:
            raise SessionInvariantError("CONFIRM sem forma de pagamento")


_CHECKOUT_STATES = {
    ConversationState.NAME_CHECKOUT,
    ConversationState.ADDRESS,
    ConversationState.ADDRESS_NUMBER,
    ConversationState.ADDRESS_REF,
    ConversationState.PAYMENT,
    ConversationState.CONFIRM,
}
_ADDRESS_FILLED_STATES = {
    ConversationState.ADDRESS_NUMBER,
    ConversationState.ADDRESS_REF,
    ConversationState.PAYMENT,
    ConversationState.CONFIRM,
}
