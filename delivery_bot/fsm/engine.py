from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Protocol

from delivery_bot.fsm import messages
from delivery_bot.fsm.session import (
    CartLine,
    ComponentRef,
    Coordinates,
    PendingComposite,
    SessionData,
    SessionInvariantError,
)
from delivery_bot.fsm.states import ConversationState as S
from delivery_bot.fsm.states import PaymentMethod
from delivery_bot.models.customer import CUSTOMER_NAME_MAX_LENGTH
from delivery_bot.services.catalog import COMPOSITE_CATEGORY, Product
from delivery_bot.services.customers import is_placeholder_name
from delivery_bot.services.delivery_fee import flat_fee_cents, resolve_delivery_fee
from delivery_bot.services.geo import haversine_km
from delivery_bot.services.menu_search import (
    CatalogMatcher,
    ComponentMatcher,
    FirstMatchMatcher,
    extract_quantity,
    normalize,
)
from delivery_bot.services.store_settings import TenantSettings

logger = logging.getLogger(__name__)

RESET_KEYWORDS = {"cancelar", "reiniciar", "menu", "oi", "ola"}
HANDOFF_KEYWORD = "2"
SHOW_CATALOG_KEYWORDS = {"1", "ver cardapio"}
CHECKOUT_KEYWORDS = {"finalizar", "fechar pedido"}
HALF_HALF_MARKERS = ("meia", "metade")
HALF_HALF_PHRASE = "meio a meio"
SILENT_KEYWORDS = {"ok", "sim"}
SECOND_FLAVOR_NEGATIONS = {"nao", "nao quero", "unica", "inteira", "so uma", "1", "no"}
REFERENCE_SKIP_KEYWORDS = {"nao", "no", "nd"}
PAYMENT_CHOICES = {
    "1": PaymentMethod.PIX,
    "pix": PaymentMethod.PIX,
    "2": PaymentMethod.CASH,
    "dinheiro": PaymentMethod.CASH,
    "3": PaymentMethod.CARD,
    "cartao": PaymentMethod.CARD,
}
CONFIRM_KEYWORDS = {"ok", "sim", "confirmar"}
MIN_NAME_LENGTH = 3
LOCATION_ADDRESS_LABEL = "📍 Localização Maps"


def is_reset_command(text: str) -> bool:
    return normalize(text) in RESET_KEYWORDS


def is_handoff_command(text: str) -> bool:
    return normalize(text) == HANDOFF_KEYWORD


@dataclass(frozen=True)
class LocationEvent:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class InboundEvent:
    text: str = ""
    location: LocationEvent | None = None


@dataclass(frozen=True)
class CustomerInfo:
    id: int | None
    name: str | None
    phone: str

    @property
    def has_name(self) -> bool:
        return not is_placeholder_name(self.name, self.phone)

    @property
    def first_name(self) -> str:
        return (self.name or "").strip().split(" ")[0]


class CatalogReader(Protocol):
    def list_products(self, category: str | None = None) -> list[Product]:
        ...


@dataclass
class TurnResult:
    session: SessionData
    replies: list[str] = field(default_factory=list)
    handoff: bool = False
    reset: bool = False
    # nome informado pelo cliente neste turno (NAME / NAME_CHECKOUT)
    customer_name: str | None = None
    # carrinho confirmado; o pedido e criado fora do FSM
    order_session: SessionData | None = None


@dataclass
class TurnContext:
    session: SessionData
    event: InboundEvent
    customer: CustomerInfo
    store: TenantSettings
    catalog: CatalogReader
    matcher: CatalogMatcher
    component_matcher: CatalogMatcher
    text: str
    key: str
    matched: Product | None = None
    payment: PaymentMethod | None = None
    replies: list[str] = field(default_factory=list)
    customer_name: str | None = None
    order_session: SessionData | None = None

    def reply(self, text: str) -> None:
        self.replies.append(text)


# ---------------------------------------------------------------------------
# Classificadores: (contexto) -> classe da entrada para o estado atual
# ---------------------------------------------------------------------------


def _classify_name(ctx: TurnContext) -> str:
    if len(ctx.text) < MIN_NAME_LENGTH:
        return "invalid"
    # precisa caber em customers.name / orders.client_name
    if len(ctx.text) > CUSTOMER_NAME_MAX_LENGTH:
        return "too_long"
    return "valid"


def _classify_menu(ctx: TurnContext) -> str:
    return "show_catalog" if ctx.key in SHOW_CATALOG_KEYWORDS else "other"


def _is_half_half_request(key: str) -> bool:
    return any(marker in key for marker in HALF_HALF_MARKERS) or HALF_HALF_PHRASE in key


def _classify_ordering(ctx: TurnContext) -> str:
    if ctx.key in CHECKOUT_KEYWORDS:
        if not ctx.session.cart:
            return "checkout_empty"
        return "checkout" if ctx.customer.has_name else "checkout_anonymous"

    if _is_half_half_request(ctx.key):
        return "half_half"

    ctx.matched = ctx.matcher.match(ctx.text, ctx.catalog.list_products())
    if ctx.matched:
        return "composite_hit" if ctx.matched.category == COMPOSITE_CATEGORY else "product_hit"

    if len(ctx.key) > 3 and ctx.key not in SILENT_KEYWORDS:
        return "no_match"
    return "ignored"


def _classify_first_flavor(ctx: TurnContext) -> str:
    ctx.matched = ctx.component_matcher.match(ctx.text, ctx.catalog.list_products(COMPOSITE_CATEGORY))
    return "flavor_hit" if ctx.matched else "flavor_miss"


def _classify_second_flavor(ctx: TurnContext) -> str:
    if ctx.key in SECOND_FLAVOR_NEGATIONS:
        return "single"
    ctx.matched = ctx.component_matcher.match(ctx.text, ctx.catalog.list_products(COMPOSITE_CATEGORY))
    return "flavor_hit" if ctx.matched else "flavor_miss"


def _classify_address(ctx: TurnContext) -> str:
    if ctx.event.location is not None:
        return "location"
    return "text_address" if ctx.text else "empty"


def _classify_free_text(ctx: TurnContext) -> str:
    return "text" if ctx.text else "empty"


def _classify_reference(ctx: TurnContext) -> str:
    if not ctx.text or ctx.key in REFERENCE_SKIP_KEYWORDS:
        return "skip"
    return "reference"


def _classify_payment(ctx: TurnContext) -> str:
    ctx.payment = PAYMENT_CHOICES.get(ctx.key)
    return "valid" if ctx.payment else "invalid"


def _classify_confirm(ctx: TurnContext) -> str:
    return "confirm" if ctx.key in CONFIRM_KEYWORDS else "cancel"


# ---------------------------------------------------------------------------
# Acoes: alteram ctx.session / ctx.replies; o proximo estado vem da tabela
# ---------------------------------------------------------------------------


def _accept_name(ctx: TurnContext) -> None:
    ctx.customer_name = ctx.text
    ctx.reply(messages.name_accepted(ctx.text))


def _reject_name(ctx: TurnContext) -> None:
    ctx.reply(messages.NAME_TOO_SHORT)


def _accept_checkout_name(ctx: TurnContext) -> None:
    ctx.customer_name = ctx.text
    ctx.reply(messages.name_checkout_accepted(ctx.text))


def _reject_checkout_name(ctx: TurnContext) -> None:
    ctx.reply(messages.NAME_CHECKOUT_TOO_SHORT)


def _reject_long_name(ctx: TurnContext) -> None:
    ctx.reply(messages.NAME_TOO_LONG)


def _show_catalog(ctx: TurnContext) -> None:
    ctx.reply(messages.catalog(ctx.store.name, ctx.catalog.list_products()))


def _menu_help(ctx: TurnContext) -> None:
    ctx.reply(messages.MENU_HELP)


def _reject_empty_cart(ctx: TurnContext) -> None:
    ctx.reply(messages.EMPTY_CART)


def _ask_checkout_name(ctx: TurnContext) -> None:
    ctx.reply(messages.ASK_NAME_CHECKOUT)


def _ask_address(ctx: TurnContext) -> None:
    ctx.reply(messages.ASK_ADDRESS)


def _start_half_half(ctx: TurnContext) -> None:
    ctx.session.pending_composite = PendingComposite()
    ctx.reply(messages.ASK_FIRST_FLAVOR)


def _component_ref(product: Product) -> ComponentRef:
    return ComponentRef(product_id=product.id, name=product.name, price_cents=product.price_cents)


def _offer_second_flavor(ctx: TurnContext) -> None:
    ctx.session.pending_composite = PendingComposite(first=_component_ref(ctx.matched))
    ctx.reply(messages.offer_second_flavor(ctx.matched.name))


def _add_product(ctx: TurnContext) -> None:
    product = ctx.matched
    line = CartLine(
        product_id=product.id,
        name=product.name,
        unit_price_cents=product.price_cents,
        quantity=extract_quantity(ctx.text),
    )
    ctx.session.cart.append(line)
    ctx.reply(messages.item_added(line, ctx.session.subtotal_cents))


def _product_not_found(ctx: TurnContext) -> None:
    ctx.reply(messages.PRODUCT_NOT_FOUND)


def _ignore(ctx: TurnContext) -> None:
    return None


def _choose_first_flavor(ctx: TurnContext) -> None:
    ctx.session.pending_composite = PendingComposite(first=_component_ref(ctx.matched))
    ctx.reply(messages.first_flavor_chosen(ctx.matched.name))


def _first_flavor_not_found(ctx: TurnContext) -> None:
    ctx.reply(messages.FIRST_FLAVOR_NOT_FOUND)


def build_composite_line(first: ComponentRef, second: ComponentRef) -> CartLine:
    """Meio a meio cobra o sabor mais caro; o produto vinculado e o do sabor mais caro."""
    pricier = first if first.price_cents >= second.price_cents else second
    return CartLine(
        product_id=pricier.product_id,
        name=f"Meia {first.name} / Meia {second.name}",
        unit_price_cents=max(first.price_cents, second.price_cents),
        quantity=1,
        is_composite=True,
        second_flavor_name=second.name,
    )


def _add_single_flavor(ctx: TurnContext) -> None:
    first = ctx.session.pending_composite.first
    line = CartLine(product_id=first.product_id, name=first.name, unit_price_cents=first.price_cents)
    ctx.session.cart.append(line)
    ctx.session.pending_composite = None
    ctx.reply(messages.single_flavor_added(line, ctx.session.subtotal_cents))


def _add_composite(ctx: TurnContext) -> None:
    first = ctx.session.pending_composite.first
    second = _component_ref(ctx.matched)
    line = build_composite_line(first, second)
    ctx.session.cart.append(line)
    ctx.session.pending_composite = None
    ctx.reply(messages.composite_added(first.name, second.name, line, ctx.session.subtotal_cents))


def _second_flavor_not_found(ctx: TurnContext) -> None:
    ctx.reply(messages.SECOND_FLAVOR_NOT_FOUND)


def _accept_location(ctx: TurnContext) -> None:
    location = ctx.event.location
    distance_km = haversine_km(ctx.store.store_lat, ctx.store.store_lng, location.latitude, location.longitude)
    fee_cents = resolve_delivery_fee(distance_km, ctx.store.fee_tiers)
    logger.info("Frete por localizacao: distancia=%.2fkm frete=%s", distance_km, fee_cents)

    ctx.session.coordinates = Coordinates(lat=location.latitude, lng=location.longitude)
    ctx.session.address = LOCATION_ADDRESS_LABEL
    ctx.session.delivery_fee_cents = fee_cents
    ctx.reply(messages.location_received(fee_cents))


def _accept_text_address(ctx: TurnContext) -> None:
    fee_cents = flat_fee_cents()
    ctx.session.coordinates = None
    ctx.session.address = ctx.text
    ctx.session.delivery_fee_cents = fee_cents
    ctx.reply(messages.text_address_received(fee_cents))


def _append_house_number(ctx: TurnContext) -> None:
    ctx.session.address = f"{ctx.session.address}, {ctx.text}"
    ctx.reply(messages.ASK_REFERENCE)


def _ask_house_number(ctx: TurnContext) -> None:
    ctx.reply(messages.text_address_received(ctx.session.delivery_fee_cents or 0))


def _close_address(ctx: TurnContext) -> None:
    if ctx.text and ctx.key not in REFERENCE_SKIP_KEYWORDS:
        ctx.session.address = f"{ctx.session.address} (Ref: {ctx.text})"
    subtotal_cents = ctx.session.subtotal_cents
    fee_cents = ctx.session.delivery_fee_cents or 0
    ctx.session.total_cents = subtotal_cents + fee_cents
    ctx.reply(messages.ask_payment(subtotal_cents, fee_cents, ctx.session.total_cents))


def _choose_payment(ctx: TurnContext) -> None:
    session = ctx.session
    session.payment_method = ctx.payment
    ctx.reply(
        messages.order_summary(
            session.cart,
            session.delivery_fee_cents or 0,
            session.total_cents or 0,
            ctx.payment,
            session.address or "",
        )
    )


def _invalid_payment(ctx: TurnContext) -> None:
    ctx.reply(messages.INVALID_PAYMENT)


def _confirm_order(ctx: TurnContext) -> None:
    ctx.order_session = ctx.session.model_copy(deep=True)
    ctx.session = SessionData.fresh()


def _cancel_order(ctx: TurnContext) -> None:
    ctx.session = SessionData.fresh()
    ctx.reply(messages.ORDER_CANCELLED)


Classifier = Callable[[TurnContext], str]
Action = Callable[[TurnContext], None]

CLASSIFIERS: dict[S, Classifier] = {
    S.NAME: _classify_name,
    S.NAME_CHECKOUT: _classify_name,
    S.MENU: _classify_menu,
    S.ORDERING: _classify_ordering,
    S.PIZZA_BUILDER_1: _classify_first_flavor,
    S.PIZZA_BUILDER_2: _classify_second_flavor,
    S.ADDRESS: _classify_address,
    S.ADDRESS_NUMBER: _classify_free_text,
    S.ADDRESS_REF: _classify_reference,
    S.PAYMENT: _classify_payment,
    S.CONFIRM: _classify_confirm,
}

# (estado, classe da entrada) -> (acao, proximo estado)
TRANSITIONS: dict[tuple[S, str], tuple[Action, S]] = {
    (S.NAME, "valid"): (_accept_name, S.MENU),
    (S.NAME, "invalid"): (_reject_name, S.NAME),
    (S.NAME, "too_long"): (_reject_long_name, S.NAME),
    (S.NAME_CHECKOUT, "valid"): (_accept_checkout_name, S.ADDRESS),
    (S.NAME_CHECKOUT, "invalid"): (_reject_checkout_name, S.NAME_CHECKOUT),
    (S.NAME_CHECKOUT, "too_long"): (_reject_long_name, S.NAME_CHECKOUT),
    (S.MENU, "show_catalog"): (_show_catalog, S.ORDERING),
    (S.MENU, "other"): (_menu_help, S.MENU),
    (S.ORDERING, "checkout_empty"): (_reject_empty_cart, S.ORDERING),
    (S.ORDERING, "checkout_anonymous"): (_ask_checkout_name, S.NAME_CHECKOUT),
    (S.ORDERING, "checkout"): (_ask_address, S.ADDRESS),
    (S.ORDERING, "half_half"): (_start_half_half, S.PIZZA_BUILDER_1),
    (S.ORDERING, "composite_hit"): (_offer_second_flavor, S.PIZZA_BUILDER_2),
    (S.ORDERING, "product_hit"): (_add_product, S.ORDERING),
    (S.ORDERING, "no_match"): (_product_not_found, S.ORDERING),
    (S.ORDERING, "ignored"): (_ignore, S.ORDERING),
    (S.PIZZA_BUILDER_1, "flavor_hit"): (_choose_first_flavor, S.PIZZA_BUILDER_2),
    (S.PIZZA_BUILDER_1, "flavor_miss"): (_first_flavor_not_found, S.PIZZA_BUILDER_1),
    (S.PIZZA_BUILDER_2, "single"): (_add_single_flavor, S.ORDERING),
    (S.PIZZA_BUILDER_2, "flavor_hit"): (_add_composite, S.ORDERING),
    (S.PIZZA_BUILDER_2, "flavor_miss"): (_second_flavor_not_found, S.PIZZA_BUILDER_2),
    (S.ADDRESS, "location"): (_accept_location, S.ADDRESS_NUMBER),
    (S.ADDRESS, "text_address"): (_accept_text_address, S.ADDRESS_NUMBER),
    (S.ADDRESS, "empty"): (_ask_address, S.ADDRESS),
    (S.ADDRESS_NUMBER, "text"): (_append_house_number, S.ADDRESS_REF),
    (S.ADDRESS_NUMBER, "empty"): (_ask_house_number, S.ADDRESS_NUMBER),
    (S.ADDRESS_REF, "skip"): (_close_address, S.PAYMENT),
    (S.ADDRESS_REF, "reference"): (_close_address, S.PAYMENT),
    (S.PAYMENT, "valid"): (_choose_payment, S.CONFIRM),
    (S.PAYMENT, "invalid"): (_invalid_payment, S.PAYMENT),
    (S.CONFIRM, "confirm"): (_confirm_order, S.MENU),
    (S.CONFIRM, "cancel"): (_cancel_order, S.MENU),
}


class ConversationEngine:
    """FSM do pedido pelo WhatsApp.

    Nao grava nada: recebe a sessao carregada e devolve a nova sessao, as
    respostas e o que o chamador precisa persistir (nome, handoff, pedido).
    """

    def __init__(
        self,
        catalog: CatalogReader,
        *,
        matcher: CatalogMatcher | None = None,
        component_matcher: CatalogMatcher | None = None,
    ) -> None:
        self.catalog = catalog
        self.matcher = matcher or FirstMatchMatcher()
        self.component_matcher = component_matcher or ComponentMatcher()

    def handle(
        self,
        session: SessionData,
        event: InboundEvent,
        *,
        customer: CustomerInfo,
        store: TenantSettings,
    ) -> TurnResult:
        text = (event.text or "").strip()
        key = normalize(text)

        if key in RESET_KEYWORDS:
            return self._reset(customer, store)

        if key == HANDOFF_KEYWORD:
            return TurnResult(session=session, replies=[messages.HANDOFF_ACK], handoff=True)

        working = session.model_copy(deep=True)
        if event.location is not None and working.state != S.ADDRESS:
            logger.info("Localizacao ignorada no estado %s", working.state.value)
            return TurnResult(session=working)

        try:
            working.check_invariants()
        except SessionInvariantError as exc:
            logger.warning("Sessao inconsistente, voltando ao menu: %s", exc)
            return self._recover(working)

        ctx = TurnContext(
            session=working,
            event=event,
            customer=customer,
            store=store,
            catalog=self.catalog,
            matcher=self.matcher,
            component_matcher=self.component_matcher,
            text=text,
            key=key,
        )
        state = working.state
        input_class = CLASSIFIERS[state](ctx)
        transition = TRANSITIONS.get((state, input_class))
        if transition is None:
            logger.error("Transicao inexistente: estado=%s entrada=%s", state.value, input_class)
            return self._recover(working)

        action, next_state = transition
        action(ctx)
        ctx.session.state = next_state
        logger.debug(
            "FSM %s --%s--> %s",
            state.value,
            input_class,
            next_state.value,
            extra={"state": next_state.value},
        )
        return TurnResult(
            session=ctx.session,
            replies=ctx.replies,
            customer_name=ctx.customer_name,
            order_session=ctx.order_session,
        )

    def _reset(self, customer: CustomerInfo, store: TenantSettings) -> TurnResult:
        if not customer.has_name:
            return TurnResult(
                session=SessionData.fresh(S.NAME),
                replies=[messages.ask_name(store.name)],
                reset=True,
            )
        return TurnResult(
            session=SessionData.fresh(S.MENU),
            replies=[messages.greeting(customer.first_name, store.name)],
            reset=True,
        )

    def _recover(self, session: SessionData) -> TurnResult:
        recovered = SessionData(state=S.MENU, cart=list(session.cart))
        return TurnResult(session=recovered, replies=[messages.SESSION_RECOVERED])
