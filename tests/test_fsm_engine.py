import pytest

from delivery_bot.fsm import messages
from delivery_bot.fsm.engine import (
    LOCATION_ADDRESS_LABEL,
    ConversationEngine,
    CustomerInfo,
    InboundEvent,
    LocationEvent,
    build_composite_line,
)
from delivery_bot.fsm.session import CartLine, ComponentRef, PendingComposite, SessionData
from delivery_bot.fsm.states import ConversationState as S
from delivery_bot.fsm.states import PaymentMethod
from delivery_bot.services.delivery_fee import FeeTier
from delivery_bot.services.store_settings import TenantSettings

from tests.fixtures_data import PRODUCTS, STORE_COORDS

STORE = TenantSettings(name="Pizzaria Teste", store_lat=STORE_COORDS[0], store_lng=STORE_COORDS[1])
NAMED = CustomerInfo(id=1, name="Maria Silva", phone="5511988887777")
ANONYMOUS = CustomerInfo(id=1, name="Cliente", phone="5511988887777")


class _FakeCatalog:
    def __init__(self, products):
        self._products = list(products)
        self.calls = 0

    def list_products(self, category=None):
        self.calls += 1
        if category:
            return [product for product in self._products if product.category == category]
        return list(self._products)


@pytest.fixture
def engine():
    return ConversationEngine(_FakeCatalog(PRODUCTS))


def _turn(engine, session, text="", *, location=None, customer=NAMED, store=STORE):
    return engine.handle(session, InboundEvent(text=text, location=location), customer=customer, store=store)


def _burger(quantity=1):
    return CartLine(product_id=1, name="X-Burguer", unit_price_cents=2500, quantity=quantity)


def _checkout(state, **fields):
    return SessionData(state=state, cart=[_burger()], **fields)


# --- comandos globais ---------------------------------------------------------


def test_reset_known_customer_goes_to_menu_with_greeting(engine):
    result = _turn(engine, _checkout(S.PAYMENT, address="Rua A", delivery_fee_cents=1000, total_cents=3500), "Cancelar")

    assert result.reset is True
    assert result.session == SessionData.fresh(S.MENU)
    assert result.replies == [messages.greeting("Maria", "Pizzaria Teste")]


def test_reset_unknown_customer_asks_name(engine):
    result = _turn(engine, SessionData.fresh(), "oi", customer=ANONYMOUS)

    assert result.session.state == S.NAME
    assert result.replies == [messages.ask_name("Pizzaria Teste")]


def test_customer_named_after_phone_is_still_unknown(engine):
    customer = CustomerInfo(id=1, name="5511988887777", phone="5511988887777")
    result = _turn(engine, SessionData.fresh(), "olá", customer=customer)
    assert result.session.state == S.NAME


def test_reset_twice_is_idempotent(engine):
    first = _turn(engine, _checkout(S.ORDERING), "menu")
    second = _turn(engine, first.session, "menu")

    assert first.session == second.session
    assert first.replies == second.replies


def test_handoff_keeps_session_untouched(engine):
    session = _checkout(S.ORDERING)
    result = _turn(engine, session, "2")

    assert result.handoff is True
    assert result.session == session
    assert result.replies == [messages.HANDOFF_ACK]


def test_handoff_wins_over_payment_option_two(engine):
    session = _checkout(S.PAYMENT, address="Rua A", delivery_fee_cents=1000, total_cents=3500)
    result = _turn(engine, session, "2")

    assert result.handoff is True
    assert result.session.state == S.PAYMENT


def test_engine_does_not_mutate_loaded_session(engine):
    session = _checkout(S.ORDERING)
    _turn(engine, session, "x-salada")

    assert len(session.cart) == 1
    assert session.state == S.ORDERING


# --- NAME / MENU --------------------------------------------------------------


def test_short_name_is_rejected(engine):
    result = _turn(engine, SessionData.fresh(S.NAME), "Jo", customer=ANONYMOUS)

    assert result.session.state == S.NAME
    assert result.replies == [messages.NAME_TOO_SHORT]
    assert result.customer_name is None


def test_overlong_name_is_rejected(engine):
    result = _turn(engine, SessionData.fresh(S.NAME), "A" * 500, customer=ANONYMOUS)

    assert result.session.state == S.NAME
    assert result.replies == [messages.NAME_TOO_LONG]
    assert result.customer_name is None

    checkout = _turn(engine, _checkout(S.NAME_CHECKOUT), "B" * 121, customer=ANONYMOUS)
    assert checkout.session.state == S.NAME_CHECKOUT
    assert checkout.replies == [messages.NAME_TOO_LONG]

    longest = _turn(engine, SessionData.fresh(S.NAME), "C" * 120, customer=ANONYMOUS)
    assert longest.session.state == S.MENU


def test_valid_name_moves_to_menu(engine):
    result = _turn(engine, SessionData.fresh(S.NAME), "  Maria ", customer=ANONYMOUS)

    assert result.session.state == S.MENU
    assert result.customer_name == "Maria"
    assert result.replies == [messages.name_accepted("Maria")]


@pytest.mark.parametrize("text", ["1", "Ver Cardápio"])
def test_menu_shows_catalog(engine, text):
    result = _turn(engine, SessionData.fresh(S.MENU), text)

    assert result.session.state == S.ORDERING
    assert "- X-Burguer: R$ 25,00" in result.replies[0]
    assert "- Calabresa: R$ 20,00" in result.replies[0]


def test_menu_with_empty_catalog(engine):
    empty_engine = ConversationEngine(_FakeCatalog([]))
    result = _turn(empty_engine, SessionData.fresh(S.MENU), "1")
    assert result.replies == [messages.EMPTY_MENU]


def test_menu_other_input_repeats_options(engine):
    result = _turn(engine, SessionData.fresh(S.MENU), "quero pizza")

    assert result.session.state == S.MENU
    assert result.replies == [messages.MENU_HELP]


# --- ORDERING -----------------------------------------------------------------


def test_product_is_added_with_quantity(engine):
    result = _turn(engine, SessionData.fresh(S.ORDERING), "x-burguer 2")

    assert result.session.state == S.ORDERING
    assert result.session.cart == [_burger(quantity=2)]
    assert "R$ 50,00" in result.replies[0]


def test_unknown_product_gets_not_found_reply(engine):
    result = _turn(engine, SessionData.fresh(S.ORDERING), "batata frita")

    assert result.replies == [messages.PRODUCT_NOT_FOUND]
    assert result.session.cart == []


@pytest.mark.parametrize("text", ["ok", "sim", "kkk", "1"])
def test_short_or_acknowledgement_input_is_ignored(engine, text):
    result = _turn(engine, _checkout(S.ORDERING), text)

    assert result.replies == []
    assert result.session == _checkout(S.ORDERING)


def test_checkout_with_empty_cart_is_refused(engine):
    result = _turn(engine, SessionData.fresh(S.ORDERING), "finalizar")

    assert result.session.state == S.ORDERING
    assert result.replies == [messages.EMPTY_CART]


def test_checkout_known_customer_asks_address(engine):
    result = _turn(engine, _checkout(S.ORDERING), "Finalizar")

    assert result.session.state == S.ADDRESS
    assert result.replies == [messages.ASK_ADDRESS]


def test_checkout_unknown_customer_asks_name_first(engine):
    result = _turn(engine, _checkout(S.ORDERING), "fechar pedido", customer=ANONYMOUS)
    assert result.session.state == S.NAME_CHECKOUT

    result = _turn(engine, result.session, "Ana Paula", customer=ANONYMOUS)
    assert result.session.state == S.ADDRESS
    assert result.customer_name == "Ana Paula"

    retry = _turn(engine, _checkout(S.NAME_CHECKOUT), "An", customer=ANONYMOUS)
    assert retry.session.state == S.NAME_CHECKOUT
    assert retry.replies == [messages.NAME_CHECKOUT_TOO_SHORT]


# --- meio a meio --------------------------------------------------------------


def test_pizza_name_offers_second_flavor_and_charges_pricier(engine):
    result = _turn(engine, SessionData.fresh(S.ORDERING), "calabresa")
    assert result.session.state == S.PIZZA_BUILDER_2
    assert result.session.pending_composite.first.name == "Calabresa"

    result = _turn(engine, result.session, "frango")

    assert result.session.state == S.ORDERING
    assert result.session.pending_composite is None
    line = result.session.cart[0]
    assert line.unit_price_cents == 2500
    assert line.product_id == 11
    assert line.is_composite is True
    assert line.name == "Meia Calabresa / Meia Frango com Catupiry"
    assert line.second_flavor_name == "Frango com Catupiry"


def test_half_half_keyword_builds_single_flavor_when_declined(engine):
    result = _turn(engine, SessionData.fresh(S.ORDERING), "quero meia")
    assert result.session.state == S.PIZZA_BUILDER_1
    assert result.replies == [messages.ASK_FIRST_FLAVOR]

    result = _turn(engine, result.session, "frango")
    assert result.session.state == S.PIZZA_BUILDER_2

    result = _turn(engine, result.session, "Não")
    assert result.session.state == S.ORDERING
    assert result.session.cart == [CartLine(product_id=11, name="Frango com Catupiry", unit_price_cents=2500)]


@pytest.mark.parametrize("text", ["meiacalabresa", "metadecalabresa", "quero meio a meio"])
def test_half_half_markers_inside_words_start_builder(engine, text):
    result = _turn(engine, SessionData.fresh(S.ORDERING), text)
    assert result.session.state == S.PIZZA_BUILDER_1


def test_unknown_flavors_reprompt(engine):
    result = _turn(engine, SessionData(state=S.PIZZA_BUILDER_1, pending_composite=PendingComposite()), "x-burguer")
    assert result.session.state == S.PIZZA_BUILDER_1
    assert result.replies == [messages.FIRST_FLAVOR_NOT_FOUND]

    first = ComponentRef(product_id=10, name="Calabresa", price_cents=2000)
    session = SessionData(state=S.PIZZA_BUILDER_2, pending_composite=PendingComposite(first=first))
    result = _turn(engine, session, "portuguesa")
    assert result.session.state == S.PIZZA_BUILDER_2
    assert result.replies == [messages.SECOND_FLAVOR_NOT_FOUND]


def test_composite_line_tie_links_first_flavor():
    first = ComponentRef(product_id=10, name="Calabresa", price_cents=2000)
    second = ComponentRef(product_id=12, name="Mussarela", price_cents=2000)

    line = build_composite_line(first, second)

    assert line.product_id == 10
    assert line.unit_price_cents == 2000
    assert line.quantity == 1


# --- endereco -----------------------------------------------------------------


def test_location_uses_fallback_ladder_without_tiers(engine):
    location = LocationEvent(latitude=STORE_COORDS[0], longitude=STORE_COORDS[1])
    result = _turn(engine, _checkout(S.ADDRESS), location=location)

    assert result.session.state == S.ADDRESS_NUMBER
    assert result.session.address == LOCATION_ADDRESS_LABEL
    assert result.session.delivery_fee_cents == 500
    assert result.session.coordinates.lat == STORE_COORDS[0]
    assert result.replies == [messages.location_received(500)]


def test_location_uses_store_tiers():
    # Av. Paulista fica a ~2,6 km da Se
    store = TenantSettings(
        name="Pizzaria Teste",
        store_lat=STORE_COORDS[0],
        store_lng=STORE_COORDS[1],
        fee_tiers=(FeeTier(0, 2, 500), FeeTier(2, 6, 800)),
    )
    engine = ConversationEngine(_FakeCatalog(PRODUCTS))
    location = LocationEvent(latitude=-23.561414, longitude=-46.655881)

    result = _turn(engine, _checkout(S.ADDRESS), location=location, store=store)

    assert result.session.delivery_fee_cents == 800


def test_text_address_has_flat_fee(engine):
    result = _turn(engine, _checkout(S.ADDRESS), "Rua das Flores, centro")

    assert result.session.state == S.ADDRESS_NUMBER
    assert result.session.address == "Rua das Flores, centro"
    assert result.session.coordinates is None
    assert result.session.delivery_fee_cents == 1000


def test_location_outside_address_step_is_ignored(engine):
    session = _checkout(S.ORDERING)
    result = _turn(engine, session, location=LocationEvent(latitude=0, longitude=0))

    assert result.replies == []
    assert result.session == session


def test_house_number_and_reference_close_the_address(engine):
    session = _checkout(S.ADDRESS_NUMBER, address="Rua A", delivery_fee_cents=1000)
    result = _turn(engine, session, "12 apto 3")
    assert result.session.state == S.ADDRESS_REF
    assert result.session.address == "Rua A, 12 apto 3"

    result = _turn(engine, result.session, "perto da padaria")
    assert result.session.state == S.PAYMENT
    assert result.session.address == "Rua A, 12 apto 3 (Ref: perto da padaria)"
    assert result.session.total_cents == 3500
    assert result.replies == [messages.ask_payment(2500, 1000, 3500)]


def test_reference_can_be_skipped(engine):
    session = _checkout(S.ADDRESS_REF, address="Rua A, 12", delivery_fee_cents=1000)
    result = _turn(engine, session, "não")

    assert result.session.address == "Rua A, 12"
    assert result.session.total_cents == 3500


# --- pagamento e confirmacao --------------------------------------------------


def _payment_session():
    return _checkout(S.PAYMENT, address="Rua A, 12", delivery_fee_cents=1000, total_cents=3500)


@pytest.mark.parametrize(
    "text, expected",
    [("1", PaymentMethod.PIX), ("Pix", PaymentMethod.PIX), ("dinheiro", PaymentMethod.CASH), ("3", PaymentMethod.CARD), ("cartão", PaymentMethod.CARD)],
)
def test_payment_options(engine, text, expected):
    result = _turn(engine, _payment_session(), text)

    assert result.session.state == S.CONFIRM
    assert result.session.payment_method == expected


def test_invalid_payment_reprompts(engine):
    result = _turn(engine, _payment_session(), "boleto")

    assert result.session.state == S.PAYMENT
    assert result.replies == [messages.INVALID_PAYMENT]


def test_confirm_hands_cart_to_order_creation(engine):
    session = _payment_session()
    session.state = S.CONFIRM
    session.payment_method = PaymentMethod.PIX

    result = _turn(engine, session, "OK")

    assert result.order_session.cart == [_burger()]
    assert result.order_session.payment_method == PaymentMethod.PIX
    assert result.session == SessionData.fresh(S.MENU)
    assert result.replies == []


def test_anything_else_at_confirm_cancels(engine):
    session = _payment_session()
    session.state = S.CONFIRM
    session.payment_method = PaymentMethod.CASH

    result = _turn(engine, session, "mudei de ideia")

    assert result.order_session is None
    assert result.session == SessionData.fresh(S.MENU)
    assert result.replies == [messages.ORDER_CANCELLED]


# --- sessao inconsistente -----------------------------------------------------


def test_inconsistent_session_recovers_to_menu_keeping_cart(engine):
    session = SessionData(state=S.PIZZA_BUILDER_2, cart=[_burger()])

    result = _turn(engine, session, "frango")

    assert result.session.state == S.MENU
    assert result.session.cart == [_burger()]
    assert result.session.pending_composite is None
    assert result.replies == [messages.SESSION_RECOVERED]


def test_checkout_state_with_empty_cart_recovers(engine):
    result = _turn(engine, SessionData(state=S.PAYMENT), "1")

    assert result.session == SessionData.fresh(S.MENU)
    assert result.replies == [messages.SESSION_RECOVERED]
