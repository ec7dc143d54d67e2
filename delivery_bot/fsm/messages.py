from __future__ import annotations

from typing import Sequence

from delivery_bot.fsm.session import CartLine
from delivery_bot.fsm.states import PAYMENT_LABELS, PaymentMethod
from delivery_bot.services.catalog import CATEGORY_LABELS, Product


def format_price_cents(price_cents: int) -> str:
    price = price_cents / 100
    return f"R$ {price:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")


MENU_OPTIONS = "Digite o número da opção:\n\n1️⃣ *Ver Cardápio*\n2️⃣ *Falar com Atendente*"


def ask_name(store_name: str) -> str:
    return f"👋 Olá! Bem-vindo ao *{store_name}*.\n\nPara começarmos, por favor digite seu *NOME*:"


def greeting(first_name: str, store_name: str) -> str:
    return f"👋 Olá *{first_name}*! Bem-vindo ao *{store_name}* 🍕.\n\nSou seu assistente virtual. {MENU_OPTIONS}"


NAME_TOO_SHORT = "Nome muito curto. Por favor, digite seu nome completo ou apelido."
NAME_CHECKOUT_TOO_SHORT = "Nome muito curto. Tente novamente."
NAME_TOO_LONG = "Nome muito longo. Digite só como prefere ser chamado (até 120 letras)."


def name_accepted(name: str) -> str:
    return f"Prazer, *{name}*! Agora sim.\n\n{MENU_OPTIONS}"


MENU_HELP = "Digite *1* para ver o cardápio ou *2* para falar com um atendente."

EMPTY_MENU = "😔 Cardápio vazio no momento."


def catalog(store_name: str, products: Sequence[Product]) -> str:
    if not products:
        return EMPTY_MENU
    lines = [f"*🍕 CARDÁPIO {store_name.upper()} 🥤*", ""]
    current_category = None
    for product in products:
        if product.category != current_category:
            if current_category is not None:
                lines.append("")
            current_category = product.category
            lines.append(f"*{CATEGORY_LABELS.get(product.category, product.category)}*")
        lines.append(f"- {product.name}: {format_price_cents(product.price_cents)}")
    lines.append("")
    lines.append("📝 *Como pedir:* Digite o nome do produto e a quantidade.")
    lines.append("🍕 Para pizza meio a meio, digite *MEIA*.")
    return "\n".join(lines)


EMPTY_CART = "Seu carrinho está vazio! Peça algo antes de finalizar."
ASK_NAME_CHECKOUT = "📝 Antes de continuar, digite seu *NOME*:"
ASK_ADDRESS = (
    "📍 *Entrega:* Envie sua *LOCALIZAÇÃO* do WhatsApp (clipe -> Localização) "
    "ou digite seu endereço completo."
)


def name_checkout_accepted(name: str) -> str:
    return f"Obrigado, *{name}*!\n\n{ASK_ADDRESS}"


def item_added(line: CartLine, subtotal_cents: int) -> str:
    return (
        f"✅ *Adicionado:* {line.quantity}x {line.name}\n"
        f"🛒 *Total Parcial:* {format_price_cents(subtotal_cents)}\n\n"
        "Digite o nome de mais produtos ou *FINALIZAR*."
    )


PRODUCT_NOT_FOUND = (
    "🤔 Não encontrei esse produto no cardápio.\n\n"
    "Digite o nome do lanche (ex: \"X-Burguer\") ou *FINALIZAR*."
)

ASK_FIRST_FLAVOR = "🍕 *Montar Pizza Meio a Meio*\n\nDigite o nome do *1º SABOR*:"
FIRST_FLAVOR_NOT_FOUND = "❌ Sabor não encontrado nas Pizzas. Tente novamente ou digite *CANCELAR*."
SECOND_FLAVOR_NOT_FOUND = "❌ Sabor não encontrado. Digite o nome do 2º sabor ou *\"NÃO\"* para pedir inteira."


def first_flavor_chosen(name: str) -> str:
    return f"✔️ 1º Sabor: {name}\n\nAgora digite o *2º SABOR* ou *\"NÃO\"* para pedir inteira:"


def offer_second_flavor(name: str) -> str:
    return (
        f"🍕 Você escolheu *{name}*.\n\n"
        "Quer adicionar um 2º sabor (Meio a Meio)?\n"
        "Digite o nome do 2º sabor ou *\"NÃO\"* para pedir inteira."
    )


def single_flavor_added(line: CartLine, subtotal_cents: int) -> str:
    return (
        f"✅ Adicionado: 1x {line.name}\n"
        f"💲 {format_price_cents(line.unit_price_cents)}\n"
        f"🛒 *Total Parcial:* {format_price_cents(subtotal_cents)}\n\n"
        "Mais alguma coisa? Digite o nome ou *FINALIZAR*."
    )


def composite_added(first_name: str, second_name: str, line: CartLine, subtotal_cents: int) -> str:
    return (
        "🍕 Pizza Montada!\n\n"
        f"1/2 {first_name} & 1/2 {second_name}\n"
        f"💲 Valor: {format_price_cents(line.unit_price_cents)}\n"
        f"🛒 *Total Parcial:* {format_price_cents(subtotal_cents)}\n\n"
        "Digite mais produtos ou *FINALIZAR*."
    )


def location_received(fee_cents: int) -> str:
    return (
        f"✅ Localização recebida (Frete: {format_price_cents(fee_cents)}).\n\n"
        "Agora digite o *NÚMERO DA CASA* e complemento (se houver):"
    )


def text_address_received(fee_cents: int) -> str:
    return (
        f"Certo! Frete: {format_price_cents(fee_cents)}.\n\n"
        "Agora digite o *NÚMERO DA CASA* e complemento:"
    )


ASK_REFERENCE = "Ok. Tem algum *PONTO DE REFERÊNCIA*? (Ou digite 'Não')"


def ask_payment(subtotal_cents: int, fee_cents: int, total_cents: int) -> str:
    return (
        f"🧾 Subtotal: {format_price_cents(subtotal_cents)}\n"
        f"🛵 Entrega: {format_price_cents(fee_cents)}\n"
        f"💰 *Total: {format_price_cents(total_cents)}*\n\n"
        "💳 *Forma de Pagamento*\n\nEscolha a opção:\n\n"
        "1️⃣ *Pix* (Chave enviada no final)\n"
        "2️⃣ *Dinheiro*\n"
        "3️⃣ *Cartão* (Maquininha)"
    )


INVALID_PAYMENT = "❌ Opção inválida. Digite:\n1️⃣ Pix\n2️⃣ Dinheiro\n3️⃣ Cartão"


def order_summary(
    cart: Sequence[CartLine],
    fee_cents: int,
    total_cents: int,
    payment_method: PaymentMethod,
    address: str,
) -> str:
    items = "\n".join(f"{line.quantity}x {line.name}" for line in cart)
    return (
        "📝 *Resumo do Pedido*\n\n"
        f"{items}\n\n"
        f"🛵 Entrega: {format_price_cents(fee_cents)}\n"
        f"💳 Pagamento: {PAYMENT_LABELS[payment_method]}\n"
        f"💰 *Total: {format_price_cents(total_cents)}*\n\n"
        f"📍 Endereço: {address}\n\n"
        "✅ Digite *OK* para confirmar ou *CANCELAR*."
    )


ORDER_CANCELLED = "Pedido Cancelado. Digite *MENU* para começar de novo."


def order_confirmed(display_id: int) -> str:
    return (
        f"🎉 *Pedido #{display_id} Recebido!*\n\n"
        "A cozinha já está preparando. Te aviso quando sair para entrega! 🛵"
    )


HANDOFF_ACK = "✅ Atendente chamado! Aguarde um momento."

SESSION_RECOVERED = "⚠️ Desculpe, me perdi no seu pedido. Vamos continuar pelo menu.\n\n" + MENU_OPTIONS

PROCESSING_ERROR = "Desculpe, tivemos um problema ao processar sua mensagem. Pode tentar de novo em instantes?"
