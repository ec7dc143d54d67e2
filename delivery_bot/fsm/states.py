from enum import Enum


class ConversationState(str, Enum):
    NAME = "NAME"
    NAME_CHECKOUT = "NAME_CHECKOUT"
    MENU = "MENU"
    ORDERING = "ORDERING"
    PIZZA_BUILDER_1 = "PIZZA_BUILDER_1"
    PIZZA_BUILDER_2 = "PIZZA_BUILDER_2"
    ADDRESS = "ADDRESS"
    ADDRESS_NUMBER = "ADDRESS_NUMBER"
    ADDRESS_REF = "ADDRESS_REF"
    PAYMENT = "PAYMENT"
    CONFIRM = "CONFIRM"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    PIX = "PIX"


PAYMENT_LABELS = {
    PaymentMethod.PIX: "Pix",
    PaymentMethod.CASH: "Dinheiro",
    PaymentMethod.CARD: "Cartão",
}

INITIAL_STATE = ConversationState.MENU
