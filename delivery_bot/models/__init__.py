from delivery_bot.models.tenant import Tenant
from delivery_bot.models.store_settings import StoreSettings
from delivery_bot.models.customer import Customer
from delivery_bot.models.conversation import Conversation
from delivery_bot.models.chat_message import ChatMessage
from delivery_bot.models.processed_message import ProcessedMessage
from delivery_bot.models.menu_item import MenuItem
from delivery_bot.models.order import Order
from delivery_bot.models.order_item import OrderItem
from delivery_bot.models.whatsapp_config import WhatsAppConfig
