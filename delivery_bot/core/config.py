import os

from dotenv import load_dotenv

# Carrega o .env da raiz do projeto
load_dotenv()


def _env_flag(name: str, default: str = "") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./delivery_bot.db")
ENV = os.getenv("ENV", "dev")
ENV_NORMALIZED = ENV.lower()
IS_DEV = ENV_NORMALIZED in {"dev", "development", "local"}
IS_PROD = ENV_NORMALIZED in {"prod", "production"}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# WhatsApp Cloud API
META_WA_ACCESS_TOKEN = os.getenv("META_WA_ACCESS_TOKEN", "")
META_WA_PHONE_NUMBER_ID = os.getenv("META_WA_PHONE_NUMBER_ID", "")
META_WA_VERIFY_TOKEN = os.getenv("META_WA_VERIFY_TOKEN", "")
META_API_VERSION = os.getenv("META_API_VERSION", "v19.0")

# "mock" nunca chama a Meta; "cloud" usa a config do tenant (ou as variaveis META_WA_*)
WHATSAPP_PROVIDER = os.getenv("WHATSAPP_PROVIDER", "mock").strip().lower()
WHATSAPP_FALLBACK_TO_MOCK = _env_flag("WHATSAPP_FALLBACK_TO_MOCK", "1" if IS_DEV else "0")

# Loja padrao quando o tenant ainda nao configurou as StoreSettings
DEFAULT_STORE_NAME = os.getenv("DEFAULT_STORE_NAME", "Delivery Master")
DEFAULT_STORE_LAT = float(os.getenv("DEFAULT_STORE_LAT", "-23.550520"))
DEFAULT_STORE_LNG = float(os.getenv("DEFAULT_STORE_LNG", "-46.633308"))

# Frete fixo quando o cliente digita o endereco em vez de mandar a localizacao
TEXT_ADDRESS_DELIVERY_FEE_CENTS = int(os.getenv("TEXT_ADDRESS_DELIVERY_FEE_CENTS", "1000"))

ORDER_INITIAL_STATUS = os.getenv("ORDER_INITIAL_STATUS", "PENDING").strip().upper() or "PENDING"
