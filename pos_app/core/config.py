import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _split_csv(value: str) -> list[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


def _to_int(value: str, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class Settings:
    # Backend REST API
    API_BASE_URL: str = os.getenv("API_BASE_URL", "http://localhost:3000/api").rstrip("/")
    API_TOKEN: str = os.getenv("API_TOKEN", "")
    API_TIMEOUT: int = _to_int(os.getenv("API_TIMEOUT"), 10)

    # CORS
    ALLOWED_ORIGINS: list[str] = _split_csv(
        os.getenv("ALLOWED_ORIGINS", "*")
    )

    # Optional Frontend Protection
    FRONTEND_SECRET_TOKEN: str = os.getenv("FRONTEND_SECRET_TOKEN", "")

    # Cart persistence (one record per register station)
    CART_STORAGE_DIR: str = os.getenv("CART_STORAGE_DIR", "./data/carts")
    CART_STORAGE_KEY: str = os.getenv("CART_STORAGE_KEY", "pos_current_sale")
    DEFAULT_REGISTER_ID: str = os.getenv("DEFAULT_REGISTER_ID", "main")

    # Lookups
    PRODUCT_SEARCH_MIN_LENGTH: int = _to_int(os.getenv("PRODUCT_SEARCH_MIN_LENGTH"), 2)
    SEARCH_LIMIT: int = _to_int(os.getenv("SEARCH_LIMIT"), 20)

    # Display
    CURRENCY_SYMBOL: str = os.getenv("CURRENCY_SYMBOL", "$")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
