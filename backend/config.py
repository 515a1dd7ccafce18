# backend/config.py
from functools import lru_cache
from pathlib import Path
from typing import ClassVar

from pydantic_settings import BaseSettings

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite:///./database_storefront.db"
    LOG_LEVEL: str = "INFO"

    # Mercado Pago REST API
    MP_API_URL: str = "https://api.mercadopago.com"
    MP_ACCESS_TOKEN: str = ""
    MP_WEBHOOK_SECRET: str = ""
    PIX_EXPIRATION_MINUTES: int = 30

    # Public URLs used for gateway notifications and redirects
    BACKEND_URL: str = "http://127.0.0.1:8000"
    FRONTEND_URL: str = "http://localhost:3000"

    # Shipping quotes
    SHIPPING_ORIGIN_CEP: str = "01310100"
    SHIPPING_USE_EXTERNAL_API: bool = False
    MELHOR_ENVIO_API_URL: str = "https://melhorenvio.com.br"
    MELHOR_ENVIO_TOKEN: str = ""

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra: ClassVar[str] = "ignore"

@lru_cache
def get_settings() -> Settings:
    return Settings()
