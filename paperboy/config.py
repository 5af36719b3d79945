# paperboy/config.py
import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./paperboy.db")

DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "America/Sao_Paulo")
DEFAULT_CHANNEL = os.getenv("DEFAULT_CHANNEL", "WHATSAPP")

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
IMAGES_URL_PREFIX = "/api/images"

STORE_TIMEOUT_SECONDS = float(os.getenv("STORE_TIMEOUT_SECONDS", "10"))
STRICT_TRANSITIONS = os.getenv("STRICT_TRANSITIONS", "false").lower() == "true"

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

PORT = int(os.getenv("PORT", "3010"))
