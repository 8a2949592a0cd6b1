# backend/config.py
import os
from pathlib import Path
from typing import Optional, cast
from dotenv import load_dotenv

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET: raise ValueError("JWT_SECRET is not set in .env file!")
safe_jwt_secret: str = cast(str, JWT_SECRET)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./blog.db")
CLIENT_URL = os.getenv("CLIENT_URL", "http://localhost:3000").rstrip("/")
PORT = int(os.getenv("PORT", "4000"))

GOOGLE_CLIENT_ID: Optional[str] = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET: Optional[str] = os.getenv("GOOGLE_CLIENT_SECRET")
GOOGLE_ENABLED = bool(GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET)

COOKIE_SECURE = _flag("COOKIE_SECURE")
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

AUTH_RATE_LIMIT = int(os.getenv("AUTH_RATE_LIMIT", "20"))
POST_RATE_LIMIT = int(os.getenv("POST_RATE_LIMIT", "30"))
RATE_LIMIT_WINDOW = float(os.getenv("RATE_LIMIT_WINDOW", "60"))

# Dev only: hand reset tokens back in the response since no mailer exists.
EXPOSE_RESET_TOKENS = _flag("EXPOSE_RESET_TOKENS")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
