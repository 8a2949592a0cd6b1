# backend/auth.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
import bcrypt
from fastapi import Cookie, Response
from authlib.integrations.starlette_client import OAuth
from jose import JWTError, jwt

import config
from errors import AuthError
from schemas import SessionUser

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
TOKEN_TTL = timedelta(days=7)
COOKIE_NAME = "token"
COOKIE_MAX_AGE = int(TOKEN_TTL.total_seconds())

oauth = OAuth()
if config.GOOGLE_ENABLED:
    oauth.register(
        name='google', client_id=config.GOOGLE_CLIENT_ID, client_secret=config.GOOGLE_CLIENT_SECRET,
        server_metadata_url='https://accounts.google.com/.well-known/openid-configuration',
        client_kwargs={'scope': 'openid email profile'}
    )
else:
    logger.warning("GOOGLE_CLIENT_ID/GOOGLE_CLIENT_SECRET not set; Google sign-in is disabled.")

# --- Passwords ---
# bcrypt only looks at the first 72 bytes; newer releases raise instead of truncating.
def _pw_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:72]

def hash_password(password: str) -> str:
    return bcrypt.hashpw(_pw_bytes(password), bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS)).decode("utf-8")

def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_pw_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        return False

# --- Session tokens ---
def create_access_token(data: dict) -> str:
    to_encode = data.copy()
    to_encode.setdefault("sub", data.get("id"))
    expire = datetime.now(timezone.utc) + TOKEN_TTL
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.safe_jwt_secret, algorithm=ALGORITHM)

def token_for(user) -> str:
    return create_access_token({"id": user.id, "email": user.email, "name": user.name})

def decode_access_token(token: str) -> SessionUser:
    try:
        payload = jwt.decode(token, config.safe_jwt_secret, algorithms=[ALGORITHM])
    except JWTError:
        raise AuthError("Invalid token")
    user_id, email, name = payload.get("id"), payload.get("email"), payload.get("name")
    if not user_id or not email or name is None:
        raise AuthError("Invalid token")
    return SessionUser(id=user_id, email=email, name=name)

# --- Cookies ---
def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        COOKIE_NAME, token, max_age=COOKIE_MAX_AGE, path="/",
        httponly=True, samesite="lax", secure=config.COOKIE_SECURE,
    )

def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(COOKIE_NAME, path="/", httponly=True, samesite="lax", secure=config.COOKIE_SECURE)

# --- Dependencies ---
async def get_current_user(token: Optional[str] = Cookie(None, alias=COOKIE_NAME)) -> SessionUser:
    """Identity claims from the session cookie; storage is not consulted."""
    if not token:
        raise AuthError("Unauthorized")
    return decode_access_token(token)

async def get_optional_user(token: Optional[str] = Cookie(None, alias=COOKIE_NAME)) -> Optional[SessionUser]:
    if not token:
        return None
    try:
        return decode_access_token(token)
    except AuthError:
        return None
