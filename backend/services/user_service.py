# backend/services/user_service.py
import hashlib
import logging
import secrets
from datetime import timedelta
from typing import Optional, Tuple
from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from auth import hash_password, verify_password
from errors import AuthError, ConflictError, NotFoundError, ValidationError
from models import Comment, PasswordResetToken, Post, PostLike, PostTag, User, as_utc, utcnow
from schemas import GoogleProfile, UserProfile, UserPublic

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
RESET_TOKEN_TTL = timedelta(minutes=15)
INVALID_CREDENTIALS = "Invalid credentials"

def to_public(user: User) -> UserPublic:
    return UserPublic(id=user.id, email=user.email, name=user.name)

def to_profile(user: User) -> UserProfile:
    return UserProfile(
        id=user.id, email=user.email, name=user.name, provider=user.provider,
        avatar=user.avatar, createdAt=user.createdAt, lastLogin=user.lastLogin,
    )

def _check_new_password(password: Optional[str]) -> str:
    if not password:
        raise ValidationError("Password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return password

async def get_user(session: AsyncSession, user_id: str) -> User:
    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user

async def find_by_email(session: AsyncSession, email: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()

async def signup(session: AsyncSession, email: Optional[str], password: Optional[str], name: Optional[str]) -> User:
    if not email or not password:
        raise ValidationError("Email and password required")
    if not name or not name.strip():
        raise ValidationError("Name is required")
    _check_new_password(password)

    if await find_by_email(session, email):
        raise ConflictError("Email already registered")

    user = User(email=email, name=name.strip(), passwordHash=hash_password(password), provider="local")
    session.add(user)
    try:
        await session.commit()
    except IntegrityError:
        # Lost a race with a concurrent signup for the same address.
        await session.rollback()
        raise ConflictError("Email already registered")
    await session.refresh(user)
    logger.info(f"New local account {user.id}")
    return user

async def authenticate(session: AsyncSession, email: Optional[str], password: Optional[str]) -> User:
    """Check an email/password pair.

    Every failure raises the same AuthError so callers cannot tell an unknown
    address from a wrong password.
    """
    if not email or not password:
        raise ValidationError("Email and password required")

    user = await find_by_email(session, email)
    if user is None or not verify_password(password, user.passwordHash):
        logger.info("Failed login attempt")
        raise AuthError(INVALID_CREDENTIALS)

    user.lastLogin = utcnow()
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user

async def update_profile(session: AsyncSession, user_id: str, name: Optional[str]) -> User:
    if not name or not name.strip():
        raise ValidationError("Name is required")
    user = await get_user(session, user_id)
    # Existing posts keep the authorName they were written under.
    user.name = name.strip()
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user

async def change_password(session: AsyncSession, user_id: str, current_password: Optional[str], new_password: Optional[str]) -> None:
    _check_new_password(new_password)
    user = await get_user(session, user_id)
    if user.passwordHash and not verify_password(current_password or "", user.passwordHash):
        raise AuthError(INVALID_CREDENTIALS)
    user.passwordHash = hash_password(new_password)
    session.add(user)
    await session.commit()

async def delete_account(session: AsyncSession, user_id: str) -> None:
    """Remove the account, every post it authored and the likes it left."""
    user = await get_user(session, user_id)
    post_ids = select(Post.id).where(Post.authorId == user_id)
    await session.execute(delete(Comment).where(Comment.postId.in_(post_ids)))
    await session.execute(delete(PostLike).where(PostLike.postId.in_(post_ids)))
    await session.execute(delete(PostTag).where(PostTag.postId.in_(post_ids)))
    await session.execute(delete(Post).where(Post.authorId == user_id))
    await session.execute(delete(PostLike).where(PostLike.userId == user_id))
    await session.execute(delete(PasswordResetToken).where(PasswordResetToken.userId == user_id))
    await session.delete(user)
    await session.commit()
    logger.info(f"Deleted account {user_id} and its posts")

async def link_google_account(session: AsyncSession, profile: GoogleProfile) -> Tuple[User, bool]:
    """Find or create the account for a Google identity.

    Lookup is by Google id first, then by email. An account found by email is
    linked and keeps its local password. An account already linked to another
    Google id is never relinked. Returns ``(user, created)``.
    """
    if not profile.email:
        raise ValidationError("No email found in Google profile")

    result = await session.execute(select(User).where(User.googleId == profile.googleId))
    user = result.scalar_one_or_none()
    created = False

    if user is None:
        user = await find_by_email(session, profile.email)
        if user is not None:
            if user.googleId and user.googleId != profile.googleId:
                raise ConflictError("Account is linked to a different Google identity")
            user.googleId = profile.googleId
            user.provider = "google"
            if not user.avatar:
                user.avatar = profile.avatar
            logger.info(f"Linked Google identity to account {user.id}")
        else:
            user = User(
                email=profile.email, name=(profile.name or "").strip() or "Google User",
                provider="google", googleId=profile.googleId, avatar=profile.avatar,
            )
            created = True
            logger.info("New account from Google sign-in")
    user.lastLogin = utcnow()
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user, created

def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()

async def request_password_reset(session: AsyncSession, email: Optional[str]) -> Optional[str]:
    """Issue a single-use reset token; None when the address is unknown."""
    if not email:
        raise ValidationError("Email is required")
    user = await find_by_email(session, email)
    if user is None:
        return None
    token = secrets.token_urlsafe(32)
    session.add(PasswordResetToken(userId=user.id, tokenHash=_hash_token(token), expiresAt=utcnow() + RESET_TOKEN_TTL))
    await session.commit()
    logger.info(f"Password reset issued for account {user.id}")
    return token

async def reset_password(session: AsyncSession, token: Optional[str], password: Optional[str]) -> None:
    if not token:
        raise ValidationError("Reset token is required")
    _check_new_password(password)

    result = await session.execute(select(PasswordResetToken).where(PasswordResetToken.tokenHash == _hash_token(token)))
    record = result.scalar_one_or_none()
    if record is None or record.usedAt is not None or as_utc(record.expiresAt) <= utcnow():
        raise ValidationError("Invalid or expired reset token")

    user = await get_user(session, record.userId)
    claimed = await session.execute(
        update(PasswordResetToken)
        .where(PasswordResetToken.id == record.id, PasswordResetToken.usedAt.is_(None))
        .values(usedAt=utcnow())
    )
    if claimed.rowcount != 1:
        await session.rollback()
        raise ValidationError("Invalid or expired reset token")
    user.passwordHash = hash_password(password)
    session.add(user)
    await session.commit()
