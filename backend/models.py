# backend/models.py
import uuid
from typing import Optional
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone

POST_STATUSES = ("draft", "published", "archived")

def new_id() -> str:
    return uuid.uuid4().hex

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def as_utc(value: datetime) -> datetime:
    # Some drivers hand stored timestamps back without tzinfo.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

class User(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    email: str = Field(unique=True, index=True)
    passwordHash: Optional[str] = Field(default=None, max_length=255)
    name: str
    provider: str = Field(default="local")
    googleId: Optional[str] = Field(default=None, unique=True, index=True)
    avatar: Optional[str] = Field(default=None, max_length=512)
    lastLogin: Optional[datetime] = Field(default=None)
    createdAt: datetime = Field(default_factory=utcnow)

class Post(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    title: str
    content: str
    authorId: str = Field(foreign_key="user.id", index=True)
    authorName: str
    status: str = Field(default="draft", index=True)
    featured: bool = Field(default=False)
    views: int = Field(default=0)
    createdAt: datetime = Field(default_factory=utcnow, index=True)
    updatedAt: datetime = Field(default_factory=utcnow)

class PostTag(SQLModel, table=True):
    postId: str = Field(foreign_key="post.id", primary_key=True)
    position: int = Field(primary_key=True)
    tag: str = Field(index=True)

class PostLike(SQLModel, table=True):
    postId: str = Field(foreign_key="post.id", primary_key=True)
    userId: str = Field(primary_key=True)
    createdAt: datetime = Field(default_factory=utcnow)

class Comment(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    postId: str = Field(foreign_key="post.id", index=True)
    authorId: str = Field(index=True)
    authorName: str
    content: str
    createdAt: datetime = Field(default_factory=utcnow)

class PasswordResetToken(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    userId: str = Field(foreign_key="user.id", index=True)
    tokenHash: str = Field(unique=True, index=True)
    expiresAt: datetime
    usedAt: Optional[datetime] = Field(default=None)
