# backend/schemas.py
"""
Request bodies and public projections for the blog API.

Request models keep their fields optional so that missing values reach the
services, which raise the API's own ValidationError messages. Response models
never carry password hashes or reset tokens.
"""
from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, Field

PostStatus = Literal["draft", "published", "archived"]

# --- Identity ---
class SessionUser(BaseModel): id: str; email: str; name: str

class UserPublic(BaseModel):
    id: str
    email: str
    name: str

class UserProfile(UserPublic):
    provider: str
    avatar: Optional[str] = None
    createdAt: datetime
    lastLogin: Optional[datetime] = None

class GoogleProfile(BaseModel):
    """Identity asserted by Google's userinfo endpoint."""
    googleId: str
    email: Optional[str] = None
    name: Optional[str] = None
    avatar: Optional[str] = None

# --- Auth requests ---
class SignupRequest(BaseModel): email: Optional[str] = None; password: Optional[str] = None; name: Optional[str] = None
class LoginRequest(BaseModel): email: Optional[str] = None; password: Optional[str] = None
class ProfileUpdateRequest(BaseModel): name: Optional[str] = None
class PasswordChangeRequest(BaseModel): currentPassword: Optional[str] = None; newPassword: Optional[str] = None
class ForgotPasswordRequest(BaseModel): email: Optional[str] = None
class ResetPasswordRequest(BaseModel): token: Optional[str] = None; password: Optional[str] = None

# --- Post requests ---
class PostCreateRequest(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    tags: Optional[List[str]] = None
    status: Optional[PostStatus] = None
    featured: Optional[bool] = None

class PostUpdateRequest(PostCreateRequest):
    """Partial update: fields left out of the body stay unchanged."""

class CommentCreateRequest(BaseModel): content: Optional[str] = None

# --- Post responses ---
class AuthorPublic(BaseModel):
    id: str
    name: str
    email: Optional[str] = None

class CommentOut(BaseModel):
    id: str
    author: AuthorPublic
    authorName: str
    content: str
    createdAt: datetime

class PostBase(BaseModel):
    id: str
    title: str
    author: AuthorPublic
    authorName: str
    tags: List[str]
    status: PostStatus
    featured: bool
    views: int
    likesCount: int
    commentsCount: int
    createdAt: datetime
    updatedAt: datetime

class PostSummary(PostBase):
    """List projection: full content is replaced by a short excerpt."""
    excerpt: str

class PostFull(PostBase):
    content: str

class PostDetail(PostFull):
    isLiked: bool = False
    comments: List[CommentOut] = Field(default_factory=list)

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int

class PostSummaryPage(BaseModel): posts: List[PostSummary]; pagination: Pagination
class PostFullPage(BaseModel): posts: List[PostFull]; pagination: Pagination

class LikeResult(BaseModel): likesCount: int; isLiked: bool
class TagCount(BaseModel): tag: str; count: int
