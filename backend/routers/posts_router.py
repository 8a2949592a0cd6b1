# backend/routers/posts_router.py
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, get_optional_user
from database import get_session
from rate_limit import post_rate_limit
from schemas import (
    CommentCreateRequest, LikeResult, PostCreateRequest, PostFullPage, PostSummaryPage,
    PostUpdateRequest, SessionUser,
)
from services import post_service
from services.pagination import DEFAULT_LIMIT, MAX_LIMIT, Page

router = APIRouter(prefix="/api/posts", tags=["posts"])

def page_window(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT)
) -> Page:
    return Page(page=page, limit=limit)

@router.get("", response_model=PostSummaryPage)
async def list_posts(
    window: Page = Depends(page_window),
    search: Optional[str] = None,
    tag: Optional[str] = None,
    session: AsyncSession = Depends(get_session)
):
    posts, pagination = await post_service.list_published(session, window, search=search, tag=tag)
    return {"posts": posts, "pagination": pagination}

@router.get("/my", response_model=PostFullPage)
async def list_my_posts(
    window: Page = Depends(page_window),
    status: Optional[str] = None,
    current_user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    posts, pagination = await post_service.list_by_author(session, current_user.id, window, status=status)
    return {"posts": posts, "pagination": pagination}

@router.get("/tags/popular")
async def get_popular_tags(
    limit: int = Query(post_service.POPULAR_TAGS_LIMIT, ge=1, le=MAX_LIMIT),
    session: AsyncSession = Depends(get_session)
):
    return {"tags": await post_service.popular_tags(session, limit)}

@router.get("/{post_id}")
async def get_post(
    post_id: str,
    viewer: Optional[SessionUser] = Depends(get_optional_user),
    session: AsyncSession = Depends(get_session)
):
    post = await post_service.get_by_id(session, post_id, viewer.id if viewer else None)
    return {"post": post}

@router.post("", status_code=201, dependencies=[Depends(post_rate_limit)])
async def create_post(
    payload: PostCreateRequest,
    current_user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    return {"post": await post_service.create_post(session, current_user.id, payload)}

@router.put("/{post_id}", dependencies=[Depends(post_rate_limit)])
async def update_post(
    post_id: str,
    payload: PostUpdateRequest,
    current_user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    return {"post": await post_service.update_post(session, post_id, current_user.id, payload)}

@router.delete("/{post_id}", dependencies=[Depends(post_rate_limit)])
async def delete_post(
    post_id: str,
    current_user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    await post_service.delete_post(session, post_id, current_user.id)
    return {"message": "Post deleted successfully"}

@router.post("/{post_id}/like", response_model=LikeResult, dependencies=[Depends(post_rate_limit)])
async def toggle_like(
    post_id: str,
    current_user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    return await post_service.toggle_like(session, post_id, current_user.id)

@router.post("/{post_id}/comments", status_code=201, dependencies=[Depends(post_rate_limit)])
async def add_comment(
    post_id: str,
    payload: CommentCreateRequest,
    current_user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    return {"post": await post_service.add_comment(session, post_id, current_user.id, payload.content)}
