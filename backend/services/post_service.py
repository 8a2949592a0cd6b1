# backend/services/post_service.py
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional
from sqlalchemy import delete, func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from errors import ForbiddenError, NotFoundError, ValidationError
from models import Comment, POST_STATUSES, Post, PostLike, PostTag, User, utcnow
from schemas import (
    AuthorPublic, CommentOut, LikeResult, PostCreateRequest, PostDetail,
    PostFull, PostSummary, PostUpdateRequest, TagCount,
)
from services.pagination import Page, paginate

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 200
POPULAR_TAGS_LIMIT = 20

# --- Helpers ---
def _clean_tags(tags: Optional[Iterable[str]]) -> List[str]:
    return [t.strip() for t in (tags or []) if t and t.strip()]

def _require_text(value: Optional[str], message: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(message)
    return value

def excerpt(content: str, length: int = EXCERPT_LENGTH) -> str:
    text = " ".join(content.split())
    return text if len(text) <= length else text[:length].rstrip() + "..."

async def _get_post(session: AsyncSession, post_id: str) -> Post:
    post = await session.get(Post, post_id)
    if post is None:
        raise NotFoundError("Post not found")
    return post

async def _owned_post(session: AsyncSession, post_id: str, actor_id: str, action: str) -> Post:
    post = await _get_post(session, post_id)
    if post.authorId != actor_id:
        raise ForbiddenError(f"Not authorized to {action} this post")
    return post

async def _replace_tags(session: AsyncSession, post_id: str, tags: List[str]) -> None:
    await session.execute(delete(PostTag).where(PostTag.postId == post_id))
    session.add_all([PostTag(postId=post_id, position=i, tag=tag) for i, tag in enumerate(tags)])

async def _tags_for(session: AsyncSession, post_ids: List[str]) -> Dict[str, List[str]]:
    tags: Dict[str, List[str]] = defaultdict(list)
    if not post_ids:
        return tags
    result = await session.execute(
        select(PostTag).where(PostTag.postId.in_(post_ids)).order_by(PostTag.postId, PostTag.position)
    )
    for row in result.scalars():
        tags[row.postId].append(row.tag)
    return tags

async def _counts(session: AsyncSession, column, post_ids: List[str]) -> Dict[str, int]:
    if not post_ids:
        return {}
    result = await session.execute(select(column, func.count()).where(column.in_(post_ids)).group_by(column))
    return {post_id: count for post_id, count in result.all()}

async def _authors(session: AsyncSession, user_ids: Iterable[str]) -> Dict[str, User]:
    ids = list(set(user_ids))
    if not ids:
        return {}
    result = await session.execute(select(User).where(User.id.in_(ids)))
    return {u.id: u for u in result.scalars()}

def _author_public(post: Post, authors: Dict[str, User]) -> AuthorPublic:
    author = authors.get(post.authorId)
    if author is None:
        return AuthorPublic(id=post.authorId, name=post.authorName)
    return AuthorPublic(id=author.id, name=author.name, email=author.email)

def _base_fields(post: Post, authors, tags, likes, comments) -> dict:
    return dict(
        id=post.id, title=post.title, author=_author_public(post, authors), authorName=post.authorName,
        tags=tags.get(post.id, []), status=post.status, featured=post.featured, views=post.views,
        likesCount=likes.get(post.id, 0), commentsCount=comments.get(post.id, 0),
        createdAt=post.createdAt, updatedAt=post.updatedAt,
    )

async def _page_fields(session: AsyncSession, posts: List[Post]):
    ids = [p.id for p in posts]
    return (
        await _authors(session, (p.authorId for p in posts)),
        await _tags_for(session, ids),
        await _counts(session, PostLike.postId, ids),
        await _counts(session, Comment.postId, ids),
    )

async def _detail(session: AsyncSession, post: Post, viewer_id: Optional[str] = None) -> PostDetail:
    authors, tags, likes, comment_counts = await _page_fields(session, [post])

    is_liked = False
    if viewer_id:
        is_liked = await session.get(PostLike, (post.id, viewer_id)) is not None

    result = await session.execute(
        select(Comment, User.name)
        .outerjoin(User, User.id == Comment.authorId)
        .where(Comment.postId == post.id)
        .order_by(Comment.createdAt, Comment.id)
    )
    comments = [
        CommentOut(
            id=c.id, author=AuthorPublic(id=c.authorId, name=current_name or c.authorName),
            authorName=c.authorName, content=c.content, createdAt=c.createdAt,
        )
        for c, current_name in result.all()
    ]
    return PostDetail(
        **_base_fields(post, authors, tags, likes, comment_counts),
        content=post.content, isLiked=is_liked, comments=comments,
    )

# --- Queries ---
def _search_clause(search: str):
    terms = search.split()
    clauses = []
    for term in terms:
        clauses.append(Post.title.icontains(term, autoescape=True))
        clauses.append(Post.content.icontains(term, autoescape=True))
        clauses.append(Post.id.in_(select(PostTag.postId).where(PostTag.tag.icontains(term, autoescape=True))))
    return or_(*clauses) if clauses else None

async def list_published(session: AsyncSession, window: Page, search: Optional[str] = None, tag: Optional[str] = None):
    """Published posts, newest first, as summaries without full content."""
    statement = select(Post).where(Post.status == "published")
    if tag:
        statement = statement.where(Post.id.in_(select(PostTag.postId).where(PostTag.tag == tag)))
    if search:
        clause = _search_clause(search)
        if clause is not None:
            statement = statement.where(clause)
    statement = statement.order_by(Post.createdAt.desc(), Post.id.desc())

    posts, pagination = await paginate(session, statement, window)
    authors, tags, likes, comments = await _page_fields(session, posts)
    summaries = [
        PostSummary(**_base_fields(p, authors, tags, likes, comments), excerpt=excerpt(p.content))
        for p in posts
    ]
    return summaries, pagination

async def list_by_author(session: AsyncSession, author_id: str, window: Page, status: Optional[str] = None):
    statement = select(Post).where(Post.authorId == author_id)
    if status and status != "all":
        if status not in POST_STATUSES:
            raise ValidationError(f"Invalid status '{status}'")
        statement = statement.where(Post.status == status)
    statement = statement.order_by(Post.createdAt.desc(), Post.id.desc())

    posts, pagination = await paginate(session, statement, window)
    authors, tags, likes, comments = await _page_fields(session, posts)
    full = [PostFull(**_base_fields(p, authors, tags, likes, comments), content=p.content) for p in posts]
    return full, pagination

async def get_by_id(session: AsyncSession, post_id: str, viewer_id: Optional[str] = None) -> PostDetail:
    """Fetch a post for display; every call counts one view."""
    # The increment happens in SQL so concurrent readers never lose a view.
    result = await session.execute(
        update(Post).where(Post.id == post_id).values(views=Post.views + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await session.rollback()
        raise NotFoundError("Post not found")
    await session.commit()
    post = await _get_post(session, post_id)
    return await _detail(session, post, viewer_id)

async def popular_tags(session: AsyncSession, limit: int = POPULAR_TAGS_LIMIT) -> List[TagCount]:
    count = func.count().label("count")
    result = await session.execute(
        select(PostTag.tag, count)
        .join(Post, Post.id == PostTag.postId)
        .where(Post.status == "published")
        .group_by(PostTag.tag)
        .order_by(count.desc(), PostTag.tag.asc())
        .limit(limit)
    )
    return [TagCount(tag=tag, count=n) for tag, n in result.all()]

# --- Mutations ---
async def create_post(session: AsyncSession, author_id: str, data: PostCreateRequest) -> PostDetail:
    if not data.title or not data.title.strip() or not data.content or not data.content.strip():
        raise ValidationError("Title and content are required")

    author = await session.get(User, author_id)
    if author is None:
        raise NotFoundError("User not found")

    post = Post(
        title=data.title.strip(), content=data.content, authorId=author.id, authorName=author.name,
        status=data.status or "draft", featured=bool(data.featured),
    )
    session.add(post)
    await session.flush()
    await _replace_tags(session, post.id, _clean_tags(data.tags))
    await session.commit()
    await session.refresh(post)
    return await _detail(session, post, author_id)

async def update_post(session: AsyncSession, post_id: str, actor_id: str, data: PostUpdateRequest) -> PostDetail:
    """Owner-only partial update; only fields present in the body change."""
    post = await _owned_post(session, post_id, actor_id, "update")
    changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}

    if "title" in changes:
        post.title = _require_text(changes["title"], "Title cannot be empty").strip()
    if "content" in changes:
        post.content = _require_text(changes["content"], "Content cannot be empty")
    if "tags" in changes:
        await _replace_tags(session, post.id, _clean_tags(changes["tags"]))
    if "status" in changes:
        post.status = changes["status"]
    if "featured" in changes:
        post.featured = changes["featured"]
    post.updatedAt = utcnow()

    session.add(post)
    await session.commit()
    await session.refresh(post)
    return await _detail(session, post, actor_id)

async def delete_post(session: AsyncSession, post_id: str, actor_id: str) -> None:
    post = await _owned_post(session, post_id, actor_id, "delete")
    await session.execute(delete(Comment).where(Comment.postId == post.id))
    await session.execute(delete(PostLike).where(PostLike.postId == post.id))
    await session.execute(delete(PostTag).where(PostTag.postId == post.id))
    await session.delete(post)
    await session.commit()
    logger.info(f"Post {post_id} deleted by {actor_id}")

async def toggle_like(session: AsyncSession, post_id: str, user_id: str) -> LikeResult:
    """Unlike when the user already likes the post, like otherwise."""
    await _get_post(session, post_id)
    if await session.get(User, user_id) is None:
        raise NotFoundError("User not found")
    removed = await session.execute(
        delete(PostLike).where(PostLike.postId == post_id, PostLike.userId == user_id)
        .execution_options(synchronize_session=False)
    )
    if removed.rowcount:
        await session.commit()
        is_liked = False
    else:
        session.add(PostLike(postId=post_id, userId=user_id))
        try:
            await session.commit()
        except IntegrityError:
            # A concurrent request from the same user got there first.
            await session.rollback()
        is_liked = True

    likes = await _counts(session, PostLike.postId, [post_id])
    return LikeResult(likesCount=likes.get(post_id, 0), isLiked=is_liked)

async def add_comment(session: AsyncSession, post_id: str, user_id: str, content: Optional[str]) -> PostDetail:
    """Append a comment under the commenter's current name."""
    content = _require_text(content, "Comment content is required").strip()
    post = await _get_post(session, post_id)
    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    session.add(Comment(postId=post.id, authorId=user.id, authorName=user.name, content=content))
    await session.commit()
    return await _detail(session, post, user_id)
