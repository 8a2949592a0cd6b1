# backend/services/pagination.py
import math
from dataclasses import dataclass
from typing import Any, List, Tuple
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from schemas import Pagination

DEFAULT_LIMIT = 10
MAX_LIMIT = 100

@dataclass(frozen=True)
class Page:
    """A 1-based page window over an ordered result set."""
    page: int = 1
    limit: int = DEFAULT_LIMIT

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def describe(self, total: int) -> Pagination:
        return Pagination(page=self.page, limit=self.limit, total=total, totalPages=math.ceil(total / self.limit))

async def paginate(session: AsyncSession, statement, window: Page) -> Tuple[List[Any], Pagination]:
    """Run `statement` for one page and count the whole filtered set.

    `statement` must already carry its filters and ORDER BY. A page past the
    end yields an empty list.
    """
    count_stmt = select(func.count()).select_from(statement.order_by(None).subquery())
    total = (await session.execute(count_stmt)).scalar_one()
    rows = (await session.execute(statement.offset(window.offset).limit(window.limit))).scalars().all()
    return list(rows), window.describe(total)
