import math
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.config import get_settings
from videotube.services.store import Pipeline

settings = get_settings()

DEFAULT_PAGE = 1


def _positive_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def normalize_page_params(page: Any, limit: Any) -> tuple[int, int]:
    """
    Coerce raw page/limit input. Non-numeric or non-positive values fall back
    to the defaults instead of failing; limit is capped at max_page_limit.
    """
    page_number = _positive_int(page) or DEFAULT_PAGE
    page_limit = _positive_int(limit) or settings.default_page_limit
    return page_number, min(page_limit, settings.max_page_limit)


async def paginate(
    db: AsyncSession,
    pipeline: Pipeline,
    page: Any = DEFAULT_PAGE,
    limit: Any = None,
) -> dict:
    """
    Evaluate a pipeline one page at a time.

    Two reads over the same statement: the total count over the filtered and
    joined rows, then the requested slice. Both run inside the session's
    current transaction.
    """
    page_number, page_limit = normalize_page_params(page, limit)

    count_stmt = select(func.count()).select_from(
        pipeline.stmt.order_by(None).subquery()
    )
    total = (await db.execute(count_stmt)).scalar() or 0

    items: list[dict] = []
    offset = (page_number - 1) * page_limit
    if offset < total:
        result = await db.execute(pipeline.stmt.limit(page_limit).offset(offset))
        items = [pipeline.shape(row) for row in result.mappings().all()]

    total_pages = math.ceil(total / page_limit) if total else 0

    return {
        "items": items,
        "total": total,
        "page": page_number,
        "limit": page_limit,
        "total_pages": total_pages,
        "has_next": page_number < total_pages,
        "has_previous": page_number > 1,
    }
