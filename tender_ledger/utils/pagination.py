"""
Pagination utilities for list endpoints
"""
from typing import Optional
from fastapi import Query

from tender_ledger.core.config import settings
from tender_ledger.core.errors import InvalidInput


class PaginationParams:
    """
    Reusable pagination parameters for FastAPI endpoints

    Out-of-range values are not clamped here; the services reject them.

    Usage:
        @router.get("/items")
        def list_items(pagination: PaginationParams = Depends()):
            offset = pagination.offset
            limit = pagination.limit
    """
    def __init__(
        self,
        limit: Optional[int] = Query(None, description="Number of items to return"),
        offset: Optional[int] = Query(None, description="Number of items to skip"),
    ):
        self.limit = settings.PAGINATION_DEFAULT_LIMIT if limit is None else limit
        self.offset = 0 if offset is None else offset


def validate_page(limit: int, offset: int, max_limit: int):
    """
    Reject a page outside ``[1, max_limit]`` / negative offset

    Raises:
        InvalidInput
    """
    if limit is None or limit <= 0 or limit > max_limit:
        raise InvalidInput(f"invalid limit parameter, must be a positive integer [1:{max_limit}]")
    if offset is None or offset < 0:
        raise InvalidInput("invalid offset parameter, must be a non-negative integer")


def paginate_query(query, offset: int = 0, limit: int = 5):
    """
    Apply pagination to SQLAlchemy query

    Args:
        query: SQLAlchemy query object, already ordered
        offset: Number of items to skip
        limit: Number of items to return

    Returns:
        list of items on the page
    """
    return query.offset(offset).limit(limit).all()
