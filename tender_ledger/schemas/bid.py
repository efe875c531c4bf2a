# tender_ledger/schemas/bid.py
from typing import Optional
from uuid import UUID
from datetime import datetime

from tender_ledger.schemas.tender import CamelModel


class BidCreate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    tender_id: Optional[str] = None
    author_type: Optional[str] = None
    author_id: Optional[str] = None


class BidOut(CamelModel):
    id: UUID
    name: str
    description: str
    status: str
    tender_id: UUID
    author_type: str
    author_id: UUID
    version: int
    created_at: datetime


class BidHistoryOut(CamelModel):
    """One past version of a bid"""
    bid_id: UUID
    version: int
    name: str
    description: str
    status: str
    recorded_at: Optional[datetime] = None


class BidReviewOut(CamelModel):
    id: UUID
    description: str
    created_at: datetime
