from fastapi import Depends
from sqlalchemy.orm import Session

from tender_ledger.core.config import settings
from tender_ledger.core.deadline import Deadline
from tender_ledger.db.session import get_db
from tender_ledger.services.bid_service import BidService
from tender_ledger.services.tender_service import TenderService


def get_deadline() -> Deadline:
    """Fresh wall-clock budget for the current request"""
    return Deadline(settings.REQUEST_TIMEOUT_SECONDS)


def get_tender_service(
    db: Session = Depends(get_db),
    deadline: Deadline = Depends(get_deadline),
) -> TenderService:
    return TenderService(db, deadline=deadline, max_limit=settings.PAGINATION_MAX_LIMIT)


def get_bid_service(
    db: Session = Depends(get_db),
    deadline: Deadline = Depends(get_deadline),
) -> BidService:
    return BidService(db, deadline=deadline, max_limit=settings.PAGINATION_MAX_LIMIT)
