from fastapi import APIRouter, Body, Depends, Query
from typing import Any, Dict, List, Optional

from tender_ledger.core.deps import get_bid_service
from tender_ledger.schemas.bid import BidCreate, BidOut, BidHistoryOut, BidReviewOut
from tender_ledger.services.bid_service import BidService
from tender_ledger.utils.pagination import PaginationParams

router = APIRouter(prefix="/api/bids", tags=["bids"])


@router.post("/new", response_model=BidOut)
def create_bid(
    data: BidCreate,
    service: BidService = Depends(get_bid_service),
):
    """Submit a bid on an existing tender, by a user or on behalf of an organization"""
    return service.create_bid(
        name=data.name,
        description=data.description,
        tender_id=data.tender_id,
        author_type=data.author_type,
        author_id=data.author_id,
    )


@router.get("/my", response_model=List[BidOut])
def list_my_bids(
    username: Optional[str] = None,
    pagination: PaginationParams = Depends(),
    service: BidService = Depends(get_bid_service),
):
    return service.list_user_bids(username, pagination.limit, pagination.offset)


@router.get("/{tender_id}/list", response_model=List[BidOut])
def list_bids_for_tender(
    tender_id: str,
    username: Optional[str] = None,
    pagination: PaginationParams = Depends(),
    service: BidService = Depends(get_bid_service),
):
    """
    List bids on a tender.
    Authorization: tender creator or organization responsible.
    """
    return service.list_tender_bids(tender_id, username, pagination.limit, pagination.offset)


@router.get("/{bid_id}/status", response_model=str)
def get_bid_status(
    bid_id: str,
    username: Optional[str] = None,
    service: BidService = Depends(get_bid_service),
):
    return service.get_bid_status(bid_id, username)


@router.put("/{bid_id}/status", response_model=BidOut)
def update_bid_status(
    bid_id: str,
    status: Optional[str] = None,
    username: Optional[str] = None,
    service: BidService = Depends(get_bid_service),
):
    return service.update_bid_status(bid_id, status, username)


@router.patch("/{bid_id}/edit", response_model=BidOut)
def edit_bid(
    bid_id: str,
    username: Optional[str] = None,
    patch: Optional[Dict[str, Any]] = Body(None),
    service: BidService = Depends(get_bid_service),
):
    return service.edit_bid(bid_id, username, patch)


@router.put("/{bid_id}/submit_decision", response_model=BidOut)
def submit_decision(
    bid_id: str,
    decision: Optional[str] = None,
    username: Optional[str] = None,
    service: BidService = Depends(get_bid_service),
):
    """
    Approve or reject a bid.
    Approving closes the tender.
    """
    return service.submit_decision(bid_id, decision, username)


@router.put("/{bid_id}/feedback", response_model=BidOut)
def submit_feedback(
    bid_id: str,
    bid_feedback: Optional[str] = Query(None, alias="bidFeedback"),
    username: Optional[str] = None,
    service: BidService = Depends(get_bid_service),
):
    return service.submit_feedback(bid_id, bid_feedback, username)


@router.put("/{bid_id}/rollback/{version}", response_model=BidOut)
def rollback_bid(
    bid_id: str,
    version: str,
    username: Optional[str] = None,
    service: BidService = Depends(get_bid_service),
):
    return service.rollback_bid(bid_id, username, version)


@router.get("/{bid_id}/history", response_model=List[BidHistoryOut])
def bid_history(
    bid_id: str,
    username: Optional[str] = None,
    service: BidService = Depends(get_bid_service),
):
    return service.bid_history(bid_id, username)


@router.get("/{tender_id}/reviews", response_model=List[BidReviewOut])
def list_reviews(
    tender_id: str,
    author_username: Optional[str] = Query(None, alias="authorUsername"),
    requester_username: Optional[str] = Query(None, alias="requesterUsername"),
    pagination: PaginationParams = Depends(),
    service: BidService = Depends(get_bid_service),
):
    """Reviews left on one author's bids for a tender, newest first"""
    return service.list_reviews(
        tender_id,
        author_username,
        requester_username,
        pagination.limit,
        pagination.offset,
    )
