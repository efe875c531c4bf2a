"""
Bid Service - bid lifecycle, decisions and reviews
"""
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from tender_ledger.core.deadline import Deadline
from tender_ledger.core.errors import Forbidden, InvalidEnum, NotFound, Unauthenticated
from tender_ledger.db.models import Bid, BidHistory, BidReview
from tender_ledger.services.tender_service import TENDER_STORE
from tender_ledger.services.versioning import VersionedStore, atomic
from tender_ledger.utils.cache import invalidate_tender_cache
from tender_ledger.utils.choices import BidAuthorType, BidDecision
from tender_ledger.utils.pagination import paginate_query, validate_page
from tender_ledger.utils.permissions import (
    employee_exists_by_id,
    get_employee,
    is_authorized_for_bid,
    is_authorized_for_tender,
    is_in_any_organization,
    require_bid_access,
    require_tender_access,
    require_user,
)
from tender_ledger.utils.status_machine import BidStateMachine, TenderStatus
from tender_ledger.utils.validation import parse_id, parse_version, require_fields

logger = logging.getLogger(__name__)

BID_STORE = VersionedStore(
    kind="bid",
    model=Bid,
    history_model=BidHistory,
    history_key="bid_id",
    content_fields=("name", "description"),
    state_machine=BidStateMachine,
)


class BidService:
    """
    Bid operations for one request.

    Authors act on their bids (edit, status, rollback). The tender side
    (creator or organization responsible) decides on bids and reviews them.
    """

    def __init__(self, db: Session, deadline: Optional[Deadline] = None, max_limit: int = 50):
        self.db = db
        self.deadline = deadline
        self.max_limit = max_limit
        self.store = BID_STORE

    def _authored_bid(self, bid_id: str, username: str) -> Bid:
        bid_uuid = parse_id(bid_id, "bidId")
        require_user(self.db, username)
        bid = self.store.get(self.db, bid_uuid)
        require_bid_access(self.db, username, bid)
        return bid

    def _reviewable_bid(self, bid_id: str, username: str) -> Bid:
        bid_uuid = parse_id(bid_id, "bidId")
        require_user(self.db, username)
        bid = self.store.get(self.db, bid_uuid)
        require_tender_access(self.db, username, bid.tender)
        return bid

    def create_bid(
        self,
        name: str,
        description: str,
        tender_id: str,
        author_type: str,
        author_id: str,
    ) -> Bid:
        require_fields(
            name=name,
            description=description,
            tenderId=tender_id,
            authorType=author_type,
            authorId=author_id,
        )
        tender_uuid = parse_id(tender_id, "tenderId")
        author_uuid = parse_id(author_id, "authorId")
        if not BidAuthorType.contains(author_type):
            raise InvalidEnum("invalid author type. Must be 'Organization' or 'User'")

        if not employee_exists_by_id(self.db, author_uuid):
            raise Unauthenticated("user does not exist")
        if author_type == BidAuthorType.ORGANIZATION and not is_in_any_organization(self.db, author_uuid):
            raise Forbidden(f"{author_id} is not in any organizations")
        TENDER_STORE.get(self.db, tender_uuid)

        with atomic(self.db, self.deadline, "create bid"):
            bid = self.store.create(
                self.db,
                name=name,
                description=description,
                tender_id=tender_uuid,
                author_type=author_type,
                author_id=author_uuid,
            )
        self.db.refresh(bid)
        logger.info(f"Bid {bid.id} created on tender {tender_uuid} by {author_type} {author_uuid}")
        return bid

    def list_user_bids(self, username: str, limit: int, offset: int) -> List[Bid]:
        validate_page(limit, offset, self.max_limit)
        require_fields(username=username)
        employee = require_user(self.db, username)

        query = self.db.query(Bid).filter(Bid.author_id == employee.id)
        return paginate_query(self.store.ordered(query), offset, limit)

    def list_tender_bids(self, tender_id: str, username: str, limit: int, offset: int) -> List[Bid]:
        validate_page(limit, offset, self.max_limit)
        require_fields(tenderId=tender_id, username=username)
        tender_uuid = parse_id(tender_id, "tenderId")
        require_user(self.db, username)
        tender = TENDER_STORE.get(self.db, tender_uuid)
        if not is_authorized_for_tender(self.db, username, tender):
            raise Forbidden("user is not authorized to view bids for this tender")

        query = self.db.query(Bid).filter(Bid.tender_id == tender_uuid)
        return paginate_query(self.store.ordered(query), offset, limit)

    def get_bid_status(self, bid_id: str, username: str) -> str:
        """Readable by the author and by the tender side"""
        require_fields(username=username)
        bid_uuid = parse_id(bid_id, "bidId")
        require_user(self.db, username)
        bid = self.store.get(self.db, bid_uuid)
        if not (
            is_authorized_for_bid(self.db, username, bid)
            or is_authorized_for_tender(self.db, username, bid.tender)
        ):
            raise Forbidden("you are not authorized to view this bid")
        return bid.status

    def update_bid_status(self, bid_id: str, status: str, username: str) -> Bid:
        require_fields(status=status, username=username)
        self.store.require_known_status(status)
        bid = self._authored_bid(bid_id, username)

        with atomic(self.db, self.deadline, "update bid status"):
            bid = self.store.change_status(self.db, bid.id, status)
        self.db.refresh(bid)
        logger.info(f"Bid {bid.id} moved to {bid.status} by {username}")
        return bid

    def edit_bid(self, bid_id: str, username: str, patch: Dict[str, Any]) -> Bid:
        require_fields(username=username)
        self.store.clean_patch(patch)
        bid = self._authored_bid(bid_id, username)

        with atomic(self.db, self.deadline, "edit bid"):
            bid = self.store.edit(self.db, bid.id, patch)
        self.db.refresh(bid)
        logger.info(f"Bid {bid.id} edited by {username}, now version {bid.version}")
        return bid

    def rollback_bid(self, bid_id: str, username: str, version) -> Bid:
        require_fields(username=username)
        target_version = parse_version(version)
        bid = self._authored_bid(bid_id, username)

        with atomic(self.db, self.deadline, "rollback bid"):
            bid = self.store.rollback(self.db, bid.id, target_version)
        self.db.refresh(bid)
        logger.info(
            f"Bid {bid.id} rolled back to version {target_version} by {username}, now version {bid.version}"
        )
        return bid

    def bid_history(self, bid_id: str, username: str) -> List[BidHistory]:
        require_fields(username=username)
        bid = self._authored_bid(bid_id, username)
        return self.store.history(self.db, bid.id)

    def _close_tender(self, tender_id):
        tender = TENDER_STORE.lock(self.db, tender_id)
        TENDER_STORE.assign_status(self.db, tender, TenderStatus.CLOSED)

    def submit_decision(self, bid_id: str, decision: str, username: str) -> Bid:
        """
        Approve or reject a bid.

        The decision is assigned directly, not validated as a transition.
        Approval closes the parent tender in the same transaction.
        """
        require_fields(decision=decision, username=username)
        if not BidDecision.contains(decision):
            raise InvalidEnum("invalid decision, must be either 'Approved' or 'Rejected'")
        bid = self._reviewable_bid(bid_id, username)

        with atomic(self.db, self.deadline, "submit bid decision"):
            bid = self.store.lock(self.db, bid.id)
            self.store.assign_status(self.db, bid, decision)
            if decision == BidDecision.APPROVED:
                self._close_tender(bid.tender_id)
        self.db.refresh(bid)

        if decision == BidDecision.APPROVED:
            invalidate_tender_cache()
            logger.info(f"Bid {bid.id} approved by {username}, tender {bid.tender_id} closed")
        else:
            logger.info(f"Bid {bid.id} rejected by {username}")
        return bid

    def submit_feedback(self, bid_id: str, feedback: str, username: str) -> Bid:
        """Append a review; the bid itself is returned unchanged"""
        require_fields(bidFeedback=feedback, username=username)
        bid = self._reviewable_bid(bid_id, username)

        with atomic(self.db, self.deadline, "submit bid feedback"):
            review = BidReview(
                id=uuid.uuid4(),
                bid_id=bid.id,
                description=feedback,
                reviewer_username=username,
                created_at=datetime.utcnow(),
            )
            self.db.add(review)
            self.db.flush()
        self.db.refresh(bid)
        logger.info(f"Review {review.id} added to bid {bid.id} by {username}")
        return bid

    def list_reviews(
        self,
        tender_id: str,
        author_username: str,
        requester_username: str,
        limit: int,
        offset: int,
    ) -> List[BidReview]:
        """Reviews on one author's bids for a tender, newest first"""
        validate_page(limit, offset, self.max_limit)
        require_fields(
            tenderId=tender_id,
            authorUsername=author_username,
            requesterUsername=requester_username,
        )
        tender_uuid = parse_id(tender_id, "tenderId")
        require_user(self.db, requester_username)
        author = get_employee(self.db, author_username)
        if author is None:
            raise NotFound("author not found")
        tender = TENDER_STORE.get(self.db, tender_uuid)
        if not is_authorized_for_tender(self.db, requester_username, tender):
            raise Forbidden("user is not authorized to view bid reviews for this tender")

        has_bids = self.db.query(Bid).filter(
            Bid.tender_id == tender_uuid,
            Bid.author_id == author.id,
        ).first() is not None
        if not has_bids:
            raise NotFound("author has no bids on this tender")

        query = (
            self.db.query(BidReview)
            .join(Bid, BidReview.bid_id == Bid.id)
            .filter(Bid.tender_id == tender_uuid, Bid.author_id == author.id)
            .order_by(BidReview.created_at.desc(), BidReview.seq.desc())
        )
        return paginate_query(query, offset, limit)
