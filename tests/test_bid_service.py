import uuid
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from tender_ledger.core.errors import (
    Forbidden,
    InvalidEnum,
    InvalidInput,
    InvalidTransition,
    NotFound,
    StoreFailure,
    Unauthenticated,
)
from tender_ledger.db.models import BidReview
from tender_ledger.services.bid_service import BID_STORE, BidService


def test_create_bid(bid, tender, identities):
    assert bid.version == 1
    assert bid.status == "Created"
    assert bid.tender_id == tender.id
    assert bid.author_id == identities.carol.id


def test_create_bid_checks(bid_service, tender, identities):
    tender_id = str(tender.id)
    with pytest.raises(InvalidInput):
        bid_service.create_bid("", "d", tender_id, "User", str(identities.carol.id))
    with pytest.raises(InvalidInput):
        bid_service.create_bid("n", "d", "nope", "User", str(identities.carol.id))
    with pytest.raises(InvalidEnum):
        bid_service.create_bid("n", "d", tender_id, "Company", str(identities.carol.id))
    with pytest.raises(Unauthenticated):
        bid_service.create_bid("n", "d", tender_id, "User", str(uuid.uuid4()))
    with pytest.raises(Forbidden):
        bid_service.create_bid("n", "d", tender_id, "Organization", str(identities.dave.id))
    with pytest.raises(NotFound):
        bid_service.create_bid("n", "d", str(uuid.uuid4()), "User", str(identities.dave.id))

    org_bid = bid_service.create_bid("n", "d", tender_id, "Organization", str(identities.carol.id))
    assert org_bid.author_type == "Organization"


def test_bid_listings(bid_service, bid, tender, identities):
    assert [b.id for b in bid_service.list_user_bids("carol", 5, 0)] == [bid.id]
    assert bid_service.list_user_bids("alice", 5, 0) == []

    assert [b.id for b in bid_service.list_tender_bids(str(tender.id), "bob", 5, 0)] == [bid.id]
    with pytest.raises(Forbidden):
        bid_service.list_tender_bids(str(tender.id), "carol", 5, 0)
    with pytest.raises(NotFound):
        bid_service.list_tender_bids(str(uuid.uuid4()), "alice", 5, 0)
    with pytest.raises(InvalidInput):
        bid_service.list_tender_bids(str(tender.id), "alice", 100, 0)


def test_bid_status_read_and_change(bid_service, bid):
    bid_id = str(bid.id)
    assert bid_service.get_bid_status(bid_id, "carol") == "Created"
    assert bid_service.get_bid_status(bid_id, "alice") == "Created"
    with pytest.raises(Forbidden):
        bid_service.get_bid_status(bid_id, "dave")

    # the tender side can read but not move the bid
    with pytest.raises(Forbidden):
        bid_service.update_bid_status(bid_id, "Published", "alice")

    published = bid_service.update_bid_status(bid_id, "Published", "carol")
    assert published.status == "Published"
    assert published.version == 1

    with pytest.raises(InvalidTransition):
        bid_service.update_bid_status(bid_id, "Approved", "carol")
    with pytest.raises(InvalidEnum):
        bid_service.update_bid_status(bid_id, "Withdrawn", "carol")

    canceled = bid_service.update_bid_status(bid_id, "Canceled", "carol")
    assert canceled.status == "Canceled"
    for requested in ("Created", "Published", "Canceled"):
        with pytest.raises(InvalidTransition):
            bid_service.update_bid_status(bid_id, requested, "carol")


def test_bid_edit_and_rollback(bid_service, bid):
    bid_id = str(bid.id)
    edited = bid_service.edit_bid(bid_id, "carol", {"name": "Better offer", "tenderId": "ignored"})
    assert edited.version == 2
    assert edited.name == "Better offer"

    with pytest.raises(Forbidden):
        bid_service.edit_bid(bid_id, "alice", {"name": "Tender side edit"})

    restored = bid_service.rollback_bid(bid_id, "carol", 1)
    assert restored.version == 3
    assert restored.name == "Carol's offer"

    history = bid_service.bid_history(bid_id, "carol")
    assert [h.version for h in history] == [1, 2]
    assert [h.name for h in history] == ["Carol's offer", "Carol's offer"]


def test_approval_closes_tender(bid_service, tender_service, bid, tender):
    tender_service.update_tender_status(str(tender.id), "Published", "alice")

    approved = bid_service.submit_decision(str(bid.id), "Approved", "bob")
    assert approved.status == "Approved"
    assert approved.version == 1

    closed = tender_service.get_tender(str(tender.id))
    assert closed.status == "Closed"
    assert closed.version == 1
    assert bid_service.bid_history(str(bid.id), "carol") == []


def test_approval_closes_tender_from_any_status(bid_service, tender_service, bid, tender):
    # Created has no edge that leads back; the cascade still applies
    bid_service.submit_decision(str(bid.id), "Approved", "alice")
    assert tender_service.get_tender(str(tender.id)).status == "Closed"


def test_rejection_leaves_tender_alone(bid_service, tender_service, bid, tender):
    rejected = bid_service.submit_decision(str(bid.id), "Rejected", "alice")
    assert rejected.status == "Rejected"
    assert tender_service.get_tender(str(tender.id)).status == "Created"


def test_decision_checks(bid_service, bid):
    bid_id = str(bid.id)
    with pytest.raises(InvalidEnum):
        bid_service.submit_decision(bid_id, "Maybe", "alice")
    with pytest.raises(InvalidInput):
        bid_service.submit_decision(bid_id, "", "alice")
    with pytest.raises(Unauthenticated):
        bid_service.submit_decision(bid_id, "Approved", "mallory")
    with pytest.raises(Forbidden):
        bid_service.submit_decision(bid_id, "Approved", "carol")
    with pytest.raises(NotFound):
        bid_service.submit_decision(str(uuid.uuid4()), "Approved", "alice")


def test_failed_cascade_keeps_bid_status(db, bid, tender, tender_service, monkeypatch):
    def broken_close(self, tender_id):
        raise StoreFailure()

    monkeypatch.setattr(BidService, "_close_tender", broken_close)
    service = BidService(db)

    with pytest.raises(StoreFailure):
        service.submit_decision(str(bid.id), "Approved", "alice")

    assert service.get_bid_status(str(bid.id), "carol") == "Created"
    assert tender_service.get_tender(str(tender.id)).status == "Created"


def test_failed_bid_write_leaves_tender_open(db, bid, tender, tender_service, monkeypatch):
    closed = []

    def broken_assign(db, entity, status):
        raise SQLAlchemyError("write failed")

    monkeypatch.setattr(BID_STORE, "assign_status", broken_assign)
    monkeypatch.setattr(BidService, "_close_tender", lambda self, tender_id: closed.append(tender_id))
    service = BidService(db)

    with pytest.raises(StoreFailure):
        service.submit_decision(str(bid.id), "Approved", "alice")

    assert closed == []
    assert service.get_bid_status(str(bid.id), "carol") == "Created"
    assert tender_service.get_tender(str(tender.id)).status == "Created"


def test_failed_commit_drops_both_decision_writes(db, bid, tender, tender_service, monkeypatch):
    tender_service.update_tender_status(str(tender.id), "Published", "alice")

    def broken_commit():
        raise SQLAlchemyError("commit failed")

    monkeypatch.setattr(db, "commit", broken_commit)
    service = BidService(db)

    with pytest.raises(StoreFailure):
        service.submit_decision(str(bid.id), "Approved", "alice")
    monkeypatch.undo()

    assert service.get_bid_status(str(bid.id), "carol") == "Created"
    assert tender_service.get_tender(str(tender.id)).status == "Published"


def test_feedback_and_reviews(db, bid_service, bid, tender, identities):
    bid_id = str(bid.id)
    first = bid_service.submit_feedback(bid_id, "Too expensive", "alice")
    assert first.version == 1
    assert first.status == "Created"
    bid_service.submit_feedback(bid_id, "Timeline looks fine", "bob")

    # make the ordering independent of clock resolution
    oldest = db.query(BidReview).filter(BidReview.description == "Too expensive").one()
    oldest.created_at = datetime.utcnow() - timedelta(hours=1)
    db.commit()

    reviews = bid_service.list_reviews(str(tender.id), "carol", "alice", 5, 0)
    assert [r.description for r in reviews] == ["Timeline looks fine", "Too expensive"]
    assert reviews[1].reviewer_username == "alice"

    page = bid_service.list_reviews(str(tender.id), "carol", "bob", 1, 1)
    assert [r.description for r in page] == ["Too expensive"]


def test_reviews_with_equal_timestamps_keep_insertion_order(db, bid_service, bid, tender):
    for note in ("First note", "Second note", "Third note"):
        bid_service.submit_feedback(str(bid.id), note, "alice")

    same_moment = datetime(2024, 1, 1, 12, 0, 0)
    for review in db.query(BidReview).all():
        review.created_at = same_moment
    db.commit()

    reviews = bid_service.list_reviews(str(tender.id), "carol", "alice", 5, 0)
    assert [r.description for r in reviews] == ["Third note", "Second note", "First note"]


def test_feedback_checks(bid_service, bid, tender):
    bid_id = str(bid.id)
    with pytest.raises(InvalidInput):
        bid_service.submit_feedback(bid_id, "  ", "alice")
    with pytest.raises(Forbidden):
        bid_service.submit_feedback(bid_id, "Self review", "carol")

    with pytest.raises(NotFound):
        bid_service.list_reviews(str(tender.id), "mallory", "alice", 5, 0)
    with pytest.raises(NotFound):
        bid_service.list_reviews(str(tender.id), "dave", "alice", 5, 0)
    with pytest.raises(Forbidden):
        bid_service.list_reviews(str(tender.id), "carol", "carol", 5, 0)
    with pytest.raises(Unauthenticated):
        bid_service.list_reviews(str(tender.id), "carol", "mallory", 5, 0)
    assert bid_service.list_reviews(str(tender.id), "carol", "alice", 5, 0) == []
