from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from tender_ledger.db.session import Base


class Employee(Base):
    __tablename__ = "employee"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String(50), unique=True, nullable=False)
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Organization(Base):
    __tablename__ = "organization"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(10), nullable=True)  # IE, LLC, JSC
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    responsibles = relationship("OrganizationResponsible", back_populates="organization")


class OrganizationResponsible(Base):
    __tablename__ = "organization_responsible"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid(as_uuid=True), ForeignKey("organization.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("employee.id", ondelete="CASCADE"), nullable=False)

    organization = relationship("Organization", back_populates="responsibles")
    user = relationship("Employee")


class Tender(Base):
    __tablename__ = "tender"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    service_type = Column(String(50), nullable=False)  # Construction, Delivery, Manufacture
    status = Column(String(50), nullable=False, default="Created")  # Created, Published, Closed
    organization_id = Column(Uuid(as_uuid=True), ForeignKey("organization.id", ondelete="CASCADE"), nullable=False)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow)
    creator_username = Column(String(50), nullable=False)

    organization = relationship("Organization")
    bids = relationship("Bid", back_populates="tender")
    history = relationship("TenderHistory", back_populates="tender", order_by="TenderHistory.version")


class TenderHistory(Base):
    """Immutable snapshot of a tender at one past version"""
    __tablename__ = "tender_history"
    __table_args__ = (UniqueConstraint("tender_id", "version", name="uq_tender_history_version"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tender_id = Column(Uuid(as_uuid=True), ForeignKey("tender.id", ondelete="CASCADE"), nullable=False, index=True)
    version = Column(Integer, nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    service_type = Column(String(50), nullable=False)
    status = Column(String(50), nullable=False)
    recorded_at = Column(DateTime, default=datetime.utcnow)

    tender = relationship("Tender", back_populates="history")


class Bid(Base):
    __tablename__ = "bid"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    # Created, Published, Canceled; Approved/Rejected once decided
    status = Column(String(50), nullable=False, default="Created")
    tender_id = Column(Uuid(as_uuid=True), ForeignKey("tender.id", ondelete="CASCADE"), nullable=False, index=True)
    author_type = Column(String(50), nullable=False)  # Organization, User
    author_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow)

    tender = relationship("Tender", back_populates="bids")
    history = relationship("BidHistory", back_populates="bid", order_by="BidHistory.version")
    reviews = relationship("BidReview", back_populates="bid", order_by="BidReview.seq.desc()")


class BidHistory(Base):
    """Immutable snapshot of a bid at one past version"""
    __tablename__ = "bid_history"
    __table_args__ = (UniqueConstraint("bid_id", "version", name="uq_bid_history_version"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bid_id = Column(Uuid(as_uuid=True), ForeignKey("bid.id", ondelete="CASCADE"), nullable=False, index=True)
    version = Column(Integer, nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String(50), nullable=False)
    recorded_at = Column(DateTime, default=datetime.utcnow)

    bid = relationship("Bid", back_populates="history")


class BidReview(Base):
    """Append-only review note on a bid"""
    __tablename__ = "bid_review"

    # insertion order, breaks ties between equal timestamps
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(Uuid(as_uuid=True), unique=True, nullable=False, default=uuid.uuid4)
    bid_id = Column(Uuid(as_uuid=True), ForeignKey("bid.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(Text, nullable=False)
    reviewer_username = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    bid = relationship("Bid", back_populates="reviews")
