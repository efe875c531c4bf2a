"""
Identity and authorization checks for tenders and bids
"""
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from tender_ledger.core.errors import Forbidden, Unauthenticated
from tender_ledger.db.models import Bid, Employee, Organization, OrganizationResponsible, Tender


def get_employee(db: Session, username: str) -> Optional[Employee]:
    """Look up an employee by username"""
    if not username:
        return None
    return db.query(Employee).filter(Employee.username == username).first()


def user_exists(db: Session, username: str) -> bool:
    """Check if an employee with this username exists"""
    return get_employee(db, username) is not None


def employee_exists_by_id(db: Session, user_id: UUID) -> bool:
    return db.query(Employee).filter(Employee.id == user_id).first() is not None


def organization_exists(db: Session, organization_id: UUID) -> bool:
    return db.query(Organization).filter(Organization.id == organization_id).first() is not None


def is_in_any_organization(db: Session, user_id: UUID) -> bool:
    """Check if the employee is responsible for at least one organization"""
    return db.query(OrganizationResponsible).filter(
        OrganizationResponsible.user_id == user_id
    ).first() is not None


def responsible_organization_ids(username: str):
    """Select of the organization ids a username is responsible for"""
    return (
        select(OrganizationResponsible.organization_id)
        .join(Employee, OrganizationResponsible.user_id == Employee.id)
        .where(Employee.username == username)
    )


def is_responsible_for(db: Session, username: str, organization_id: UUID) -> bool:
    """Check if user is registered as responsible for the organization"""
    if not username:
        return False
    return db.query(OrganizationResponsible).join(
        Employee, OrganizationResponsible.user_id == Employee.id
    ).filter(
        Employee.username == username,
        OrganizationResponsible.organization_id == organization_id,
    ).first() is not None


def is_authorized_for_tender(db: Session, username: str, tender: Tender) -> bool:
    """Tender creator or anyone responsible for the owning organization"""
    if not username:
        return False
    if tender.creator_username == username:
        return True
    return is_responsible_for(db, username, tender.organization_id)


def is_authorized_for_bid(db: Session, username: str, bid: Bid) -> bool:
    """Only the bid's author may act on it"""
    employee = get_employee(db, username)
    return employee is not None and employee.id == bid.author_id


def require_user(db: Session, username: str) -> Employee:
    """Raise if the identity is unknown"""
    employee = get_employee(db, username)
    if employee is None:
        raise Unauthenticated("user does not exist")
    return employee


def require_tender_access(db: Session, username: str, tender: Tender):
    if not is_authorized_for_tender(db, username, tender):
        raise Forbidden("you are not authorized to act on this tender")


def require_bid_access(db: Session, username: str, bid: Bid):
    if not is_authorized_for_bid(db, username, bid):
        raise Forbidden("you are not authorized to act on this bid")
