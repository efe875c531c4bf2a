"""
Tender Service - tender lifecycle on top of the versioned store
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from tender_ledger.core.deadline import Deadline
from tender_ledger.core.errors import Forbidden, InvalidEnum, NotFound
from tender_ledger.db.models import Tender, TenderHistory
from tender_ledger.services.versioning import VersionedStore, atomic
from tender_ledger.utils.cache import invalidate_tender_cache
from tender_ledger.utils.choices import TenderServiceType
from tender_ledger.utils.pagination import paginate_query, validate_page
from tender_ledger.utils.permissions import (
    is_responsible_for,
    organization_exists,
    require_tender_access,
    require_user,
    responsible_organization_ids,
)
from tender_ledger.utils.status_machine import TenderStateMachine
from tender_ledger.utils.validation import parse_id, parse_version, require_fields

logger = logging.getLogger(__name__)

TENDER_STORE = VersionedStore(
    kind="tender",
    model=Tender,
    history_model=TenderHistory,
    history_key="tender_id",
    content_fields=("name", "description", "service_type"),
    state_machine=TenderStateMachine,
    choices={"service_type": TenderServiceType.values()},
    aliases={"serviceType": "service_type"},
)


class TenderService:
    """
    Tender operations for one request.

    The session, deadline and page bound come from the caller; nothing is
    kept between requests.
    """

    def __init__(self, db: Session, deadline: Optional[Deadline] = None, max_limit: int = 50):
        self.db = db
        self.deadline = deadline
        self.max_limit = max_limit
        self.store = TENDER_STORE

    def _authorized_tender(self, tender_id: str, username: str) -> Tender:
        """Identity, existence and access checks, in that order"""
        tender_uuid = parse_id(tender_id, "tenderId")
        require_user(self.db, username)
        tender = self.store.get(self.db, tender_uuid)
        require_tender_access(self.db, username, tender)
        return tender

    def list_tenders(self, limit: int, offset: int, service_types: Optional[List[str]] = None) -> List[Tender]:
        """Public listing, optionally filtered by service type"""
        validate_page(limit, offset, self.max_limit)
        service_types = [s for s in (service_types or []) if s]
        for service_type in service_types:
            if not TenderServiceType.contains(service_type):
                raise InvalidEnum(f"unsupported service type: {service_type}")

        query = self.db.query(Tender)
        if service_types:
            query = query.filter(Tender.service_type.in_(service_types))
        return paginate_query(self.store.ordered(query), offset, limit)

    def create_tender(
        self,
        name: str,
        description: str,
        service_type: str,
        organization_id: str,
        creator_username: str,
    ) -> Tender:
        require_fields(
            name=name,
            description=description,
            serviceType=service_type,
            organizationId=organization_id,
            creatorUsername=creator_username,
        )
        org_uuid = parse_id(organization_id, "organizationId")
        if not TenderServiceType.contains(service_type):
            raise InvalidEnum(f"invalid service type: {service_type}")

        require_user(self.db, creator_username)
        if not organization_exists(self.db, org_uuid):
            raise NotFound("organization not found")
        if not is_responsible_for(self.db, creator_username, org_uuid):
            raise Forbidden("you are not authorized to create tenders for this organization")

        with atomic(self.db, self.deadline, "create tender"):
            tender = self.store.create(
                self.db,
                name=name,
                description=description,
                service_type=service_type,
                organization_id=org_uuid,
                creator_username=creator_username,
            )
        self.db.refresh(tender)
        invalidate_tender_cache()
        logger.info(f"Tender {tender.id} created by {creator_username}")
        return tender

    def list_user_tenders(self, username: str, limit: int, offset: int) -> List[Tender]:
        """Tenders the user created or is responsible for through an organization"""
        validate_page(limit, offset, self.max_limit)
        require_fields(username=username)
        require_user(self.db, username)

        query = self.db.query(Tender).filter(
            or_(
                Tender.creator_username == username,
                Tender.organization_id.in_(responsible_organization_ids(username)),
            )
        )
        return paginate_query(self.store.ordered(query), offset, limit)

    def get_tender(self, tender_id: str) -> Tender:
        return self.store.get(self.db, parse_id(tender_id, "tenderId"))

    def get_tender_status(self, tender_id: str, username: Optional[str] = None) -> str:
        """Status is public; with a username the caller must be authorized"""
        if username:
            return self._authorized_tender(tender_id, username).status
        return self.get_tender(tender_id).status

    def update_tender_status(self, tender_id: str, status: str, username: str) -> Tender:
        require_fields(status=status, username=username)
        self.store.require_known_status(status)
        tender = self._authorized_tender(tender_id, username)

        with atomic(self.db, self.deadline, "update tender status"):
            tender = self.store.change_status(self.db, tender.id, status)
        self.db.refresh(tender)
        invalidate_tender_cache()
        logger.info(f"Tender {tender.id} moved to {tender.status} by {username}")
        return tender

    def edit_tender(self, tender_id: str, username: str, patch: Dict[str, Any]) -> Tender:
        require_fields(username=username)
        self.store.clean_patch(patch)
        tender = self._authorized_tender(tender_id, username)

        with atomic(self.db, self.deadline, "edit tender"):
            tender = self.store.edit(self.db, tender.id, patch)
        self.db.refresh(tender)
        invalidate_tender_cache()
        logger.info(f"Tender {tender.id} edited by {username}, now version {tender.version}")
        return tender

    def rollback_tender(self, tender_id: str, username: str, version) -> Tender:
        require_fields(username=username)
        target_version = parse_version(version)
        tender = self._authorized_tender(tender_id, username)

        with atomic(self.db, self.deadline, "rollback tender"):
            tender = self.store.rollback(self.db, tender.id, target_version)
        self.db.refresh(tender)
        invalidate_tender_cache()
        logger.info(
            f"Tender {tender.id} rolled back to version {target_version} by {username}, "
            f"now version {tender.version}"
        )
        return tender

    def tender_history(self, tender_id: str, username: str) -> List[TenderHistory]:
        require_fields(username=username)
        tender = self._authorized_tender(tender_id, username)
        return self.store.history(self.db, tender.id)
