"""
Versioned Entity Store

An entity is a live row plus an append-only history ledger. For an entity id
the history holds versions 1..N with no gaps and the live row is at N+1:

- content edit: snapshot live row at N+1, apply the patch, bump live version
- status change: status column only, no snapshot, no bump
- rollback: copy the target version's content onto the live row, append that
  restored state to history at N+1, bump live version

Tenders and bids each get one ``VersionedStore`` configured with their model
pair, content fields and status machine.
"""
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tender_ledger.core.deadline import Deadline
from tender_ledger.core.errors import (
    EngineError,
    InvalidEnum,
    InvalidInput,
    InvalidTransition,
    NotFound,
    StoreFailure,
)
from tender_ledger.utils.status_machine import StatusMachine
from tender_ledger.utils.validation import is_blank

logger = logging.getLogger(__name__)


def _apply_statement_timeout(db: Session, deadline: Deadline):
    if db.get_bind().dialect.name != "postgresql":
        return
    timeout_ms = max(1, int(deadline.remaining() * 1000))
    db.execute(text(f"SET LOCAL statement_timeout = {timeout_ms}"))


@contextmanager
def atomic(db: Session, deadline: Optional[Deadline] = None, operation: str = "write"):
    """
    Run the block as one transaction.

    Commits only if the block finished and the deadline has not elapsed.
    Anything else rolls back; database errors surface as StoreFailure.
    """
    try:
        if deadline is not None:
            deadline.check(operation)
            _apply_statement_timeout(db, deadline)
        yield db
        if deadline is not None:
            deadline.check(operation)
        db.commit()
    except StoreFailure as e:
        db.rollback()
        logger.warning(f"{operation} rolled back: {e.message}")
        raise
    except EngineError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Store failure during {operation}")
        raise StoreFailure() from e
    except Exception:
        db.rollback()
        raise


class VersionedStore:
    """
    Create/read/edit/status/rollback for one entity kind.

    Methods flush but never commit; callers wrap them in ``atomic``.
    """

    def __init__(
        self,
        kind: str,
        model,
        history_model,
        history_key: str,
        content_fields: Sequence[str],
        state_machine: type,
        choices: Optional[Dict[str, List[str]]] = None,
        aliases: Optional[Dict[str, str]] = None,
    ):
        self.kind = kind
        self.model = model
        self.history_model = history_model
        self.history_key = history_key
        self.content_fields = tuple(content_fields)
        self.state_machine: StatusMachine = state_machine
        self.choices = choices or {}
        self.aliases = aliases or {}

    @property
    def _history_fk(self):
        return getattr(self.history_model, self.history_key)

    # -- reads -----------------------------------------------------------

    def get(self, db: Session, entity_id):
        entity = db.query(self.model).filter(self.model.id == entity_id).first()
        if entity is None:
            raise NotFound(f"{self.kind} not found")
        return entity

    def lock(self, db: Session, entity_id):
        """Re-read the live row under a row lock for a mutation"""
        entity = (
            db.query(self.model)
            .filter(self.model.id == entity_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if entity is None:
            raise NotFound(f"{self.kind} not found")
        return entity

    def ordered(self, query):
        return query.order_by(self.model.name, self.model.created_at, self.model.id)

    def history(self, db: Session, entity_id) -> list:
        return (
            db.query(self.history_model)
            .filter(self._history_fk == entity_id)
            .order_by(self.history_model.version)
            .all()
        )

    def latest_history_version(self, db: Session, entity_id) -> int:
        return (
            db.query(func.coalesce(func.max(self.history_model.version), 0))
            .filter(self._history_fk == entity_id)
            .scalar()
        )

    # -- validation ------------------------------------------------------

    def require_known_status(self, status: str):
        if not self.state_machine.is_known_status(status):
            raise InvalidEnum(f"invalid {self.kind} status: {status}")

    def clean_patch(self, patch: Dict[str, Any]) -> Dict[str, str]:
        """
        Reduce a sparse patch to the content fields it sets.

        Keys may be field names or their camelCase aliases. Unknown keys,
        non-string and blank values are ignored.
        """
        if not isinstance(patch, dict):
            raise InvalidInput("request body must be a JSON object")

        changes = {}
        for key, value in patch.items():
            field = self.aliases.get(key, key)
            if field not in self.content_fields:
                continue
            if not isinstance(value, str) or is_blank(value):
                continue
            allowed = self.choices.get(field)
            if allowed is not None and value not in allowed:
                raise InvalidEnum(f"invalid {key} parameter: {value}")
            changes[field] = value

        if not changes:
            raise InvalidInput("no valid fields to update")
        return changes

    # -- writes ----------------------------------------------------------

    def create(self, db: Session, **fields):
        entity = self.model(
            **fields,
            status=self.state_machine.INITIAL,
            version=1,
            created_at=datetime.utcnow(),
        )
        db.add(entity)
        db.flush()
        return entity

    def snapshot(self, db: Session, entity):
        """
        Append the live row to history at the next sequential version.

        Raises StoreFailure if the history chain and the live version disagree.
        """
        version = self.latest_history_version(db, entity.id) + 1
        if version != entity.version:
            logger.error(
                f"{self.kind} {entity.id} history is at {version - 1} but live row is at {entity.version}"
            )
            raise StoreFailure()
        record = self.history_model(
            version=version,
            status=entity.status,
            recorded_at=datetime.utcnow(),
            **{self.history_key: entity.id},
            **{field: getattr(entity, field) for field in self.content_fields},
        )
        db.add(record)
        db.flush()
        return record

    def _apply(self, db: Session, entity, changes: Dict[str, Any]):
        for field, value in changes.items():
            setattr(entity, field, value)
        entity.version += 1
        db.flush()

    def edit(self, db: Session, entity_id, patch: Dict[str, Any]):
        changes = self.clean_patch(patch)
        entity = self.lock(db, entity_id)
        self.snapshot(db, entity)
        self._apply(db, entity, changes)
        return entity

    def change_status(self, db: Session, entity_id, requested: str):
        self.require_known_status(requested)
        entity = self.lock(db, entity_id)
        is_valid, message = self.state_machine.validate_transition(entity.status, requested)
        if not is_valid:
            raise InvalidTransition(message)
        entity.status = requested
        db.flush()
        return entity

    def assign_status(self, db: Session, entity, status: str):
        """Set status without consulting the state machine"""
        entity.status = status
        db.flush()
        return entity

    def rollback(self, db: Session, entity_id, target_version: int):
        """
        Restore the content of ``target_version`` as a new version.

        Only content fields are restored; the live status is kept. The
        restored state is what gets appended to history.
        """
        entity = self.lock(db, entity_id)
        target = (
            db.query(self.history_model)
            .filter(self._history_fk == entity_id, self.history_model.version == target_version)
            .first()
        )
        if target is None:
            raise NotFound(f"version {target_version} of {self.kind} not found")

        for field in self.content_fields:
            setattr(entity, field, getattr(target, field))
        self.snapshot(db, entity)
        entity.version += 1
        db.flush()
        return entity
