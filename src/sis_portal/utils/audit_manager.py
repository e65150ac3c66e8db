"""Audit log utilities.

Audit rows are written after the audited change has been committed. A failed
audit write is logged and rolled back so it never undoes the change itself.
"""

import json
import logging
from typing import Any, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from sis_portal.config import AUDIT_DEFAULT_LIMIT, MAX_PAGE_SIZE
from sis_portal.models.audit_log import AuditLogModel

logger = logging.getLogger(__name__)


class AuditManager:
    """Writes and reads audit log entries."""

    def __init__(self, db: Session):
        self.db = db

    def log(
        self,
        user_id: Optional[str],
        action: str,
        entity: str,
        entity_id: str,
        details: Optional[Any] = None,
    ) -> Optional[AuditLogModel]:
        """Record an audit event.

        Args:
            user_id: ID of the acting user, if known.
            action: Action name, e.g. "UPDATE_GRADE".
            entity: Entity type, e.g. "Grade".
            entity_id: ID of the affected row, or "bulk".
            details: JSON-serializable payload describing the change.

        Returns:
            The stored entry, or None if the write failed.
        """
        model = AuditLogModel(
            user_id=user_id,
            action=action,
            entity=entity,
            entity_id=entity_id,
            details=json.dumps(details, default=str) if details is not None else None,
        )
        try:
            self.db.add(model)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to write audit log %s %s %s", action, entity, entity_id)
            return None
        logger.info("audit: %s %s %s user_id=%s", action, entity, entity_id, user_id)
        return model

    def get_logs(self, limit: Optional[int] = None) -> List[AuditLogModel]:
        limit = limit if limit and limit > 0 else AUDIT_DEFAULT_LIMIT
        return (
            self.db.query(AuditLogModel)
            .options(joinedload(AuditLogModel.user))
            .order_by(AuditLogModel.created_at.desc())
            .limit(min(limit, MAX_PAGE_SIZE))
            .all()
        )

    def get_logs_by_entity(self, entity_id: str) -> List[AuditLogModel]:
        return (
            self.db.query(AuditLogModel)
            .options(joinedload(AuditLogModel.user))
            .filter(AuditLogModel.entity_id == entity_id)
            .order_by(AuditLogModel.created_at.desc())
            .all()
        )
