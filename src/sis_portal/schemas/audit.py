"""Audit log schema definitions."""

from typing import Any, Optional

from sis_portal.schemas.common import APIModel


class AuditUser(APIModel):
    email: str
    role: str


class AuditLogInfo(APIModel):
    id: str
    user_id: Optional[str] = None
    action: str
    entity: str
    entity_id: str
    details: Optional[Any] = None
    created_at: str
    user: Optional[AuditUser] = None
