"""Audit log routes (admin only)."""

import json
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from sis_portal.api.routes.auth import require_admin
from sis_portal.core.dependencies import AuditManagerDep
from sis_portal.schemas.audit import AuditLogInfo, AuditUser
from sis_portal.schemas.user import SessionUser

router = APIRouter(prefix="/api/audit", tags=["Audit"])


def _build_audit_info(model) -> AuditLogInfo:
    details = None
    if model.details:
        try:
            details = json.loads(model.details)
        except ValueError:
            details = model.details
    return AuditLogInfo(
        id=model.id,
        user_id=model.user_id,
        action=model.action,
        entity=model.entity,
        entity_id=model.entity_id,
        details=details,
        created_at=model.created_at,
        user=AuditUser.model_validate(model.user) if model.user else None,
    )


@router.get("", response_model=List[AuditLogInfo], summary="List audit log entries")
def list_audit_logs(
    audit_manager: AuditManagerDep,
    limit: Optional[int] = Query(None),
    entity_id: Optional[str] = Query(None, alias="entityId"),
    current_user: SessionUser = Depends(require_admin),
) -> List[AuditLogInfo]:
    """Newest entries first, optionally restricted to one entity."""
    if entity_id:
        models = audit_manager.get_logs_by_entity(entity_id)
    else:
        models = audit_manager.get_logs(limit)
    return [_build_audit_info(model) for model in models]
