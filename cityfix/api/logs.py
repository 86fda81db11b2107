"""
Audit log retrieval for operators, guarded by a shared secret query parameter
"""

import secrets
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from cityfix.core.config import config
from cityfix.core.errors import AuthenticationError, ErrorResponseModel
from cityfix.core.logger import logger
from cityfix.models.audit_log import AuditLog
from cityfix.services.audit_log import DEFAULT_LIMIT, AuditLogService
from cityfix.dependencies.services import get_audit_log_service

router = APIRouter()


@router.get(
    "",
    response_model=List[AuditLog],
    responses={401: {"model": ErrorResponseModel}},
)
async def get_logs(
    password: Optional[str] = Query(None),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=1000),
    user_id: Optional[int] = Query(None, alias="userId"),
    event_type: Optional[str] = Query(None, alias="eventType"),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    service: AuditLogService = Depends(get_audit_log_service),
):
    """
    Audit records, newest first.

    At most one filter applies: userId, then eventType, then the start/end
    range; otherwise the latest `limit` records.
    """
    if password is None or not secrets.compare_digest(password.encode(), config.log_access_password.encode()):
        logger.warning("Unauthorized access attempt to logs")
        raise AuthenticationError("Unauthorized: Invalid password")

    logger.info(
        "Authorized access to logs",
        metadata={"limit": limit, "userId": user_id, "eventType": event_type},
    )
    return await service.get_logs(limit=limit, user_id=user_id, event_type=event_type, start=start, end=end)
