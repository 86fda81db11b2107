"""
Dependency injection for repositories, publishers and services

The broker and token provider are created once per process in the app
lifespan and read back from `app.state`.
"""

from typing import Optional

from fastapi import Depends, Request

from cityfix.core.config import config
from cityfix.db.mongodb import AUDIT_LOGS, COUNTERS, REPORTS, USERS, get_collection
from cityfix.messaging.i_message_broker import IMessageBroker
from cityfix.messaging.publisher import AuditEventPublisher, ReportEventPublisher
from cityfix.repositories.audit_log import AuditLogRepository
from cityfix.repositories.report import ReportRepository
from cityfix.repositories.sequences import SequenceGenerator
from cityfix.repositories.user import UserRepository
from cityfix.security.tokens import JwtTokenProvider
from cityfix.services.audit_log import AuditLogService
from cityfix.services.report import ReportService
from cityfix.services.user import UserService


def get_broker(request: Request) -> IMessageBroker:
    return request.app.state.broker


def get_token_provider(request: Request) -> JwtTokenProvider:
    return request.app.state.token_provider


def get_client_ip(request: Request) -> Optional[str]:
    """Caller address for audit records, honouring X-Forwarded-For from a proxy"""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


async def get_sequence_generator() -> SequenceGenerator:
    return SequenceGenerator(await get_collection(COUNTERS))


async def get_report_repository(
    sequences: SequenceGenerator = Depends(get_sequence_generator)
) -> ReportRepository:
    """Get report repository instance"""
    return ReportRepository(await get_collection(REPORTS), sequences)


async def get_user_repository(
    sequences: SequenceGenerator = Depends(get_sequence_generator)
) -> UserRepository:
    """Get user repository instance"""
    return UserRepository(await get_collection(USERS), sequences)


async def get_audit_log_repository(
    sequences: SequenceGenerator = Depends(get_sequence_generator)
) -> AuditLogRepository:
    """Get audit log repository instance"""
    return AuditLogRepository(await get_collection(AUDIT_LOGS), sequences)


async def get_report_service(
    repository: ReportRepository = Depends(get_report_repository),
    broker: IMessageBroker = Depends(get_broker),
) -> ReportService:
    """Get report service instance"""
    return ReportService(
        repository,
        ReportEventPublisher(broker, config),
        AuditEventPublisher(broker, config),
    )


async def get_user_service(
    repository: UserRepository = Depends(get_user_repository),
    broker: IMessageBroker = Depends(get_broker),
    token_provider: JwtTokenProvider = Depends(get_token_provider),
) -> UserService:
    """Get user service instance"""
    return UserService(repository, token_provider, AuditEventPublisher(broker, config))


async def get_audit_log_service(
    repository: AuditLogRepository = Depends(get_audit_log_repository),
) -> AuditLogService:
    return AuditLogService(repository)
