"""
FastAPI application factory for the CityFix services

One codebase serves three roles. The role picks the HTTP routers, the broker
topology to declare and the queues to consume:

    report-service  /reports, publishes report.created and audit.report.*
    user-service    /users, consumes report.created into the reports counter
    log-service     /logs, consumes audit.# into the audit log
"""

from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from cityfix.api import health, logs, reports, users
from cityfix.core.config import config
from cityfix.core.errors import (
    ErrorResponse,
    error_response_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from cityfix.core.logger import logger
from cityfix.core.telemetry import instrument_app
from cityfix.db.mongodb import (
    AUDIT_LOGS,
    COUNTERS,
    USERS,
    close_mongo_connection,
    connect_to_mongo,
    get_collection,
)
from cityfix.messaging.consumer import MessageConsumer
from cityfix.messaging.envelope import AuditEvent, ReportCreatedEvent
from cityfix.messaging.handlers import AuditSink, CounterUpdater
from cityfix.messaging.i_message_broker import IMessageBroker
from cityfix.messaging.message_broker_factory import MessageBrokerFactory
from cityfix.messaging.topology import SERVICE_TOPOLOGIES, topology_for
from cityfix.middleware.auth import AuthFilterMiddleware
from cityfix.middleware.correlation_id import CorrelationIdMiddleware
from cityfix.repositories.audit_log import AuditLogRepository
from cityfix.repositories.sequences import SequenceGenerator
from cityfix.repositories.user import UserRepository
from cityfix.security.tokens import JwtTokenProvider

REPORT_SERVICE = "report-service"
USER_SERVICE = "user-service"
LOG_SERVICE = "log-service"

SERVICE_TITLES = {
    REPORT_SERVICE: "Report Service",
    USER_SERVICE: "User Service",
    LOG_SERVICE: "Log Service",
}


async def build_consumers(service_role: str, broker: IMessageBroker) -> List[MessageConsumer]:
    """Consumers owned by a service role, wired to MongoDB repositories"""
    sequences = SequenceGenerator(await get_collection(COUNTERS))

    if service_role == USER_SERVICE:
        updater = CounterUpdater(UserRepository(await get_collection(USERS), sequences))
        return [MessageConsumer(
            broker, config.rabbitmq_queue_user_counter, ReportCreatedEvent, updater.on_report_created,
        )]

    if service_role == LOG_SERVICE:
        sink = AuditSink(AuditLogRepository(await get_collection(AUDIT_LOGS), sequences))
        return [MessageConsumer(
            broker, config.rabbitmq_queue_audit_logs, AuditEvent, sink.on_audit_event,
        )]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    service_role = app.state.service_role
    broker: IMessageBroker = app.state.broker
    title = SERVICE_TITLES[service_role]

    # Startup
    logger.info(f"Starting {title}...")
    await connect_to_mongo()
    await broker.connect()
    await broker.declare_topology(topology_for(service_role, config))

    consumers = await build_consumers(service_role, broker)
    for consumer in consumers:
        consumer.start()

    logger.info(
        f"{title} started successfully",
        metadata={
            "service_role": service_role,
            "version": config.service_version,
            "environment": config.environment,
            "broker": config.message_broker_type,
            "queues": [consumer.queue_name for consumer in consumers],
        }
    )

    yield

    # Shutdown
    logger.info(f"Shutting down {title}...")
    for consumer in consumers:
        await consumer.stop()
    await broker.disconnect()
    await close_mongo_connection()


def create_app(
    service_role: Optional[str] = None,
    broker: Optional[IMessageBroker] = None,
    token_provider: Optional[JwtTokenProvider] = None,
) -> FastAPI:
    """
    Build the application for one service role.

    Args:
        service_role: report-service, user-service or log-service; defaults to SERVICE_ROLE
        broker: broker to use instead of the configured one
        token_provider: token provider to use instead of one built from config
    """
    service_role = service_role or config.service_role
    if service_role not in SERVICE_TOPOLOGIES:
        raise ValueError(
            f"Unknown service role: {service_role}. "
            f"Supported roles: {', '.join(sorted(SERVICE_TOPOLOGIES))}"
        )

    app = FastAPI(
        title=SERVICE_TITLES[service_role],
        description="CityFix city issue reporting",
        version=config.service_version,
        lifespan=lifespan,
    )
    app.state.service_role = service_role
    app.state.broker = broker or MessageBrokerFactory.create(config)
    app.state.token_provider = token_provider or JwtTokenProvider.from_config(config)

    instrument_app(app)

    # Configure error handlers
    app.add_exception_handler(ErrorResponse, error_response_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Last added runs first: correlation id is set before the auth filter logs
    app.add_middleware(
        AuthFilterMiddleware,
        token_provider=app.state.token_provider,
        cookie_name=config.jwt_cookie_name,
    )
    app.add_middleware(CorrelationIdMiddleware)

    app.include_router(health.router, tags=["health"])
    if service_role == REPORT_SERVICE:
        app.include_router(reports.router, prefix="/reports", tags=["reports"])
    elif service_role == USER_SERVICE:
        app.include_router(users.router, prefix="/users", tags=["users"])
    elif service_role == LOG_SERVICE:
        app.include_router(logs.router, prefix="/logs", tags=["logs"])

    return app
