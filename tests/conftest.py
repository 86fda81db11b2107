"""Shared test fixtures"""
import asyncio

import pytest
import pytest_asyncio

from cityfix.core.config import Config
from cityfix.messaging.consumer import DeliveryContext
from cityfix.messaging.envelope import AuditEvent, ReportCreatedEvent
from cityfix.messaging.memory_broker import InMemoryBroker
from cityfix.messaging.topology import topology_for
from cityfix.models.user import User
from cityfix.security.identity import Identity
from cityfix.security.tokens import JwtTokenProvider

TEST_SECRET = "test-secret-key-with-at-least-32-bytes"


@pytest.fixture
def test_config():
    """Config with default topology names and no .env influence"""
    return Config(_env_file=None, jwt_secret=TEST_SECRET, log_access_password="let-me-in")


@pytest.fixture
def token_provider():
    return JwtTokenProvider(TEST_SECRET, "HS256", 3600)


@pytest_asyncio.fixture
async def broker(test_config):
    """Connected in-memory broker with every service's topology declared"""
    broker = InMemoryBroker()
    await broker.connect()
    for role in ("report-service", "user-service", "log-service"):
        await broker.declare_topology(topology_for(role, test_config))
    yield broker
    await broker.disconnect()


@pytest.fixture
def connected_broker(test_config):
    """Same as `broker`, for synchronous (TestClient) tests"""
    broker = InMemoryBroker()

    async def setup():
        await broker.connect()
        await broker.declare_topology(topology_for("report-service", test_config))

    asyncio.run(setup())
    return broker


@pytest.fixture
def identity():
    return Identity(user_id=1, username="alice")


@pytest.fixture
def sample_user():
    return User(
        id=1,
        username="alice",
        email="alice@example.com",
        password_hash="$2b$12$notarealhashnotarealhashnotarealhashnotarealhashnotre",
        first_name="Alice",
        reports_count=3,
    )


@pytest.fixture
def delivery_context():
    return DeliveryContext(
        queue="test.queue",
        message_id="msg-1",
        correlation_id="corr-1",
        redelivered=False,
        delivery_count=0,
    )


@pytest.fixture
def report_created_event():
    return ReportCreatedEvent(
        report_id=10,
        user_id=1,
        title="Broken light",
        status="OPEN",
        category="LIGHTING",
        priority="MEDIUM",
    )


@pytest.fixture
def audit_event():
    return AuditEvent(
        event_type="REPORT",
        user_id=1,
        username="alice",
        entity_type="Report",
        entity_id=10,
        action="report.create",
        details="Report created: Broken light",
        ip_address="192.168.1.1",
    )
