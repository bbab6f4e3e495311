from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from sellify.config import Settings
from sellify.runtime import build_runtime
from sellify.services.audit_service import InMemoryAuditStore
from sellify.services.knowledge_base import Product


class FixedClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def db_session():
    """Mock database session."""
    return Mock()


@pytest.fixture
def clock():
    # Wednesday, inside the default 09:00-18:00 window
    return FixedClock(datetime(2026, 10, 14, 10, 30, tzinfo=timezone.utc))


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        database_url="sqlite:///:memory:",
        active_hours_start="00:00",
        active_hours_end="00:00",
        messages_per_day=200,
        messages_per_week=1000,
        alert_bot_token=None,
        alert_chat_id=None,
        openai_api_key=None,
    )


@pytest.fixture
def product():
    return Product(
        id="prod-001",
        name="Crème hydratante",
        short_description="Crème de jour 50ml",
        price=29.9,
        keywords=["creme", "hydratation"],
    )


@pytest.fixture
def runtime(test_settings, product):
    rt = build_runtime(
        test_settings,
        audit_store=InMemoryAuditStore(),
        session_factory=lambda: Mock(),
    )
    rt.knowledge_base.load_products([product])
    return rt
