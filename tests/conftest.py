"""Shared fixtures: in-memory storage, a fixed clock, and a wired service."""

from datetime import datetime, timedelta

import pytest

from potledger.audit import AuditLogger
from potledger.config import get_settings
from potledger.models import Member
from potledger.orchestrator import GroupLedgerService
from potledger.services.storage import InMemoryAuditStorage, InMemoryLedgerStorage


class FakeClock:
    """Returns a fixed time that only moves when told to."""

    def __init__(self, start: datetime = datetime(2024, 6, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return InMemoryLedgerStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def service(storage, audit_storage, clock):
    return GroupLedgerService(
        storage=storage,
        audit_logger=AuditLogger(audit_storage),
        clock=clock,
    )


@pytest.fixture
def household(service):
    """Group 'house' with members A, B and C."""
    for member_id in ("A", "B", "C"):
        service.add_member("house", Member(id=member_id, name=f"Member {member_id}"))
    return "house"
