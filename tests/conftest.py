import asyncio
from datetime import UTC, date, datetime
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

import app.api as api
from app.api import create_app
from app.applications import ApplicationReviewEngine
from app.compliance import ComplianceService
from app.database import InMemoryKeyValueDatabase
from app.fundraising import FundraisingLedger
from app.meetings import MeetingLifecycleManager
from app.roles import Role
from app.schemas import ApplicationSubmission, VolunteerCreate
from app.volunteers import VolunteerDirectory


class FakeClock:
    """Settable clock; service code only ever calls it."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def today(self) -> date:
        return self.now.date()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 7, 2, 18, 0, 0, tzinfo=UTC))


@pytest.fixture
def db() -> InMemoryKeyValueDatabase[str, object]:
    return InMemoryKeyValueDatabase()


@pytest.fixture
def meetings(db, clock) -> MeetingLifecycleManager:
    return MeetingLifecycleManager(db, now_fn=clock, today_fn=clock.today)


@pytest.fixture
def applications(db, clock) -> ApplicationReviewEngine:
    return ApplicationReviewEngine(db, now_fn=clock)


@pytest.fixture
def volunteers(db, clock) -> VolunteerDirectory:
    return VolunteerDirectory(db, now_fn=clock)


@pytest.fixture
def compliance(db, clock) -> ComplianceService:
    return ComplianceService(db, now_fn=clock)


@pytest.fixture
def fundraising(db, clock) -> FundraisingLedger:
    return FundraisingLedger(db, now_fn=clock)


@pytest.fixture
def application_for():
    def _build(role: Role | None, first: str = "Ada", last: str = "Okafor"):
        return ApplicationSubmission(
            legal_first_name=first,
            legal_last_name=last,
            email=f"{first.lower()}@example.org",
            phone="+15550100",
            applied_role=role,
        )

    return _build


@pytest.fixture
def board_member(applications):
    return applications.add_volunteer(
        VolunteerCreate(
            legal_first_name="Grace",
            legal_last_name="Mensah",
            email="grace@example.org",
            role=Role.BOARD_MEMBER,
        )
    )


@pytest.fixture
def core_volunteer(applications):
    return applications.add_volunteer(
        VolunteerCreate(
            legal_first_name="Luis",
            legal_last_name="Ortega",
            email="luis@example.org",
            role=Role.CORE_VOLUNTEER,
        )
    )


@pytest.fixture(autouse=True)
def notifier_mocks(monkeypatch):
    """
    api.py does `from app.notifier import ...`, so the names are patched on
    the api module.
    """
    mocks = {
        name: AsyncMock(return_value=None)
        for name in (
            "meeting_scheduled",
            "emergency_meeting_requested",
            "application_reviewed",
            "volunteer_added",
        )
    }
    for name, mock in mocks.items():
        monkeypatch.setattr(api, name, mock)
    return mocks


@pytest_asyncio.fixture
async def client():
    app = create_app()
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as async_client:
        yield async_client

    tasks = list(app.state.notification_tasks)
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)
