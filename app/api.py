import asyncio
import logging
from collections.abc import Coroutine
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from app.applications import ApplicationReviewEngine
from app.compliance import Capability, ComplianceService
from app.config import Settings, get_settings
from app.database import InMemoryKeyValueDatabase
from app.documents import RenderedDocument, render_minutes, render_signed_form
from app.errors import PortalError
from app.fundraising import FundraisingLedger
from app.logging_config import configure_logging
from app.meetings import MeetingLifecycleManager, MeetingView
from app.minutes import render_template
from app.models import (
    ApplicationStatus,
    ComplianceStep,
    EmergencyMeetingRequest,
    GiveOrGetProgress,
    Meeting,
    Prospect,
    Task,
    Volunteer,
)
from app.notifier import (
    application_reviewed,
    emergency_meeting_requested,
    meeting_scheduled,
    volunteer_added,
)
from app.schemas import (
    ApplicationSubmission,
    DonationRequest,
    EmergencyRequestCreate,
    GoalRequest,
    HoursRequest,
    MeetingCreate,
    MeetingUpdate,
    MinutesDraft,
    OnboardingProgressRequest,
    OutreachRequest,
    ProspectCreate,
    ProspectStatusUpdate,
    ReviewRequest,
    RevisionRequest,
    RSVPRequest,
    SignatureRequest,
    StepStatusUpdate,
    TagRequest,
    TaskCreate,
    VolunteerCreate,
)
from app.volunteers import VolunteerDirectory

logger = logging.getLogger(__name__)

router = APIRouter()


def _fire_and_forget(request: Request, coro: Coroutine[Any, Any, None]) -> None:
    tasks: set[asyncio.Task] = request.app.state.notification_tasks
    task = asyncio.create_task(coro)
    tasks.add(task)

    def _done(t: asyncio.Task) -> None:
        tasks.discard(t)
        if not t.cancelled() and t.exception() is not None:
            logger.error("notification failed: %r", t.exception())

    task.add_done_callback(_done)


@router.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "ok"}


# ----------------------------------------------------------------------------
# meetings
# ----------------------------------------------------------------------------


@router.post("/meetings")
async def schedule_meeting(data: MeetingCreate, request: Request) -> Meeting:
    meeting = request.app.state.meetings.schedule_meeting(data)
    settings: Settings = request.app.state.settings
    _fire_and_forget(request, meeting_scheduled(meeting, settings=settings))
    return meeting


@router.get("/meetings")
async def list_meetings(
    request: Request, view: MeetingView = MeetingView.ALL
) -> list[Meeting]:
    return request.app.state.meetings.list_meetings(view)


@router.post("/meetings/emergency-requests")
async def request_emergency_meeting(
    data: EmergencyRequestCreate, request: Request
) -> EmergencyMeetingRequest:
    emergency = request.app.state.meetings.request_emergency_meeting(
        data.reason,
        requested_by=data.requested_by,
        requested_by_name=data.requested_by_name,
    )
    settings: Settings = request.app.state.settings
    _fire_and_forget(
        request, emergency_meeting_requested(emergency, settings=settings)
    )
    return emergency


@router.get("/meetings/emergency-requests")
async def list_emergency_requests(request: Request) -> list[EmergencyMeetingRequest]:
    return request.app.state.meetings.list_emergency_requests()


@router.get("/meetings/{meeting_id}")
async def get_meeting(meeting_id: str, request: Request) -> Meeting:
    return request.app.state.meetings.get(meeting_id)


@router.patch("/meetings/{meeting_id}")
async def edit_meeting(
    meeting_id: str, changes: MeetingUpdate, request: Request
) -> Meeting:
    return request.app.state.meetings.edit_meeting(meeting_id, changes)


@router.post("/meetings/{meeting_id}/rsvp")
async def record_rsvp(meeting_id: str, data: RSVPRequest, request: Request) -> Meeting:
    return request.app.state.meetings.record_rsvp(
        meeting_id, data.person_id, data.person_name, data.status
    )


@router.get("/meetings/{meeting_id}/rsvps/summary")
async def rsvp_summary(meeting_id: str, request: Request) -> dict[str, int]:
    return request.app.state.meetings.rsvp_summary(meeting_id)


@router.post("/meetings/{meeting_id}/cancel")
async def cancel_meeting(meeting_id: str, request: Request) -> Meeting:
    return request.app.state.meetings.cancel_meeting(meeting_id)


@router.post("/meetings/{meeting_id}/complete")
async def complete_meeting(meeting_id: str, request: Request) -> Meeting:
    return request.app.state.meetings.complete_meeting(meeting_id)


# ----------------------------------------------------------------------------
# minutes
# ----------------------------------------------------------------------------


@router.get("/minutes/template")
async def minutes_template(request: Request) -> dict[str, str]:
    settings: Settings = request.app.state.settings
    return {"template": render_template(settings.organization_name)}


@router.put("/meetings/{meeting_id}/minutes")
async def save_minutes_draft(
    meeting_id: str, data: MinutesDraft, request: Request
) -> Meeting:
    return request.app.state.meetings.minutes.save_draft(meeting_id, data.content)


@router.post("/meetings/{meeting_id}/minutes/approve")
async def approve_minutes(meeting_id: str, request: Request) -> Meeting:
    return request.app.state.meetings.minutes.approve(meeting_id)


@router.post("/meetings/{meeting_id}/minutes/revision")
async def request_revision(
    meeting_id: str, data: RevisionRequest, request: Request
) -> Meeting:
    return request.app.state.meetings.minutes.request_revision(meeting_id, data.note)


@router.post("/meetings/{meeting_id}/minutes/reopen")
async def reopen_minutes(meeting_id: str, request: Request) -> Meeting:
    return request.app.state.meetings.minutes.reopen(meeting_id)


@router.get("/meetings/{meeting_id}/minutes/document")
async def minutes_document(meeting_id: str, request: Request) -> RenderedDocument:
    content = request.app.state.meetings.minutes.content_for_rendering(meeting_id)
    return await render_minutes(
        meeting_id, content, settings=request.app.state.settings
    )


# ----------------------------------------------------------------------------
# applications & volunteers
# ----------------------------------------------------------------------------


@router.post("/applications")
async def submit_application(
    data: ApplicationSubmission, request: Request
) -> Volunteer:
    return request.app.state.applications.submit_application(data)


@router.get("/applications")
async def list_applications(
    request: Request, status: ApplicationStatus = ApplicationStatus.PENDING_REVIEW
) -> list[Volunteer]:
    return request.app.state.applications.list_applications(status)


@router.post("/applications/{volunteer_id}/review")
async def review_application(
    volunteer_id: str, data: ReviewRequest, request: Request
) -> Volunteer:
    volunteer = request.app.state.applications.review_application(
        volunteer_id, data.action, data.notes
    )
    settings: Settings = request.app.state.settings
    _fire_and_forget(request, application_reviewed(volunteer, settings=settings))
    return volunteer


@router.post("/volunteers")
async def add_volunteer(data: VolunteerCreate, request: Request) -> Volunteer:
    volunteer = request.app.state.applications.add_volunteer(data)
    settings: Settings = request.app.state.settings
    _fire_and_forget(request, volunteer_added(volunteer, settings=settings))
    return volunteer


@router.get("/volunteers")
async def list_volunteers(
    request: Request, status: ApplicationStatus | None = None
) -> list[Volunteer]:
    return request.app.state.volunteers.list_volunteers(status)


@router.get("/volunteers/{volunteer_id}")
async def get_volunteer(volunteer_id: str, request: Request) -> Volunteer:
    return request.app.state.volunteers.get(volunteer_id)


@router.post("/volunteers/{volunteer_id}/tasks")
async def assign_task(volunteer_id: str, data: TaskCreate, request: Request) -> Task:
    return request.app.state.volunteers.assign_task(volunteer_id, data)


@router.post("/volunteers/{volunteer_id}/tasks/{task_id}/complete")
async def complete_task(volunteer_id: str, task_id: str, request: Request) -> Task:
    return request.app.state.volunteers.complete_task(volunteer_id, task_id)


@router.post("/volunteers/{volunteer_id}/tags")
async def add_tag(volunteer_id: str, data: TagRequest, request: Request) -> Volunteer:
    return request.app.state.volunteers.add_tag(volunteer_id, data.tag)


@router.delete("/volunteers/{volunteer_id}/tags/{tag}")
async def remove_tag(volunteer_id: str, tag: str, request: Request) -> Volunteer:
    return request.app.state.volunteers.remove_tag(volunteer_id, tag)


@router.post("/volunteers/{volunteer_id}/hours")
async def log_hours(
    volunteer_id: str, data: HoursRequest, request: Request
) -> Volunteer:
    return request.app.state.volunteers.log_hours(volunteer_id, data.hours)


@router.put("/volunteers/{volunteer_id}/onboarding-progress")
async def set_onboarding_progress(
    volunteer_id: str, data: OnboardingProgressRequest, request: Request
) -> Volunteer:
    return request.app.state.volunteers.set_onboarding_progress(
        volunteer_id, data.progress
    )


# ----------------------------------------------------------------------------
# compliance
# ----------------------------------------------------------------------------


@router.get("/volunteers/{volunteer_id}/compliance")
async def compliance_steps(
    volunteer_id: str, request: Request
) -> list[ComplianceStep]:
    return request.app.state.compliance.steps_for(volunteer_id)


@router.put("/volunteers/{volunteer_id}/compliance/{step_id}")
async def set_step_status(
    volunteer_id: str, step_id: str, data: StepStatusUpdate, request: Request
) -> ComplianceStep:
    return request.app.state.compliance.set_step_status(
        volunteer_id, step_id, data.status, document_path=data.document_path
    )


@router.post("/volunteers/{volunteer_id}/forms/{form_id}/sign")
async def sign_form(
    volunteer_id: str, form_id: str, data: SignatureRequest, request: Request
) -> ComplianceStep:
    return request.app.state.compliance.sign_form(
        volunteer_id, form_id, data.signature_path
    )


@router.get("/volunteers/{volunteer_id}/forms/{form_id}/document")
async def signed_form_document(
    volunteer_id: str, form_id: str, request: Request
) -> RenderedDocument:
    step = request.app.state.compliance.signed_form(volunteer_id, form_id)
    return await render_signed_form(
        volunteer_id,
        form_id,
        step.document_path,
        settings=request.app.state.settings,
    )


@router.get("/volunteers/{volunteer_id}/eligibility/{capability}")
async def eligibility(
    volunteer_id: str, capability: Capability, request: Request
) -> dict:
    eligible = request.app.state.compliance.eligibility(volunteer_id, capability)
    return {
        "volunteer_id": volunteer_id,
        "capability": capability.value,
        "eligible": eligible,
    }


@router.get("/compliance/overview")
async def compliance_overview(request: Request) -> list[dict]:
    return request.app.state.compliance.overview()


# ----------------------------------------------------------------------------
# fundraising
# ----------------------------------------------------------------------------


@router.get("/ledgers/{person_id}")
async def get_ledger(person_id: str, request: Request) -> GiveOrGetProgress:
    return request.app.state.fundraising.get_ledger(person_id)


@router.put("/ledgers/{person_id}/goal")
async def set_goal(
    person_id: str, data: GoalRequest, request: Request
) -> GiveOrGetProgress:
    return request.app.state.fundraising.set_goal(person_id, data.amount)


@router.post("/ledgers/{person_id}/prospects")
async def add_prospect(
    person_id: str, data: ProspectCreate, request: Request
) -> Prospect:
    return request.app.state.fundraising.add_prospect(person_id, data)


@router.delete("/ledgers/{person_id}/prospects/{prospect_id}")
async def remove_prospect(
    person_id: str, prospect_id: str, request: Request
) -> GiveOrGetProgress:
    return request.app.state.fundraising.remove_prospect(person_id, prospect_id)


@router.patch("/ledgers/{person_id}/prospects/{prospect_id}/status")
async def update_prospect_status(
    person_id: str, prospect_id: str, data: ProspectStatusUpdate, request: Request
) -> Prospect:
    return request.app.state.fundraising.update_prospect_status(
        person_id, prospect_id, data.status
    )


@router.post("/ledgers/{person_id}/prospects/{prospect_id}/outreach")
async def log_outreach(
    person_id: str, prospect_id: str, data: OutreachRequest, request: Request
) -> Prospect:
    return request.app.state.fundraising.log_outreach(
        person_id, prospect_id, data.method, data.notes, request_id=data.request_id
    )


@router.post("/ledgers/{person_id}/donations")
async def log_donation(
    person_id: str, data: DonationRequest, request: Request
) -> GiveOrGetProgress:
    return request.app.state.fundraising.log_donation(
        person_id, data.amount, data.type, data.note, request_id=data.request_id
    )


async def _portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    logger.warning(
        "%s %s rejected (%s): %s",
        request.method,
        request.url.path,
        type(exc).__name__,
        exc.detail,
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title=settings.app_name, debug=settings.debug)
    db: InMemoryKeyValueDatabase[str, object] = InMemoryKeyValueDatabase()
    app.state.settings = settings
    app.state.database = db

    app.state.now_fn = lambda: datetime.now(UTC)
    zone = ZoneInfo(settings.timezone)

    # resolve the clock per call so tests can swap app.state.now_fn
    def now() -> datetime:
        return app.state.now_fn()

    def today():
        return now().astimezone(zone).date()

    app.state.meetings = MeetingLifecycleManager(db, now_fn=now, today_fn=today)
    app.state.applications = ApplicationReviewEngine(db, now_fn=now)
    app.state.volunteers = VolunteerDirectory(db, now_fn=now)
    app.state.compliance = ComplianceService(db, now_fn=now)
    app.state.fundraising = FundraisingLedger(db, now_fn=now)

    app.state.notification_tasks = set()

    app.add_exception_handler(PortalError, _portal_error_handler)
    app.include_router(router)
    return app
