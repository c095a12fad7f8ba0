"""
Command payloads accepted by the services and mirrored as request bodies.

Fields the commands themselves validate (required title/date, positive
amounts, non-empty notes) are left loose here so the services can raise
the portal's own errors instead of a generic schema failure.
"""

import datetime as dt
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, Field

from app.models import (
    DonationType,
    MeetingType,
    OutreachMethod,
    ProspectStatus,
    ProspectType,
    RoleAssessment,
    RSVPStatus,
    StepStatus,
)
from app.roles import Role


class MeetingCreate(BaseModel):
    title: str | None = None
    date: dt.date | None = None
    time: str = ""
    type: MeetingType = MeetingType.BOARD
    meeting_link: str | None = None
    agenda: list[str] = Field(default_factory=list)
    created_by: str | None = None
    reason: str | None = None


class MeetingUpdate(BaseModel):
    title: str | None = None
    date: dt.date | None = None
    time: str | None = None
    type: MeetingType | None = None
    meeting_link: str | None = None
    agenda: list[str] | None = None
    reason: str | None = None


class RSVPRequest(BaseModel):
    person_id: str
    person_name: str
    status: RSVPStatus


class EmergencyRequestCreate(BaseModel):
    reason: str = ""
    requested_by: str | None = None
    requested_by_name: str | None = None


class MinutesDraft(BaseModel):
    content: str = ""


class RevisionRequest(BaseModel):
    note: str = ""


class VolunteerIdentity(BaseModel):
    legal_first_name: str = ""
    legal_last_name: str = ""
    preferred_first_name: str | None = None
    preferred_last_name: str | None = None
    email: str = ""
    phone: str = ""
    dob: dt.date | None = None
    gender: str | None = None
    languages_spoken: list[str] = Field(default_factory=list)
    demographics: dict[str, str | bool | list[str]] = Field(default_factory=dict)


class ApplicationSubmission(VolunteerIdentity):
    applied_role: Role | None = None
    role_assessment: list[RoleAssessment] = Field(default_factory=list)
    resume_path: str | None = None  # opaque file-storage path


class VolunteerCreate(VolunteerIdentity):
    role: Role = Role.CORE_VOLUNTEER
    added_by: str | None = None


class ReviewAction(StrEnum):
    APPROVE = "approve"
    REJECT = "reject"


class ReviewRequest(BaseModel):
    action: ReviewAction
    notes: str = ""


class TaskCreate(BaseModel):
    title: str = ""
    description: str = ""
    due_date: dt.date | None = None
    assigned_by: str | None = None


class TagRequest(BaseModel):
    tag: str


class HoursRequest(BaseModel):
    hours: float


class OnboardingProgressRequest(BaseModel):
    progress: int


class StepStatusUpdate(BaseModel):
    status: StepStatus
    document_path: str | None = None


class SignatureRequest(BaseModel):
    signature_path: str = ""


class GoalRequest(BaseModel):
    amount: Decimal


class ProspectCreate(BaseModel):
    name: str = ""
    email: str | None = None
    phone: str | None = None
    type: ProspectType = ProspectType.INDIVIDUAL
    relationship: str | None = None
    amount: Decimal = Decimal(0)
    notes: str | None = None


class ProspectStatusUpdate(BaseModel):
    status: ProspectStatus


class OutreachRequest(BaseModel):
    method: OutreachMethod
    notes: str | None = None
    request_id: str | None = None  # client-supplied, makes retries safe


class DonationRequest(BaseModel):
    amount: Decimal
    type: DonationType
    note: str | None = None
    request_id: str | None = None  # client-supplied, makes retries safe
