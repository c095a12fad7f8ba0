"""
Domain models for meetings, volunteers, compliance and fundraising.
"""

import datetime as dt
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, Field, computed_field

from app.roles import Role

# ----------------------------------------------------------------------------
# meetings
# ----------------------------------------------------------------------------


class MeetingType(StrEnum):
    BOARD = "board"
    COMMITTEE = "committee"
    CAB = "cab"
    EMERGENCY = "emergency"
    TEAM = "team"
    STANDUP = "standup"
    PLANNING = "planning"


class MeetingStatus(StrEnum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    PENDING_APPROVAL = "pending_approval"


class RSVPStatus(StrEnum):
    ATTENDING = "attending"
    NOT_ATTENDING = "not_attending"
    TENTATIVE = "tentative"


class MinutesStatus(StrEnum):
    PENDING = "pending"
    DRAFT = "draft"
    APPROVED = "approved"


class RSVP(BaseModel):
    person_id: str
    person_name: str  # display snapshot at response time
    status: RSVPStatus
    responded_at: dt.datetime


class MinutesRecord(BaseModel):
    content: str = ""
    status: MinutesStatus = MinutesStatus.DRAFT
    revision_note: str | None = None
    updated_at: dt.datetime | None = None
    approved_at: dt.datetime | None = None


class Meeting(BaseModel):
    id: str
    title: str
    date: dt.date
    time: str = ""  # free-text display, e.g. "5:30 PM PT"
    type: MeetingType = MeetingType.BOARD
    status: MeetingStatus = MeetingStatus.SCHEDULED
    meeting_link: str | None = None
    agenda: list[str] = Field(default_factory=list)
    minutes: MinutesRecord | None = None
    rsvps: list[RSVP] = Field(default_factory=list)
    created_by: str | None = None
    reason: str | None = None
    created_at: dt.datetime | None = None


class EmergencyMeetingRequest(BaseModel):
    """
    A request for an emergency meeting. Scheduling authority stays with
    whoever acts on the request; this record never becomes a Meeting itself.
    """

    id: str
    reason: str
    requested_by: str | None = None
    requested_by_name: str | None = None
    status: MeetingStatus = MeetingStatus.PENDING_APPROVAL
    created_at: dt.datetime


# ----------------------------------------------------------------------------
# volunteers & compliance
# ----------------------------------------------------------------------------


class ApplicationStatus(StrEnum):
    PENDING_REVIEW = "pendingReview"
    APPROVED = "approved"
    REJECTED = "rejected"


class StepStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    VERIFIED = "verified"


class ComplianceStep(BaseModel):
    id: str
    label: str
    status: StepStatus = StepStatus.PENDING
    date_completed: dt.datetime | None = None
    document_path: str | None = None  # opaque storage path (signature, upload)


class ComplianceTracker(BaseModel):
    """
    Recorded step statuses for one person, keyed by step id.

    Which steps are *required* is never stored here: it is recomputed from
    the person's role on every read (see app.compliance.required_steps).
    """

    steps: dict[str, ComplianceStep] = Field(default_factory=dict)


class TaskStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"


class Task(BaseModel):
    id: str
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.PENDING
    assigned_date: dt.datetime
    due_date: dt.date | None = None
    assigned_by: str | None = None
    completed_at: dt.datetime | None = None


class Achievement(BaseModel):
    id: str
    title: str
    icon: str = ""
    date_earned: dt.datetime


class RoleAssessment(BaseModel):
    question: str
    answer: str


class Volunteer(BaseModel):
    id: str
    legal_first_name: str
    legal_last_name: str
    preferred_first_name: str | None = None
    preferred_last_name: str | None = None
    email: str
    phone: str = ""
    dob: dt.date | None = None
    gender: str | None = None
    languages_spoken: list[str] = Field(default_factory=list)
    demographics: dict[str, str | bool | list[str]] = Field(default_factory=dict)

    # advisory until the application is approved
    applied_role: Role | None = None
    application_status: ApplicationStatus = ApplicationStatus.PENDING_REVIEW
    role: Role | None = None
    role_assessment: list[RoleAssessment] = Field(default_factory=list)
    review_notes: str | None = None
    reviewed_at: dt.datetime | None = None

    tags: list[str] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)
    achievements: list[Achievement] = Field(default_factory=list)
    compliance: ComplianceTracker = Field(default_factory=ComplianceTracker)
    onboarding_progress: int = Field(default=0, ge=0, le=100)
    hours_contributed: float = Field(default=0, ge=0)

    resume_path: str | None = None
    joined_date: dt.datetime | None = None

    @computed_field
    @property
    def name(self) -> str:
        first = self.preferred_first_name or self.legal_first_name
        last = self.preferred_last_name or self.legal_last_name
        return f"{first} {last}".strip()

    @property
    def authoritative_role(self) -> Role | None:
        """The role access control may rely on; None while under review."""
        if self.application_status != ApplicationStatus.APPROVED:
            return None
        return self.role


# ----------------------------------------------------------------------------
# fundraising
# ----------------------------------------------------------------------------


class ProspectType(StrEnum):
    INDIVIDUAL = "individual"
    CORPORATION = "corporation"
    FOUNDATION = "foundation"
    GOVERNMENT = "government"
    FAITH_ORG = "faith_org"
    OTHER = "other"


class ProspectStatus(StrEnum):
    IDENTIFIED = "identified"
    CONTACTED = "contacted"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DECLINED = "declined"


class OutreachMethod(StrEnum):
    EMAIL = "email"
    PHONE = "phone"
    MEETING = "meeting"
    OTHER = "other"


class DonationType(StrEnum):
    PERSONAL = "personal"
    FUNDRAISED = "fundraised"


class OutreachEntry(BaseModel):
    id: str
    date: dt.datetime
    method: OutreachMethod
    notes: str | None = None


class Prospect(BaseModel):
    id: str
    name: str
    email: str | None = None
    phone: str | None = None
    type: ProspectType = ProspectType.INDIVIDUAL
    relationship: str | None = None
    amount: Decimal
    status: ProspectStatus = ProspectStatus.IDENTIFIED
    notes: str | None = None
    outreach_log: list[OutreachEntry] = Field(default_factory=list)

    @computed_field
    @property
    def last_contact(self) -> dt.datetime | None:
        if not self.outreach_log:
            return None
        return max(entry.date for entry in self.outreach_log)


class DonationEntry(BaseModel):
    id: str
    date: dt.datetime
    amount: Decimal
    type: DonationType
    note: str | None = None


class GiveOrGetProgress(BaseModel):
    person_id: str
    goal: Decimal = Decimal(0)  # 0 = unset
    personal_contribution: Decimal = Decimal(0)
    fundraised: Decimal = Decimal(0)
    raised: Decimal = Decimal(0)
    prospects: list[Prospect] = Field(default_factory=list)
    donation_log: list[DonationEntry] = Field(default_factory=list)

    @computed_field
    @property
    def goal_progress(self) -> float:
        """Percent of goal raised, capped at 100; 0 while the goal is unset."""
        if self.goal <= 0:
            return 0.0
        return min(100.0, float(round(self.raised / self.goal * 100, 1)))

    def totals_from_log(self) -> dict[DonationType, Decimal]:
        totals = {t: Decimal(0) for t in DonationType}
        for entry in self.donation_log:
            totals[entry.type] += entry.amount
        return totals

    @property
    def is_reconciled(self) -> bool:
        totals = self.totals_from_log()
        return (
            self.personal_contribution == totals[DonationType.PERSONAL]
            and self.fundraised == totals[DonationType.FUNDRAISED]
            and self.raised == self.personal_contribution + self.fundraised
        )
