"""
Applicant -> volunteer transition.

    pendingReview --approve--> approved
    pendingReview --reject---> rejected

Both outcomes are final; someone who re-applies gets a new record. Staff can
also add a volunteer directly, which skips review entirely.
"""

import datetime as dt
import logging
import uuid
from collections.abc import Callable

from app.compliance import initial_steps
from app.database import InMemoryKeyValueDatabase
from app.errors import InvalidTransition, NotFound, ValidationError
from app.models import ApplicationStatus, ComplianceTracker, Volunteer
from app.roles import Role
from app.schemas import (
    ApplicationSubmission,
    ReviewAction,
    VolunteerCreate,
    VolunteerIdentity,
)
from app.volunteers import volunteer_key

logger = logging.getLogger(__name__)

NowFn = Callable[[], dt.datetime]


def _require_identity(data: VolunteerIdentity) -> None:
    missing = [
        name
        for name in ("legal_first_name", "legal_last_name", "email")
        if not getattr(data, name).strip()
    ]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


class ApplicationReviewEngine:
    def __init__(
        self, db: InMemoryKeyValueDatabase[str, object], *, now_fn: NowFn
    ) -> None:
        self.db = db
        self.now_fn = now_fn

    def submit_application(self, data: ApplicationSubmission) -> Volunteer:
        _require_identity(data)
        now = self.now_fn()

        volunteer = Volunteer(
            id=str(uuid.uuid4()),
            **data.model_dump(
                exclude={"applied_role", "role_assessment", "resume_path"}
            ),
            applied_role=data.applied_role,
            application_status=ApplicationStatus.PENDING_REVIEW,
            role=None,
            role_assessment=list(data.role_assessment),
            resume_path=data.resume_path,
            compliance=ComplianceTracker(
                steps=initial_steps(now, application_completed=True)
            ),
        )
        self.db.put(volunteer_key(volunteer.id), volunteer)
        logger.info(
            "application %s submitted for role %s",
            volunteer.id,
            volunteer.applied_role or "unspecified",
        )
        return volunteer

    def review_application(
        self, volunteer_id: str, action: ReviewAction, notes: str = ""
    ) -> Volunteer:
        def _review(volunteer: Volunteer) -> None:
            if volunteer.application_status != ApplicationStatus.PENDING_REVIEW:
                raise InvalidTransition(
                    f"Application {volunteer_id} was already "
                    f"{volunteer.application_status}"
                )
            now = self.now_fn()
            volunteer.review_notes = notes or ""
            volunteer.reviewed_at = now
            if action == ReviewAction.APPROVE:
                volunteer.application_status = ApplicationStatus.APPROVED
                volunteer.role = volunteer.applied_role or Role.CORE_VOLUNTEER
                volunteer.joined_date = volunteer.joined_date or now
            else:
                volunteer.application_status = ApplicationStatus.REJECTED

        volunteer = self.db.update(volunteer_key(volunteer_id), _review)
        if not isinstance(volunteer, Volunteer):
            raise NotFound(f"Application {volunteer_id} not found")
        logger.info(
            "application %s reviewed: %s", volunteer_id, volunteer.application_status
        )
        return volunteer

    def add_volunteer(self, data: VolunteerCreate) -> Volunteer:
        """Staff-entered record; treated as already approved."""
        _require_identity(data)
        now = self.now_fn()

        volunteer = Volunteer(
            id=str(uuid.uuid4()),
            **data.model_dump(exclude={"role", "added_by"}),
            applied_role=data.role,
            application_status=ApplicationStatus.APPROVED,
            role=data.role,
            joined_date=now,
            compliance=ComplianceTracker(
                steps=initial_steps(now, application_completed=False)
            ),
        )
        self.db.put(volunteer_key(volunteer.id), volunteer)
        logger.info(
            "volunteer %s added directly by %s as %s",
            volunteer.id,
            data.added_by or "staff",
            volunteer.role,
        )
        return volunteer

    def list_applications(
        self, status: ApplicationStatus = ApplicationStatus.PENDING_REVIEW
    ) -> list[Volunteer]:
        applications: list[Volunteer] = self.db.list_by_prefix(
            "volunteer:",
            lambda v: isinstance(v, Volunteer) and v.application_status == status,
        )
        return sorted(applications, key=lambda v: v.name)
