"""
Compliance catalogue and eligibility.

Which steps a person needs is a pure function of their role; eligibility is
recomputed from the current step snapshot on every check.
"""

import datetime as dt
import logging
from collections.abc import Callable, Iterable
from enum import StrEnum

from app.database import InMemoryKeyValueDatabase
from app.errors import InvalidStep, NotFound, ValidationError
from app.models import (
    ApplicationStatus,
    ComplianceStep,
    StepStatus,
    Volunteer,
)
from app.roles import Role, is_clinical, is_governance
from app.volunteers import volunteer_key

logger = logging.getLogger(__name__)

NowFn = Callable[[], dt.datetime]

BASE_STEPS: dict[str, str] = {
    "application": "Application",
    "backgroundCheck": "Background Check",
    "hipaaTraining": "HIPAA Training",
    "training": "Baseline Training",
    "orientation": "Orientation",
}

BOARD_FORMS: dict[str, str] = {
    "coi-disclosure": "Conflict of Interest Disclosure Form",
    "confidentiality-agreement": "Board Confidentiality Agreement",
    "code-of-conduct": "Code of Conduct Acknowledgment",
    "commitment-agreement": "Board Member Commitment Agreement",
    "media-authorization": "Media & Public Relations Authorization",
}

CLINICAL_DOCUMENTS: dict[str, str] = {
    "clinicalOnboardingGuide": "Clinical Onboarding & Governance Guide",
    "policiesProcedures": "Clinical Policies & Procedures Manual",
    "screeningConsent": "General Screening Consent Form",
    "standingOrders": "Standing Orders",
}


class Capability(StrEnum):
    DEPLOY_CORE = "deploy_core"
    REGISTER_SHIFT = "register_shift"
    DEPLOY_CLINICAL_EVENT = "deploy_clinical_event"
    BOARD_VOTING = "board_voting"


CAPABILITY_REQUIREMENTS: dict[Capability, frozenset[str]] = {
    Capability.DEPLOY_CORE: frozenset(BASE_STEPS),
    Capability.REGISTER_SHIFT: frozenset({"hipaaTraining"}),
    Capability.DEPLOY_CLINICAL_EVENT: frozenset(
        {"backgroundCheck", "hipaaTraining", "training", *CLINICAL_DOCUMENTS}
    ),
    Capability.BOARD_VOTING: frozenset(
        {"coi-disclosure", "confidentiality-agreement", "code-of-conduct"}
    ),
}


def required_steps(role: Role | None) -> list[ComplianceStep]:
    catalogue = dict(BASE_STEPS)
    if is_governance(role):
        catalogue.update(BOARD_FORMS)
    if is_clinical(role):
        catalogue.update(CLINICAL_DOCUMENTS)
    return [ComplianceStep(id=sid, label=label) for sid, label in catalogue.items()]


def is_satisfied(step: ComplianceStep | None) -> bool:
    return step is not None and step.status in (
        StepStatus.COMPLETED,
        StepStatus.VERIFIED,
    )


def eligibility_for(
    capability: Capability,
    role: Role | None,
    steps: Iterable[ComplianceStep],
) -> bool:
    """
    A capability is granted only if every step it needs belongs to the role's
    catalogue and is satisfied in `steps`.
    """
    needed = CAPABILITY_REQUIREMENTS[capability]
    applicable = {s.id for s in required_steps(role)}
    if not needed <= applicable:
        return False
    by_id = {s.id: s for s in steps}
    return all(is_satisfied(by_id.get(sid)) for sid in needed)


def snapshot(volunteer: Volunteer) -> list[ComplianceStep]:
    """Required steps for the volunteer's role, merged with recorded statuses."""
    recorded = volunteer.compliance.steps
    return [
        recorded.get(step.id, step).model_copy(update={"label": step.label})
        for step in required_steps(volunteer.authoritative_role)
    ]


def initial_steps(
    now: dt.datetime, *, application_completed: bool
) -> dict[str, ComplianceStep]:
    steps = {s.id: s for s in required_steps(None)}
    if application_completed:
        steps["application"].status = StepStatus.COMPLETED
        steps["application"].date_completed = now
    return steps


class ComplianceService:
    def __init__(
        self, db: InMemoryKeyValueDatabase[str, object], *, now_fn: NowFn
    ) -> None:
        self.db = db
        self.now_fn = now_fn

    def _volunteer(self, person_id: str) -> Volunteer:
        volunteer = self.db.get(volunteer_key(person_id))
        if not isinstance(volunteer, Volunteer):
            raise NotFound(f"Volunteer {person_id} not found")
        return volunteer

    def steps_for(self, person_id: str) -> list[ComplianceStep]:
        return snapshot(self._volunteer(person_id))

    def set_step_status(
        self,
        person_id: str,
        step_id: str,
        status: StepStatus,
        *,
        document_path: str | None = None,
    ) -> ComplianceStep:
        """Entry point for external verification (vendor callbacks, training)."""

        def _set(volunteer: Volunteer) -> None:
            catalogue = {s.id: s for s in required_steps(volunteer.authoritative_role)}
            if step_id not in catalogue:
                raise InvalidStep(
                    f"Step '{step_id}' does not apply to role "
                    f"{volunteer.authoritative_role or 'unassigned'}"
                )
            step = volunteer.compliance.steps.get(step_id, catalogue[step_id])
            step.status = status
            step.date_completed = None if status == StepStatus.PENDING else self.now_fn()
            if document_path is not None:
                step.document_path = document_path
            volunteer.compliance.steps[step_id] = step

        volunteer = self.db.update(volunteer_key(person_id), _set)
        if not isinstance(volunteer, Volunteer):
            raise NotFound(f"Volunteer {person_id} not found")
        logger.info("compliance step %s for %s -> %s", step_id, person_id, status)
        return volunteer.compliance.steps[step_id]

    def sign_form(
        self, person_id: str, form_id: str, signature_path: str
    ) -> ComplianceStep:
        if form_id not in BOARD_FORMS:
            raise InvalidStep(f"Unknown board form '{form_id}'")
        if not signature_path.strip():
            raise ValidationError("A signature is required to sign a form")

        volunteer = self._volunteer(person_id)
        current = volunteer.compliance.steps.get(form_id)
        # a re-signature never downgrades a verified form
        status = (
            StepStatus.VERIFIED
            if current is not None and current.status == StepStatus.VERIFIED
            else StepStatus.COMPLETED
        )
        return self.set_step_status(
            person_id, form_id, status, document_path=signature_path
        )

    def signed_form(self, person_id: str, form_id: str) -> ComplianceStep:
        step = self._volunteer(person_id).compliance.steps.get(form_id)
        if form_id not in BOARD_FORMS or step is None or not step.document_path:
            raise NotFound(f"No signature on file for form '{form_id}'")
        return step

    def eligibility(self, person_id: str, capability: Capability) -> bool:
        volunteer = self._volunteer(person_id)
        return eligibility_for(
            capability, volunteer.authoritative_role, snapshot(volunteer)
        )

    def overview(self) -> list[dict]:
        volunteers: list[Volunteer] = self.db.list_by_prefix(
            "volunteer:",
            lambda v: isinstance(v, Volunteer)
            and v.application_status == ApplicationStatus.APPROVED,
        )
        rows = []
        for v in sorted(volunteers, key=lambda v: v.name):
            steps = snapshot(v)
            rows.append(
                {
                    "id": v.id,
                    "name": v.name,
                    "role": v.role,
                    "steps": {s.id: is_satisfied(s) for s in steps},
                    "eligibility": {
                        c.value: eligibility_for(c, v.role, steps) for c in Capability
                    },
                }
            )
        return rows
