import pytest
from httpx import AsyncClient

from app.compliance import Capability
from app.errors import InvalidTransition, NotFound, ValidationError
from app.models import ApplicationStatus, StepStatus, TaskStatus
from app.roles import Role
from app.schemas import ReviewAction, TaskCreate
from app.volunteers import volunteer_key


def test_submit_application_is_pending_with_application_step_done(
    applications, compliance, application_for, clock
) -> None:
    applicant = applications.submit_application(application_for(Role.BOARD_MEMBER))

    assert applicant.application_status == ApplicationStatus.PENDING_REVIEW
    assert applicant.role is None
    assert applicant.applied_role == Role.BOARD_MEMBER
    assert applicant.authoritative_role is None

    step = applicant.compliance.steps["application"]
    assert step.status == StepStatus.COMPLETED
    assert step.date_completed == clock.now

    # the applied role grants nothing yet: only the base catalogue applies
    steps = compliance.steps_for(applicant.id)
    assert [s.id for s in steps] == [
        "application",
        "backgroundCheck",
        "hipaaTraining",
        "training",
        "orientation",
    ]
    assert [a.id for a in applications.list_applications()] == [applicant.id]


def test_submit_requires_identity(applications, application_for, db) -> None:
    data = application_for(Role.CORE_VOLUNTEER).model_copy(update={"email": " "})
    with pytest.raises(ValidationError):
        applications.submit_application(data)
    assert len(db) == 0


def test_approve_assigns_applied_role(
    applications, compliance, application_for, clock
) -> None:
    applicant = applications.submit_application(application_for(Role.BOARD_MEMBER))

    approved = applications.review_application(
        applicant.id, ReviewAction.APPROVE, "Strong nonprofit background"
    )

    assert approved.application_status == ApplicationStatus.APPROVED
    assert approved.role == Role.BOARD_MEMBER
    assert approved.authoritative_role == Role.BOARD_MEMBER
    assert approved.review_notes == "Strong nonprofit background"
    assert approved.reviewed_at == clock.now
    assert approved.joined_date == clock.now

    # approval never completes onboarding by itself
    steps = {s.id: s for s in compliance.steps_for(applicant.id)}
    assert steps["backgroundCheck"].status == StepStatus.PENDING
    assert "coi-disclosure" in steps
    assert compliance.eligibility(applicant.id, Capability.DEPLOY_CORE) is False
    assert compliance.eligibility(applicant.id, Capability.BOARD_VOTING) is False


def test_approve_without_applied_role_falls_back_to_core(
    applications, application_for
) -> None:
    applicant = applications.submit_application(application_for(None))
    approved = applications.review_application(applicant.id, ReviewAction.APPROVE)
    assert approved.role == Role.CORE_VOLUNTEER


def test_review_is_final(applications, application_for, db) -> None:
    applicant = applications.submit_application(application_for(Role.MEDICAL_ADMIN))
    applications.review_application(applicant.id, ReviewAction.APPROVE)

    with pytest.raises(InvalidTransition):
        applications.review_application(applicant.id, ReviewAction.REJECT)

    stored = db.get(volunteer_key(applicant.id))
    assert stored.application_status == ApplicationStatus.APPROVED
    assert stored.role == Role.MEDICAL_ADMIN


def test_reject_keeps_role_unset(applications, application_for) -> None:
    applicant = applications.submit_application(application_for(Role.BOARD_MEMBER))

    rejected = applications.review_application(
        applicant.id, ReviewAction.REJECT, "Not a fit this cycle"
    )
    assert rejected.application_status == ApplicationStatus.REJECTED
    assert rejected.role is None
    assert rejected.authoritative_role is None
    assert rejected.review_notes == "Not a fit this cycle"

    with pytest.raises(InvalidTransition):
        applications.review_application(applicant.id, ReviewAction.APPROVE)

    assert applications.list_applications() == []
    assert [v.id for v in applications.list_applications(ApplicationStatus.REJECTED)] == [
        applicant.id
    ]


def test_review_unknown_application(applications) -> None:
    with pytest.raises(NotFound):
        applications.review_application("missing", ReviewAction.APPROVE)


def test_manual_add_is_approved_with_nothing_completed(core_volunteer) -> None:
    assert core_volunteer.application_status == ApplicationStatus.APPROVED
    assert core_volunteer.role == Role.CORE_VOLUNTEER
    assert all(
        s.status == StepStatus.PENDING for s in core_volunteer.compliance.steps.values()
    )


def test_tasks(volunteers, core_volunteer, clock) -> None:
    with pytest.raises(ValidationError):
        volunteers.assign_task(core_volunteer.id, TaskCreate(title=""))

    task = volunteers.assign_task(
        core_volunteer.id, TaskCreate(title="Upload HIPAA certificate")
    )
    assert task.id.startswith("task-")
    assert task.status == TaskStatus.PENDING
    assert task.assigned_date == clock.now

    done = volunteers.complete_task(core_volunteer.id, task.id)
    assert done.status == TaskStatus.COMPLETED
    assert done.completed_at == clock.now

    with pytest.raises(InvalidTransition):
        volunteers.complete_task(core_volunteer.id, task.id)
    with pytest.raises(NotFound):
        volunteers.complete_task(core_volunteer.id, "task-nope")
    with pytest.raises(NotFound):
        volunteers.assign_task("missing", TaskCreate(title="x"))


def test_tags_behave_like_a_set(volunteers, core_volunteer) -> None:
    volunteers.add_tag(core_volunteer.id, "spanish")
    tagged = volunteers.add_tag(core_volunteer.id, " spanish ")
    assert tagged.tags == ["spanish"]

    untagged = volunteers.remove_tag(core_volunteer.id, "spanish")
    assert untagged.tags == []
    # removing an absent tag is a no-op
    assert volunteers.remove_tag(core_volunteer.id, "spanish").tags == []


def test_hours_and_onboarding_progress(volunteers, core_volunteer) -> None:
    with pytest.raises(ValidationError):
        volunteers.log_hours(core_volunteer.id, 0)
    for bad in (float("nan"), float("inf"), -1.5):
        with pytest.raises(ValidationError):
            volunteers.log_hours(core_volunteer.id, bad)
    volunteers.log_hours(core_volunteer.id, 2.5)
    assert volunteers.log_hours(core_volunteer.id, 4).hours_contributed == 6.5

    with pytest.raises(ValidationError):
        volunteers.set_onboarding_progress(core_volunteer.id, 101)
    assert volunteers.set_onboarding_progress(core_volunteer.id, 60).onboarding_progress == 60


@pytest.mark.asyncio
async def test_review_over_http_notifies(client: AsyncClient, notifier_mocks) -> None:
    resp = await client.post(
        "/applications",
        json={
            "legal_first_name": "Ada",
            "legal_last_name": "Okafor",
            "email": "ada@example.org",
            "applied_role": "Board Member",
        },
    )
    assert resp.status_code == 200
    applicant = resp.json()
    assert applicant["application_status"] == "pendingReview"
    assert applicant["role"] is None
    assert applicant["name"] == "Ada Okafor"

    pending = (await client.get("/applications")).json()
    assert [a["id"] for a in pending] == [applicant["id"]]

    resp = await client.post(
        f"/applications/{applicant['id']}/review",
        json={"action": "approve", "notes": "Welcome aboard"},
    )
    assert resp.status_code == 200
    assert resp.json()["role"] == "Board Member"
    assert notifier_mocks["application_reviewed"].call_count == 1

    resp = await client.post(
        f"/applications/{applicant['id']}/review", json={"action": "reject"}
    )
    assert resp.status_code == 409
    assert notifier_mocks["application_reviewed"].call_count == 1

    stored = (await client.get(f"/volunteers/{applicant['id']}")).json()
    assert stored["application_status"] == "approved"


@pytest.mark.asyncio
async def test_manual_add_over_http(client: AsyncClient, notifier_mocks) -> None:
    resp = await client.post(
        "/volunteers",
        json={
            "legal_first_name": "Luis",
            "legal_last_name": "Ortega",
            "email": "luis@example.org",
            "role": "Outreach Volunteer",
        },
    )
    assert resp.status_code == 200
    volunteer = resp.json()
    assert volunteer["application_status"] == "approved"
    notifier_mocks["volunteer_added"].assert_called_once()

    resp = await client.post(
        f"/volunteers/{volunteer['id']}/tasks", json={"title": "Shadow a screening"}
    )
    assert resp.status_code == 200
    task_id = resp.json()["id"]

    resp = await client.post(f"/volunteers/{volunteer['id']}/tasks/{task_id}/complete")
    assert resp.json()["status"] == "completed"

    resp = await client.post(f"/volunteers/{volunteer['id']}/hours", json={"hours": -1})
    assert resp.status_code == 422

    listed = (await client.get("/volunteers", params={"status": "approved"})).json()
    assert [v["id"] for v in listed] == [volunteer["id"]]

    resp = await client.get("/volunteers/missing")
    assert resp.status_code == 404
