import datetime as dt

import pytest
from httpx import AsyncClient

from app.errors import InvalidTransition, NotFound, ValidationError
from app.minutes import meeting_key, minutes_state, render_template
from app.models import Meeting, MinutesStatus
from app.schemas import MeetingCreate


@pytest.fixture
def meeting(meetings) -> Meeting:
    return meetings.schedule_meeting(
        MeetingCreate(title="Q3 Board Meeting", date=dt.date(2025, 7, 10))
    )


def _stored(db, meeting_id: str) -> Meeting:
    return db.get(meeting_key(meeting_id))


def test_new_meeting_has_no_minutes(meeting) -> None:
    assert meeting.minutes is None
    assert minutes_state(meeting) == "none"


def test_approve_without_draft_is_rejected(meetings, meeting, db) -> None:
    with pytest.raises(InvalidTransition):
        meetings.minutes.approve(meeting.id)
    assert _stored(db, meeting.id).minutes is None


def test_draft_then_approve(meetings, meeting, clock) -> None:
    drafted = meetings.minutes.save_draft(meeting.id, "I. CALL TO ORDER ...")
    assert minutes_state(drafted) == "draft"
    assert drafted.minutes.content == "I. CALL TO ORDER ..."

    approved = meetings.minutes.approve(meeting.id)
    assert approved.minutes.status == MinutesStatus.APPROVED
    assert approved.minutes.approved_at == clock.now
    assert approved.minutes.content == "I. CALL TO ORDER ..."


def test_approving_twice_is_rejected(meetings, meeting, db) -> None:
    meetings.minutes.save_draft(meeting.id, "text")
    first = meetings.minutes.approve(meeting.id)

    with pytest.raises(InvalidTransition):
        meetings.minutes.approve(meeting.id)
    assert _stored(db, meeting.id).minutes == first.minutes


def test_blank_draft_is_rejected(meetings, meeting, db) -> None:
    with pytest.raises(ValidationError):
        meetings.minutes.save_draft(meeting.id, "   ")
    assert _stored(db, meeting.id).minutes is None


def test_revision_needs_a_note(meetings, meeting, db) -> None:
    with pytest.raises(InvalidTransition):
        meetings.minutes.request_revision(meeting.id, "fix the vote tally")

    meetings.minutes.save_draft(meeting.id, "draft one")
    with pytest.raises(ValidationError):
        meetings.minutes.request_revision(meeting.id, "  ")
    assert _stored(db, meeting.id).minutes.revision_note is None

    revised = meetings.minutes.request_revision(meeting.id, "fix the vote tally")
    assert minutes_state(revised) == "draft"
    assert revised.minutes.revision_note == "fix the vote tally"

    # the note survives the next save until someone overwrites it
    resaved = meetings.minutes.save_draft(meeting.id, "draft two")
    assert resaved.minutes.content == "draft two"
    assert resaved.minutes.revision_note == "fix the vote tally"


def test_approved_minutes_are_frozen_until_reopened(meetings, meeting, db) -> None:
    meetings.minutes.save_draft(meeting.id, "final")
    meetings.minutes.approve(meeting.id)

    with pytest.raises(InvalidTransition):
        meetings.minutes.save_draft(meeting.id, "sneaky edit")
    with pytest.raises(InvalidTransition):
        meetings.minutes.request_revision(meeting.id, "too late")
    assert _stored(db, meeting.id).minutes.content == "final"

    reopened = meetings.minutes.reopen(meeting.id)
    assert minutes_state(reopened) == "draft"
    assert reopened.minutes.approved_at is None

    edited = meetings.minutes.save_draft(meeting.id, "amended")
    assert edited.minutes.content == "amended"


def test_reopen_requires_approved(meetings, meeting) -> None:
    with pytest.raises(InvalidTransition):
        meetings.minutes.reopen(meeting.id)
    meetings.minutes.save_draft(meeting.id, "text")
    with pytest.raises(InvalidTransition):
        meetings.minutes.reopen(meeting.id)


def test_unknown_meeting(meetings) -> None:
    with pytest.raises(NotFound):
        meetings.minutes.save_draft("missing", "text")
    with pytest.raises(NotFound):
        meetings.minutes.approve("missing")
    with pytest.raises(NotFound):
        meetings.minutes.content_for_rendering("missing")


def test_nothing_to_render_without_minutes(meetings, meeting) -> None:
    with pytest.raises(NotFound):
        meetings.minutes.content_for_rendering(meeting.id)
    meetings.minutes.save_draft(meeting.id, "text")
    assert meetings.minutes.content_for_rendering(meeting.id) == "text"


def test_template_names_the_organization() -> None:
    template = render_template("Health Matters Clinic")
    assert template.startswith("HEALTH MATTERS CLINIC\n")
    assert "I. CALL TO ORDER" in template
    assert "X. ADJOURNMENT" in template


@pytest.mark.asyncio
async def test_minutes_routes(client: AsyncClient) -> None:
    resp = await client.get("/minutes/template")
    assert resp.status_code == 200
    assert "MEETING MINUTES" in resp.json()["template"]

    meeting = (
        await client.post("/meetings", json={"title": "CAB", "date": "2025-07-10"})
    ).json()
    base = f"/meetings/{meeting['id']}/minutes"

    resp = await client.post(f"{base}/approve")
    assert resp.status_code == 409

    resp = await client.get(f"{base}/document")
    assert resp.status_code == 404

    resp = await client.put(base, json={"content": "Quorum present."})
    assert resp.status_code == 200
    assert resp.json()["minutes"]["status"] == "draft"

    resp = await client.post(f"{base}/revision", json={"note": ""})
    assert resp.status_code == 422

    resp = await client.post(f"{base}/approve")
    assert resp.status_code == 200
    assert resp.json()["minutes"]["status"] == "approved"

    resp = await client.get(f"{base}/document")
    assert resp.status_code == 200
    doc = resp.json()
    assert doc["kind"] == "minutes"
    assert f"/minutes/{meeting['id']}.pdf?rev=" in doc["download_url"]
    assert doc["download_url"].endswith(doc["revision"])

    resp = await client.post(f"{base}/reopen")
    assert resp.status_code == 200
    assert resp.json()["minutes"]["status"] == "draft"
