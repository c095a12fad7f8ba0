import datetime as dt
import logging
import uuid
from collections.abc import Callable
from enum import StrEnum

from app.database import InMemoryKeyValueDatabase
from app.errors import InvalidTransition, NotFound, ValidationError
from app.minutes import MinutesApprovalWorkflow, meeting_key
from app.models import (
    RSVP,
    EmergencyMeetingRequest,
    Meeting,
    MeetingStatus,
    RSVPStatus,
)
from app.schemas import MeetingCreate, MeetingUpdate

logger = logging.getLogger(__name__)

NowFn = Callable[[], dt.datetime]
TodayFn = Callable[[], dt.date]


class MeetingView(StrEnum):
    UPCOMING = "upcoming"
    PAST = "past"
    ALL = "all"


def emergency_request_key(request_id: str) -> str:
    return f"emergency_request:{request_id}"


def is_upcoming(meeting: Meeting, today: dt.date) -> bool:
    return meeting.status == MeetingStatus.SCHEDULED and meeting.date >= today


def is_past(meeting: Meeting, today: dt.date) -> bool:
    """
    Past for listing purposes only. A scheduled meeting whose date has gone
    by is shown as past, but its stored status stays "scheduled" until an
    operator completes it.
    """
    if meeting.status == MeetingStatus.COMPLETED:
        return True
    return meeting.status == MeetingStatus.SCHEDULED and meeting.date < today


class MeetingLifecycleManager:
    def __init__(
        self,
        db: InMemoryKeyValueDatabase[str, object],
        *,
        now_fn: NowFn,
        today_fn: TodayFn,
    ) -> None:
        self.db = db
        self.now_fn = now_fn
        self.today_fn = today_fn
        self.minutes = MinutesApprovalWorkflow(db, now_fn=now_fn)

    def get(self, meeting_id: str) -> Meeting:
        meeting = self.db.get(meeting_key(meeting_id))
        if not isinstance(meeting, Meeting):
            raise NotFound(f"Meeting {meeting_id} not found")
        return meeting

    def _mutate(
        self, meeting_id: str, mutate: Callable[[Meeting], None]
    ) -> Meeting:
        updated = self.db.update(meeting_key(meeting_id), mutate)
        if not isinstance(updated, Meeting):
            raise NotFound(f"Meeting {meeting_id} not found")
        return updated

    def schedule_meeting(self, data: MeetingCreate) -> Meeting:
        if not data.title or not data.title.strip():
            raise ValidationError("Meeting title is required")
        if data.date is None:
            raise ValidationError("Meeting date is required")

        meeting = Meeting(
            id=str(uuid.uuid4()),
            title=data.title.strip(),
            date=data.date,
            time=data.time,
            type=data.type,
            status=MeetingStatus.SCHEDULED,
            meeting_link=data.meeting_link,
            agenda=list(data.agenda),
            created_by=data.created_by,
            reason=data.reason,
            created_at=self.now_fn(),
        )
        self.db.put(meeting_key(meeting.id), meeting)
        logger.info(
            "meeting %s scheduled: %r on %s", meeting.id, meeting.title, meeting.date
        )
        return meeting

    def edit_meeting(self, meeting_id: str, changes: MeetingUpdate) -> Meeting:
        fields = changes.model_dump(exclude_unset=True)
        if "title" in fields and not (fields["title"] or "").strip():
            raise ValidationError("Meeting title cannot be blank")
        for name in ("date", "time", "type"):
            if name in fields and fields[name] is None:
                raise ValidationError(f"Meeting {name} cannot be cleared")
        today = self.today_fn()

        def _edit(meeting: Meeting) -> None:
            if meeting.status == MeetingStatus.CANCELLED:
                raise InvalidTransition("Cancelled meetings cannot be edited")
            if (
                meeting.status == MeetingStatus.COMPLETED
                and "date" in fields
                and fields["date"] > today
            ):
                raise InvalidTransition(
                    "A completed meeting cannot be moved to a future date"
                )
            for name, value in fields.items():
                if name == "agenda" and value is None:
                    value = []
                setattr(meeting, name, value)

        meeting = self._mutate(meeting_id, _edit)
        logger.info("meeting %s edited: %s", meeting_id, sorted(fields))
        return meeting

    def record_rsvp(
        self,
        meeting_id: str,
        person_id: str,
        person_name: str,
        status: RSVPStatus,
    ) -> Meeting:
        """Upsert one person's response; a repeat replaces it in place."""

        def _rsvp(meeting: Meeting) -> None:
            if meeting.status == MeetingStatus.CANCELLED:
                raise InvalidTransition("Cannot RSVP to a cancelled meeting")
            entry = RSVP(
                person_id=person_id,
                person_name=person_name,
                status=status,
                responded_at=self.now_fn(),
            )
            for idx, existing in enumerate(meeting.rsvps):
                if existing.person_id == person_id:
                    meeting.rsvps[idx] = entry
                    return
            meeting.rsvps.append(entry)

        return self._mutate(meeting_id, _rsvp)

    def rsvp_summary(self, meeting_id: str) -> dict[str, int]:
        meeting = self.get(meeting_id)
        counts = {s.value: 0 for s in RSVPStatus}
        for r in meeting.rsvps:
            counts[r.status.value] += 1
        counts["total"] = len(meeting.rsvps)
        return counts

    def cancel_meeting(self, meeting_id: str) -> Meeting:
        def _cancel(meeting: Meeting) -> None:
            if meeting.status in (
                MeetingStatus.CANCELLED,
                MeetingStatus.COMPLETED,
            ):
                raise InvalidTransition(
                    f"Cannot cancel a meeting that is {meeting.status}"
                )
            meeting.status = MeetingStatus.CANCELLED

        meeting = self._mutate(meeting_id, _cancel)
        logger.info("meeting %s cancelled", meeting_id)
        return meeting

    def complete_meeting(self, meeting_id: str) -> Meeting:
        """Operator finalization; allowed on or after the meeting date."""
        today = self.today_fn()

        def _complete(meeting: Meeting) -> None:
            if meeting.status not in (
                MeetingStatus.SCHEDULED,
                MeetingStatus.IN_PROGRESS,
            ):
                raise InvalidTransition(
                    f"Cannot complete a meeting that is {meeting.status}"
                )
            if meeting.date > today:
                raise InvalidTransition(
                    "A meeting cannot be completed before its date"
                )
            meeting.status = MeetingStatus.COMPLETED

        meeting = self._mutate(meeting_id, _complete)
        logger.info("meeting %s completed", meeting_id)
        return meeting

    def list_meetings(self, view: MeetingView = MeetingView.ALL) -> list[Meeting]:
        meetings: list[Meeting] = self.db.list_by_prefix(
            "meeting:", lambda v: isinstance(v, Meeting)
        )
        today = self.today_fn()
        if view == MeetingView.UPCOMING:
            meetings = [m for m in meetings if is_upcoming(m, today)]
        elif view == MeetingView.PAST:
            meetings = [m for m in meetings if is_past(m, today)]
        return sorted(meetings, key=lambda m: (m.date, m.time))

    def request_emergency_meeting(
        self,
        reason: str,
        *,
        requested_by: str | None = None,
        requested_by_name: str | None = None,
    ) -> EmergencyMeetingRequest:
        if not reason or not reason.strip():
            raise ValidationError("A reason is required for an emergency meeting")

        request = EmergencyMeetingRequest(
            id=str(uuid.uuid4()),
            reason=reason.strip(),
            requested_by=requested_by,
            requested_by_name=requested_by_name,
            created_at=self.now_fn(),
        )
        self.db.put(emergency_request_key(request.id), request)
        logger.warning(
            "emergency meeting requested by %s: %s",
            requested_by_name or requested_by or "unknown",
            request.reason,
        )
        return request

    def list_emergency_requests(self) -> list[EmergencyMeetingRequest]:
        requests: list[EmergencyMeetingRequest] = self.db.list_by_prefix(
            "emergency_request:", lambda v: isinstance(v, EmergencyMeetingRequest)
        )
        return sorted(requests, key=lambda r: r.created_at)
