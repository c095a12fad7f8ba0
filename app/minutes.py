"""
Minutes approval for a single meeting.

    none --save--> draft --approve--> approved --reopen--> draft
                   draft --request revision (note)--> draft

A record with status "pending" has nothing written yet and behaves as none.
"""

import datetime as dt
import logging
from collections.abc import Callable
from typing import Literal

from app.database import InMemoryKeyValueDatabase
from app.errors import InvalidTransition, NotFound, ValidationError
from app.models import Meeting, MinutesRecord, MinutesStatus

logger = logging.getLogger(__name__)

NowFn = Callable[[], dt.datetime]
MinutesState = Literal["none", "draft", "approved"]

MINUTES_TEMPLATE = """{organization}
BOARD OF DIRECTORS - MEETING MINUTES

Date: [DATE]
Time: [TIME]
Location: [LOCATION / video link]
Type: [Regular / Special / Emergency]

PRESIDING: [Board Chair Name]
SECRETARY: [Secretary Name]

I. CALL TO ORDER
The meeting was called to order at [TIME] by [Chair Name].

II. ROLL CALL / ATTENDANCE
Present: [Names]
Absent: [Names]
Guests: [Names, if any]
Quorum: [Yes/No]

III. APPROVAL OF PREVIOUS MINUTES
Motion to approve the minutes of [Previous Meeting Date]:
  Moved by: [Name]
  Seconded by: [Name]
  Vote: [Unanimous / For-Against-Abstain]
  Result: [Approved / Tabled]

IV. REPORTS
A. Chair's Report
B. Executive Director's Report
C. Treasurer's / Finance Report
D. Committee Reports

V. OLD BUSINESS
VI. NEW BUSINESS

VII. MOTIONS & VOTES
Motion: [Description]
  Moved by: [Name]
  Seconded by: [Name]
  Vote: [For-Against-Abstain]
  Result: [Passed / Failed / Tabled]

VIII. ACTION ITEMS
[ ] [Action item] - Assigned to: [Name] - Due: [Date]

IX. ANNOUNCEMENTS

X. ADJOURNMENT
Meeting adjourned at [TIME].
Next meeting: [Date, Time]

Respectfully submitted,
[Secretary Name], Board Secretary
Date approved: [Date]
"""


def meeting_key(meeting_id: str) -> str:
    return f"meeting:{meeting_id}"


def minutes_state(meeting: Meeting) -> MinutesState:
    record = meeting.minutes
    if record is None or record.status == MinutesStatus.PENDING:
        return "none"
    if record.status == MinutesStatus.APPROVED:
        return "approved"
    return "draft"


def render_template(organization: str) -> str:
    return MINUTES_TEMPLATE.format(organization=organization.upper())


class MinutesApprovalWorkflow:
    def __init__(
        self, db: InMemoryKeyValueDatabase[str, object], *, now_fn: NowFn
    ) -> None:
        self.db = db
        self.now_fn = now_fn

    def _mutate(
        self, meeting_id: str, mutate: Callable[[Meeting], None]
    ) -> Meeting:
        updated = self.db.update(meeting_key(meeting_id), mutate)
        if not isinstance(updated, Meeting):
            raise NotFound(f"Meeting {meeting_id} not found")
        return updated

    def save_draft(self, meeting_id: str, content: str) -> Meeting:
        if not content.strip():
            raise ValidationError("Minutes content is required")

        def _save(meeting: Meeting) -> None:
            state = minutes_state(meeting)
            if state == "approved":
                raise InvalidTransition(
                    "Approved minutes must be reopened before editing"
                )
            note = meeting.minutes.revision_note if meeting.minutes else None
            meeting.minutes = MinutesRecord(
                content=content,
                status=MinutesStatus.DRAFT,
                revision_note=note,
                updated_at=self.now_fn(),
            )

        meeting = self._mutate(meeting_id, _save)
        logger.info("minutes draft saved for meeting %s", meeting_id)
        return meeting

    def approve(self, meeting_id: str) -> Meeting:
        def _approve(meeting: Meeting) -> None:
            state = minutes_state(meeting)
            if state != "draft":
                raise InvalidTransition(
                    f"Cannot approve minutes in state '{state}'"
                )
            assert meeting.minutes is not None
            now = self.now_fn()
            meeting.minutes.status = MinutesStatus.APPROVED
            meeting.minutes.approved_at = now
            meeting.minutes.updated_at = now

        meeting = self._mutate(meeting_id, _approve)
        logger.info("minutes approved for meeting %s", meeting_id)
        return meeting

    def request_revision(self, meeting_id: str, note: str) -> Meeting:
        def _revise(meeting: Meeting) -> None:
            state = minutes_state(meeting)
            if state != "draft":
                raise InvalidTransition(
                    f"Cannot request revision of minutes in state '{state}'"
                )
            if not note.strip():
                raise ValidationError("A revision note is required")
            assert meeting.minutes is not None
            meeting.minutes.revision_note = note
            meeting.minutes.updated_at = self.now_fn()

        meeting = self._mutate(meeting_id, _revise)
        logger.info("revision requested for minutes of meeting %s", meeting_id)
        return meeting

    def reopen(self, meeting_id: str) -> Meeting:
        def _reopen(meeting: Meeting) -> None:
            state = minutes_state(meeting)
            if state != "approved":
                raise InvalidTransition(
                    f"Only approved minutes can be reopened (state '{state}')"
                )
            assert meeting.minutes is not None
            meeting.minutes.status = MinutesStatus.DRAFT
            meeting.minutes.approved_at = None
            meeting.minutes.updated_at = self.now_fn()

        meeting = self._mutate(meeting_id, _reopen)
        logger.info("approved minutes reopened for meeting %s", meeting_id)
        return meeting

    def content_for_rendering(self, meeting_id: str) -> str:
        meeting = self.db.get(meeting_key(meeting_id))
        if not isinstance(meeting, Meeting):
            raise NotFound(f"Meeting {meeting_id} not found")
        if minutes_state(meeting) == "none":
            raise NotFound(f"No minutes recorded for meeting {meeting_id}")
        assert meeting.minutes is not None
        return meeting.minutes.content
