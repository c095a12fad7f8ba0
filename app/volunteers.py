import datetime as dt
import logging
import math
import uuid
from collections.abc import Callable

from app.database import InMemoryKeyValueDatabase
from app.errors import InvalidTransition, NotFound, ValidationError
from app.models import ApplicationStatus, Task, TaskStatus, Volunteer
from app.schemas import TaskCreate

logger = logging.getLogger(__name__)

NowFn = Callable[[], dt.datetime]


def volunteer_key(volunteer_id: str) -> str:
    return f"volunteer:{volunteer_id}"


class VolunteerDirectory:
    """Manager-side edits to volunteer records."""

    def __init__(
        self, db: InMemoryKeyValueDatabase[str, object], *, now_fn: NowFn
    ) -> None:
        self.db = db
        self.now_fn = now_fn

    def get(self, volunteer_id: str) -> Volunteer:
        volunteer = self.db.get(volunteer_key(volunteer_id))
        if not isinstance(volunteer, Volunteer):
            raise NotFound(f"Volunteer {volunteer_id} not found")
        return volunteer

    def list_volunteers(
        self, status: ApplicationStatus | None = None
    ) -> list[Volunteer]:
        volunteers: list[Volunteer] = self.db.list_by_prefix(
            "volunteer:",
            lambda v: isinstance(v, Volunteer)
            and (status is None or v.application_status == status),
        )
        return sorted(volunteers, key=lambda v: v.name)

    def _mutate(
        self, volunteer_id: str, mutate: Callable[[Volunteer], None]
    ) -> Volunteer:
        updated = self.db.update(volunteer_key(volunteer_id), mutate)
        if not isinstance(updated, Volunteer):
            raise NotFound(f"Volunteer {volunteer_id} not found")
        return updated

    def assign_task(self, volunteer_id: str, data: TaskCreate) -> Task:
        if not data.title.strip():
            raise ValidationError("Task title is required")

        task = Task(
            id=f"task-{uuid.uuid4().hex[:12]}",
            title=data.title.strip(),
            description=data.description,
            assigned_date=self.now_fn(),
            due_date=data.due_date,
            assigned_by=data.assigned_by,
        )
        self._mutate(volunteer_id, lambda v: v.tasks.append(task))
        logger.info("task %s assigned to %s", task.id, volunteer_id)
        return task

    def complete_task(self, volunteer_id: str, task_id: str) -> Task:
        def _complete(volunteer: Volunteer) -> None:
            task = next((t for t in volunteer.tasks if t.id == task_id), None)
            if task is None:
                raise NotFound(f"Task {task_id} not found")
            if task.status == TaskStatus.COMPLETED:
                raise InvalidTransition(f"Task {task_id} is already completed")
            task.status = TaskStatus.COMPLETED
            task.completed_at = self.now_fn()

        volunteer = self._mutate(volunteer_id, _complete)
        return next(t for t in volunteer.tasks if t.id == task_id)

    def add_tag(self, volunteer_id: str, tag: str) -> Volunteer:
        tag = tag.strip()
        if not tag:
            raise ValidationError("Tag cannot be blank")

        def _add(volunteer: Volunteer) -> None:
            if tag not in volunteer.tags:
                volunteer.tags.append(tag)

        return self._mutate(volunteer_id, _add)

    def remove_tag(self, volunteer_id: str, tag: str) -> Volunteer:
        def _remove(volunteer: Volunteer) -> None:
            volunteer.tags = [t for t in volunteer.tags if t != tag]

        return self._mutate(volunteer_id, _remove)

    def log_hours(self, volunteer_id: str, hours: float) -> Volunteer:
        if not math.isfinite(hours) or hours <= 0:
            raise ValidationError("Hours must be a positive number")

        def _log(volunteer: Volunteer) -> None:
            volunteer.hours_contributed += hours

        return self._mutate(volunteer_id, _log)

    def set_onboarding_progress(self, volunteer_id: str, progress: int) -> Volunteer:
        if not 0 <= progress <= 100:
            raise ValidationError("Onboarding progress must be between 0 and 100")

        def _set(volunteer: Volunteer) -> None:
            volunteer.onboarding_progress = progress

        return self._mutate(volunteer_id, _set)
