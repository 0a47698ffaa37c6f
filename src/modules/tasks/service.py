"""Task service for CRUD operations and the claim/complete/verify lifecycle."""

import logging
from typing import Any

from src.core import db_client
from src.core.clock import now_ms
from src.core.config import constants, settings
from src.core.db_client import sanitize_param
from src.core.errors import AuthorizationError, GateLockedError, InvalidStateError, ValidationError
from src.core.logging import span
from src.domain.task import Task, TaskStatus
from src.domain.user import User
from src.modules.tasks import state_machine
from src.modules.tasks.points import points_for
from src.modules.tasks.progression import lock_status
from src.services import user_service
from src.services.authorization import require_admin, require_family_member, require_same_family


logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "base_points",
        "user_points_override",
        "booking_deadline",
        "completion_deadline",
        "is_boss_task",
        "reference_image",
    }
)


def validate_points(value: Any, *, field: str = "base_points") -> int:
    """Return `value` as task points, raising ValidationError unless it is an integer >= 1."""
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"{field} must be a whole number"
        raise ValidationError(msg)
    if value < constants.MIN_TASK_POINTS:
        msg = f"{field} must be at least {constants.MIN_TASK_POINTS}"
        raise ValidationError(msg)
    return value


def validate_overrides(overrides: dict[str, Any] | None) -> dict[str, int]:
    """Validate a per-user points override mapping (user id -> points)."""
    if overrides is None:
        return {}
    if not isinstance(overrides, dict):
        msg = "user_points_override must be a mapping of user id to points"
        raise ValidationError(msg)
    return {str(user_id): validate_points(points, field=f"override for user {user_id}") for user_id, points in overrides.items()}


def validate_title(title: str | None) -> str:
    """Strip a title and reject it when empty."""
    title = (title or "").strip()
    if not title:
        msg = "Title is required"
        raise ValidationError(msg)
    return title


def _validate_deadline(value: Any, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        msg = f"{field} must be an epoch-millisecond timestamp (0 for none)"
        raise ValidationError(msg)
    return value


def is_booking_expired(task: Task, now: int | None = None) -> bool:
    """Whether an OPEN task's booking deadline is set and has passed."""
    now = now_ms() if now is None else now
    return task.status == TaskStatus.OPEN and task.booking_deadline > 0 and now > task.booking_deadline


def is_overdue(task: Task, now: int | None = None) -> bool:
    """Whether an ASSIGNED task's completion deadline is set and has passed."""
    now = now_ms() if now is None else now
    return task.status == TaskStatus.ASSIGNED and task.completion_deadline > 0 and now > task.completion_deadline


async def create_task(
    *,
    actor: User,
    title: str,
    base_points: int,
    description: str = "",
    user_points_override: dict[str, int] | None = None,
    booking_deadline: int = 0,
    completion_deadline: int = 0,
    is_boss_task: bool = False,
    reference_image: str | None = None,
) -> Task:
    """Create a new OPEN task in the admin's family.

    Args:
        actor: Admin creating the task
        title: Task title (e.g., "Wash Dishes")
        base_points: Points awarded unless overridden for a user (>= 1)
        description: Detailed description
        user_points_override: Per-user points replacing base_points
        booking_deadline: Epoch ms after which the task can't be booked (0 = none)
        completion_deadline: Epoch ms after which an assigned task is overdue (0 = none)
        is_boss_task: Informational boss flag
        reference_image: Opaque reference image payload

    Returns:
        Created task

    Raises:
        AuthorizationError: If the actor is not an admin of a family
        ValidationError: If title or points are missing or invalid
    """
    with span("task_service.create_task"):
        family_id = require_admin(actor)

        task_data: dict[str, Any] = {
            "family_id": int(family_id),
            "title": validate_title(title),
            "description": description or "",
            "base_points": validate_points(base_points),
            "user_points_override": validate_overrides(user_points_override),
            "status": TaskStatus.OPEN,
            "created_by": int(actor.id),
            "created_at": now_ms(),
            "booking_deadline": _validate_deadline(booking_deadline, field="booking_deadline"),
            "completion_deadline": _validate_deadline(completion_deadline, field="completion_deadline"),
            "is_boss_task": bool(is_boss_task),
            "reference_image": reference_image,
        }

        record = await db_client.create_record(collection="tasks", data=task_data)
        logger.info("Created task: %s (%s points)", task_data["title"], base_points, extra={"family_id": family_id})
        return Task.model_validate(record)


async def get_task(*, actor: User, task_id: str) -> Task:
    """Get a task of the actor's family (NotFoundError otherwise)."""
    family_id = require_family_member(actor)
    record = await db_client.get_record(collection="tasks", record_id=task_id)
    return Task.model_validate(require_same_family(record, family_id, collection="tasks"))


async def list_tasks(*, actor: User, status: TaskStatus | None = None) -> list[Task]:
    """List the family's tasks, newest first, optionally filtered by status."""
    with span("task_service.list_tasks"):
        family_id = require_family_member(actor)

        filter_query = f'family_id = "{sanitize_param(family_id)}"'
        if status:
            filter_query += f' && status = "{sanitize_param(status)}"'

        records = await db_client.list_records(
            collection="tasks",
            filter_query=filter_query,
            sort="-created_at,-id",
            per_page=constants.DEFAULT_PER_PAGE_LIMIT,
        )
        return [Task.model_validate(record) for record in records]


async def claim_task(*, actor: User, task_id: str) -> Task:
    """Claim an OPEN task for the actor.

    Raises:
        NotFoundError: If the task doesn't exist in the actor's family
        GateLockedError: If the actor's next monster gate locks this task
        InvalidStateError: If booking deadlines are enforced and this one has passed
        ConflictError: If the task is no longer open (someone else claimed it first)
    """
    with span("task_service.claim_task"):
        task = await get_task(actor=actor, task_id=task_id)

        if task.status == TaskStatus.OPEN:
            lock = lock_status(task, actor)
            if lock.locked:
                logger.info("claim_gate_locked", extra={"task_id": task_id, "user_id": actor.id})
                raise GateLockedError(lock.reason or "Task is locked", required_points=lock.required_points)

            if settings.enforce_booking_deadline and is_booking_expired(task):
                msg = f"The booking deadline for task {task_id} has passed"
                raise InvalidStateError(msg)

        record = await state_machine.transition_to_assigned(
            task_id=task_id,
            family_id=task.family_id,
            assignee_id=actor.id,
        )
        return Task.model_validate(record)


async def _finalize(*, task: Task, extra: dict[str, Any] | None = None) -> tuple[Task, int]:
    """Move an ASSIGNED task to VERIFIED and credit its assignee, all-or-nothing.

    Returns:
        The verified task and the points credited
    """
    async with db_client.transaction():
        record = await state_machine.transition_to_verified(task_id=task.id, family_id=task.family_id, extra=extra)
        verified = Task.model_validate(record)

        points = 0
        if verified.assignee_id:
            points = points_for(verified, verified.assignee_id)
            await user_service.credit_points(user_id=verified.assignee_id, points=points)

    logger.info(
        "Task verified",
        extra={"task_id": verified.id, "assignee_id": verified.assignee_id, "points": points},
    )
    return verified, points


async def complete_task(
    *,
    actor: User,
    task_id: str,
    completion_image: str | None = None,
    image_match_score: int | None = None,
) -> Task:
    """Complete an assigned task and credit the assignee.

    Only the assignee (or an admin of the family) may complete. The completion
    image and match score are stored as supplied.

    Raises:
        AuthorizationError: If the actor is neither the assignee nor an admin
        InvalidStateError: If the task is not ASSIGNED (including already verified)
    """
    with span("task_service.complete_task"):
        task = await get_task(actor=actor, task_id=task_id)

        if task.assignee_id != actor.id and not actor.is_admin:
            logger.warning("complete_denied", extra={"task_id": task_id, "user_id": actor.id})
            msg = "Only the assignee can complete this task"
            raise AuthorizationError(msg)

        extra: dict[str, Any] = {}
        if completion_image is not None:
            extra["completion_image"] = completion_image
        if image_match_score is not None:
            extra["image_match_score"] = image_match_score

        verified, _ = await _finalize(task=task, extra=extra)
        return verified


async def verify_task(*, actor: User, task_id: str) -> Task:
    """Admin confirmation of an assigned task; credits the assignee exactly once."""
    with span("task_service.verify_task"):
        require_admin(actor)
        task = await get_task(actor=actor, task_id=task_id)

        verified, _ = await _finalize(task=task)
        return verified


async def edit_task(*, actor: User, task_id: str, fields: dict[str, Any]) -> Task:
    """Admin partial update of a task's descriptive fields.

    Status, assignee and already-credited scores are never touched.
    """
    with span("task_service.edit_task"):
        require_admin(actor)
        task = await get_task(actor=actor, task_id=task_id)

        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            msg = f"Fields cannot be edited: {', '.join(sorted(unknown))}"
            raise ValidationError(msg)

        updates: dict[str, Any] = {}
        for key, value in fields.items():
            if key == "title":
                updates[key] = validate_title(value)
            elif key == "base_points":
                updates[key] = validate_points(value)
            elif key == "user_points_override":
                updates[key] = validate_overrides(value)
            elif key in {"booking_deadline", "completion_deadline"}:
                updates[key] = _validate_deadline(value, field=key)
            elif key == "is_boss_task":
                updates[key] = bool(value)
            elif key == "description":
                updates[key] = value or ""
            else:
                updates[key] = value

        if not updates:
            return task

        record = await db_client.update_record(collection="tasks", record_id=task.id, data=updates)
        logger.info("Edited task %s", task.id, extra={"fields": sorted(updates)})
        return Task.model_validate(record)


async def delete_task(*, actor: User, task_id: str) -> None:
    """Admin hard delete; scores already credited are untouched."""
    with span("task_service.delete_task"):
        require_admin(actor)
        task = await get_task(actor=actor, task_id=task_id)

        await db_client.delete_record(collection="tasks", record_id=task.id)
        logger.info("Deleted task %s", task.id, extra={"status": str(task.status)})
