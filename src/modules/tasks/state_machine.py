"""State transition functions for the task lifecycle.

Every transition is a single conditional update keyed on the current status, so
two requests racing on the same task can never both succeed.
"""

import logging
from typing import Any

from src.core import db_client
from src.core.db_client import sanitize_param
from src.core.errors import ConflictError, InvalidStateError, NotFoundError
from src.core.logging import span
from src.domain.task import TaskStatus


logger = logging.getLogger(__name__)


TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.OPEN: {TaskStatus.ASSIGNED},
    TaskStatus.ASSIGNED: {TaskStatus.VERIFIED},
    TaskStatus.COMPLETED: {TaskStatus.VERIFIED},
    TaskStatus.VERIFIED: set(),
}


def can_transition(current: TaskStatus, target: TaskStatus) -> bool:
    """Whether `current -> target` is a legal transition."""
    return target in TRANSITIONS.get(current, set())


async def _load_in_family(*, task_id: str, family_id: str) -> dict[str, Any]:
    task = await db_client.get_record(collection="tasks", record_id=task_id)
    if str(task["family_id"]) != str(family_id):
        msg = f"Task not found: {task_id}"
        raise NotFoundError(msg)
    return task


def _guard(*, family_id: str, status: TaskStatus) -> str:
    return f'family_id = "{sanitize_param(family_id)}" && status = "{status}"'


async def transition_to_assigned(*, task_id: str, family_id: str, assignee_id: str) -> dict[str, Any]:
    """Claim an OPEN task for `assignee_id` (claim WHERE status = OPEN)."""
    with span("task_state_machine.transition_to_assigned"):
        updated = await db_client.update_record_if(
            collection="tasks",
            record_id=task_id,
            data={"status": TaskStatus.ASSIGNED, "assignee_id": int(assignee_id)},
            filter_query=_guard(family_id=family_id, status=TaskStatus.OPEN),
        )
        if updated is None:
            task = await _load_in_family(task_id=task_id, family_id=family_id)
            msg = f"Task {task_id} is no longer open (status: {task['status']})"
            logger.info("claim_lost", extra={"task_id": task_id, "user_id": assignee_id, "status": task["status"]})
            raise ConflictError(msg)

        logger.info("Transitioned task %s to ASSIGNED (assignee: %s)", task_id, assignee_id)
        return updated


async def transition_to_verified(
    *,
    task_id: str,
    family_id: str,
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Move an ASSIGNED task to VERIFIED, storing `extra` fields in the same update.

    Both completion by the assignee and verification by an admin go through this
    one guarded update, which is what makes point crediting happen exactly once.
    """
    with span("task_state_machine.transition_to_verified"):
        updated = await db_client.update_record_if(
            collection="tasks",
            record_id=task_id,
            data={"status": TaskStatus.VERIFIED, **(extra or {})},
            filter_query=_guard(family_id=family_id, status=TaskStatus.ASSIGNED),
        )
        if updated is None:
            task = await _load_in_family(task_id=task_id, family_id=family_id)
            current = TaskStatus(task["status"])
            if current == TaskStatus.VERIFIED:
                msg = f"Task {task_id} is already verified"
            elif not can_transition(current, TaskStatus.VERIFIED):
                msg = f"Cannot verify: task {task_id} is in {current} state"
            else:
                msg = f"Task {task_id} changed while being verified (status: {current})"
            raise InvalidStateError(msg)

        logger.info("Transitioned task %s to VERIFIED", task_id)
        return updated
