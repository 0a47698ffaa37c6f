"""Unit tests for guarded task transitions."""

import pytest

from src.core.errors import ConflictError, InvalidStateError, NotFoundError
from src.domain.task import TaskStatus
from src.modules.tasks import service as task_service, state_machine


@pytest.mark.unit
class TestCanTransition:
    """Tests for the transition table."""

    @pytest.mark.parametrize(
        ("current", "target", "allowed"),
        [
            (TaskStatus.OPEN, TaskStatus.ASSIGNED, True),
            (TaskStatus.ASSIGNED, TaskStatus.VERIFIED, True),
            (TaskStatus.OPEN, TaskStatus.VERIFIED, False),
            (TaskStatus.ASSIGNED, TaskStatus.OPEN, False),
            (TaskStatus.VERIFIED, TaskStatus.ASSIGNED, False),
            (TaskStatus.VERIFIED, TaskStatus.OPEN, False),
        ],
    )
    def test_table(self, current, target, allowed):
        """VERIFIED is terminal; nothing skips ASSIGNED."""
        assert state_machine.can_transition(current, target) is allowed


@pytest.mark.unit
class TestTransitions:
    """Tests for the conditional updates."""

    async def test_assign_then_verify(self, family):
        """Both transitions succeed in order."""
        task = await task_service.create_task(actor=family["admin"], title="Sweep", base_points=5)

        assigned = await state_machine.transition_to_assigned(
            task_id=task.id, family_id=task.family_id, assignee_id=family["bob"].id
        )
        verified = await state_machine.transition_to_verified(
            task_id=task.id, family_id=task.family_id, extra={"image_match_score": 70}
        )

        assert assigned["status"] == TaskStatus.ASSIGNED
        assert assigned["assignee_id"] == family["bob"].id
        assert verified["status"] == TaskStatus.VERIFIED
        assert verified["image_match_score"] == 70

    async def test_assign_twice_conflicts(self, family):
        """The guard rejects a second assignment."""
        task = await task_service.create_task(actor=family["admin"], title="Sweep", base_points=5)
        await state_machine.transition_to_assigned(task_id=task.id, family_id=task.family_id, assignee_id=family["bob"].id)

        with pytest.raises(ConflictError, match="no longer open"):
            await state_machine.transition_to_assigned(
                task_id=task.id, family_id=task.family_id, assignee_id=family["carol"].id
            )

    async def test_verify_open_task_fails(self, family):
        """OPEN can't jump to VERIFIED."""
        task = await task_service.create_task(actor=family["admin"], title="Sweep", base_points=5)

        with pytest.raises(InvalidStateError, match="Cannot verify"):
            await state_machine.transition_to_verified(task_id=task.id, family_id=task.family_id)

    async def test_wrong_family_is_not_found(self, family):
        """The family guard hides the task."""
        task = await task_service.create_task(actor=family["admin"], title="Sweep", base_points=5)

        with pytest.raises(NotFoundError):
            await state_machine.transition_to_assigned(task_id=task.id, family_id="999", assignee_id=family["bob"].id)
