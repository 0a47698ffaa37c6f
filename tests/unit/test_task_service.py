"""Service tests for the task lifecycle against a real SQLite schema."""

import asyncio

import pytest

from src.core import db_client
from src.core.config import settings
from src.core.errors import (
    AuthorizationError,
    ConflictError,
    GateLockedError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from src.domain.task import Task, TaskStatus
from src.modules.tasks import service as task_service
from src.services import family_service


async def _set_score(user_id: str, score: int) -> None:
    await db_client.update_record(collection="users", record_id=user_id, data={"score": score})


@pytest.mark.unit
class TestCreateTask:
    """Tests for create_task."""

    async def test_creates_open_task(self, family):
        """New tasks are OPEN with no assignee."""
        task = await task_service.create_task(
            actor=family["admin"],
            title="  Wash dishes ",
            base_points=20,
            user_points_override={family["bob"].id: 30},
        )

        assert task.status == TaskStatus.OPEN
        assert task.assignee_id is None
        assert task.title == "Wash dishes"
        assert task.family_id == family["family"].id
        assert task.created_by == family["admin"].id
        assert task.user_points_override == {family["bob"].id: 30}

    async def test_member_cannot_create(self, family):
        """Only admins create tasks."""
        with pytest.raises(AuthorizationError):
            await task_service.create_task(actor=family["bob"], title="Nope", base_points=5)

    async def test_admin_without_family_cannot_create(self, make_user):
        """A family is required."""
        loner = await make_user("Loner")

        with pytest.raises(AuthorizationError, match="family"):
            await task_service.create_task(actor=loner, title="Nope", base_points=5)

    @pytest.mark.parametrize(
        ("title", "base_points"),
        [("", 10), ("   ", 10), ("Dust", 0), ("Dust", -3), ("Dust", True)],
    )
    async def test_invalid_fields_rejected(self, family, title, base_points):
        """Missing title or points below one fail validation."""
        with pytest.raises(ValidationError):
            await task_service.create_task(actor=family["admin"], title=title, base_points=base_points)

    async def test_list_is_newest_first_and_family_scoped(self, family, make_user):
        """Other families' tasks never show up."""
        first = await task_service.create_task(actor=family["admin"], title="First", base_points=5)
        second = await task_service.create_task(actor=family["admin"], title="Second", base_points=5)

        outsider = await make_user("Eve")
        _, outsider = await family_service.create_family(actor=outsider, name="Others")
        await task_service.create_task(actor=outsider, title="Theirs", base_points=5)

        tasks = await task_service.list_tasks(actor=family["bob"])
        assert [t.id for t in tasks] == [second.id, first.id]


@pytest.mark.unit
class TestClaimTask:
    """Tests for claim_task."""

    async def test_claim_assigns_caller(self, family):
        """Claiming sets ASSIGNED and the assignee."""
        task = await task_service.create_task(actor=family["admin"], title="Vacuum", base_points=10)

        claimed = await task_service.claim_task(actor=family["bob"], task_id=task.id)

        assert claimed.status == TaskStatus.ASSIGNED
        assert claimed.assignee_id == family["bob"].id

    async def test_second_claim_conflicts(self, family):
        """An ASSIGNED task can't be claimed again."""
        task = await task_service.create_task(actor=family["admin"], title="Vacuum", base_points=10)
        await task_service.claim_task(actor=family["bob"], task_id=task.id)

        with pytest.raises(ConflictError):
            await task_service.claim_task(actor=family["carol"], task_id=task.id)

    async def test_concurrent_claims_have_one_winner(self, family):
        """Racing claims: exactly one succeeds, the task has one assignee."""
        task = await task_service.create_task(actor=family["admin"], title="Laundry", base_points=10)

        results = await asyncio.gather(
            task_service.claim_task(actor=family["bob"], task_id=task.id),
            task_service.claim_task(actor=family["carol"], task_id=task.id),
            return_exceptions=True,
        )

        winners = [r for r in results if isinstance(r, Task)]
        losers = [r for r in results if isinstance(r, Exception)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert isinstance(losers[0], ConflictError)

        stored = await task_service.get_task(actor=family["admin"], task_id=task.id)
        assert stored.assignee_id == winners[0].assignee_id

    async def test_other_family_task_is_not_found(self, family, make_user):
        """Tasks of another family are invisible."""
        outsider = await make_user("Eve")
        _, outsider = await family_service.create_family(actor=outsider, name="Others")
        theirs = await task_service.create_task(actor=outsider, title="Theirs", base_points=5)

        with pytest.raises(NotFoundError):
            await task_service.claim_task(actor=family["bob"], task_id=theirs.id)

    async def test_missing_task_is_not_found(self, family):
        """Unknown ids are not-found."""
        with pytest.raises(NotFoundError):
            await task_service.claim_task(actor=family["bob"], task_id="4242")

    async def test_gate_lock_blocks_small_tasks(self, family):
        """Near Dust Bunny Rex (50/30) a 10 point task is locked."""
        await _set_score(family["bob"].id, 45)
        bob = family["bob"].model_copy(update={"score": 45})
        task = await task_service.create_task(actor=family["admin"], title="Tiny", base_points=10)

        with pytest.raises(GateLockedError) as exc_info:
            await task_service.claim_task(actor=bob, task_id=task.id)

        assert exc_info.value.required_points == 30
        stored = await task_service.get_task(actor=bob, task_id=task.id)
        assert stored.status == TaskStatus.OPEN

    async def test_gate_lock_respects_override(self, family):
        """A personal override big enough breaks through."""
        bob = family["bob"].model_copy(update={"score": 45})
        task = await task_service.create_task(
            actor=family["admin"],
            title="Big for Bob",
            base_points=10,
            user_points_override={bob.id: 30},
        )

        claimed = await task_service.claim_task(actor=bob, task_id=task.id)
        assert claimed.assignee_id == bob.id

    async def test_expired_booking_is_claimable_by_default(self, family):
        """Booking deadlines are advisory unless enforced."""
        task = await task_service.create_task(
            actor=family["admin"], title="Late", base_points=10, booking_deadline=1
        )

        claimed = await task_service.claim_task(actor=family["bob"], task_id=task.id)
        assert claimed.status == TaskStatus.ASSIGNED

    async def test_expired_booking_rejected_when_enforced(self, family, monkeypatch):
        """The toggle makes the deadline a hard precondition."""
        monkeypatch.setattr(settings, "enforce_booking_deadline", True)
        task = await task_service.create_task(
            actor=family["admin"], title="Late", base_points=10, booking_deadline=1
        )

        with pytest.raises(InvalidStateError, match="booking deadline"):
            await task_service.claim_task(actor=family["bob"], task_id=task.id)


@pytest.mark.unit
class TestCompleteAndVerify:
    """Tests for complete_task and verify_task."""

    async def test_complete_credits_assignee(self, family, refresh):
        """Completion verifies the task and credits points and level."""
        task = await task_service.create_task(actor=family["admin"], title="Garage", base_points=55)
        await task_service.claim_task(actor=family["bob"], task_id=task.id)

        done = await task_service.complete_task(
            actor=family["bob"],
            task_id=task.id,
            completion_image="data:image/jpeg;base64,AAAA",
            image_match_score=87,
        )

        assert done.status == TaskStatus.VERIFIED
        assert done.completion_image == "data:image/jpeg;base64,AAAA"
        assert done.image_match_score == 87
        bob = await refresh(family["bob"])
        assert bob.score == 55
        assert bob.level == 2

    async def test_override_points_are_credited(self, family, refresh):
        """The assignee's override is what they earn."""
        task = await task_service.create_task(
            actor=family["admin"],
            title="Homework",
            base_points=10,
            user_points_override={family["bob"].id: 25},
        )
        await task_service.claim_task(actor=family["bob"], task_id=task.id)
        await task_service.complete_task(actor=family["bob"], task_id=task.id)

        assert (await refresh(family["bob"])).score == 25

    async def test_verify_after_complete_does_not_double_credit(self, family, refresh):
        """The second finalization fails and credits nothing."""
        task = await task_service.create_task(actor=family["admin"], title="Windows", base_points=20)
        await task_service.claim_task(actor=family["bob"], task_id=task.id)
        await task_service.complete_task(actor=family["bob"], task_id=task.id)

        with pytest.raises(InvalidStateError, match="already verified"):
            await task_service.verify_task(actor=family["admin"], task_id=task.id)

        assert (await refresh(family["bob"])).score == 20

    async def test_complete_after_verify_does_not_double_credit(self, family, refresh):
        """Order doesn't matter."""
        task = await task_service.create_task(actor=family["admin"], title="Windows", base_points=20)
        await task_service.claim_task(actor=family["bob"], task_id=task.id)
        await task_service.verify_task(actor=family["admin"], task_id=task.id)

        with pytest.raises(InvalidStateError):
            await task_service.complete_task(actor=family["bob"], task_id=task.id)

        assert (await refresh(family["bob"])).score == 20

    async def test_concurrent_complete_and_verify_credit_once(self, family, refresh):
        """Racing finalizations credit exactly once."""
        task = await task_service.create_task(actor=family["admin"], title="Attic", base_points=15)
        await task_service.claim_task(actor=family["bob"], task_id=task.id)

        results = await asyncio.gather(
            task_service.complete_task(actor=family["bob"], task_id=task.id),
            task_service.verify_task(actor=family["admin"], task_id=task.id),
            return_exceptions=True,
        )

        assert sum(isinstance(r, Task) for r in results) == 1
        assert (await refresh(family["bob"])).score == 15

    async def test_open_task_cannot_be_completed(self, family):
        """Completion requires ASSIGNED."""
        task = await task_service.create_task(actor=family["admin"], title="Open", base_points=5)

        with pytest.raises(InvalidStateError):
            await task_service.verify_task(actor=family["admin"], task_id=task.id)

    async def test_only_assignee_or_admin_completes(self, family):
        """Other members are refused."""
        task = await task_service.create_task(actor=family["admin"], title="Bins", base_points=5)
        await task_service.claim_task(actor=family["bob"], task_id=task.id)

        with pytest.raises(AuthorizationError):
            await task_service.complete_task(actor=family["carol"], task_id=task.id)

    async def test_admin_completion_credits_assignee(self, family, refresh):
        """An admin completing credits the assignee, not the admin."""
        task = await task_service.create_task(actor=family["admin"], title="Bins", base_points=5)
        await task_service.claim_task(actor=family["bob"], task_id=task.id)

        await task_service.complete_task(actor=family["admin"], task_id=task.id)

        assert (await refresh(family["bob"])).score == 5
        assert (await refresh(family["admin"])).score == 0

    async def test_member_cannot_verify(self, family):
        """Verification is admin-only."""
        task = await task_service.create_task(actor=family["admin"], title="Bins", base_points=5)
        await task_service.claim_task(actor=family["bob"], task_id=task.id)

        with pytest.raises(AuthorizationError):
            await task_service.verify_task(actor=family["bob"], task_id=task.id)

    async def test_failed_credit_rolls_back_transition(self, family, monkeypatch):
        """If crediting fails the task stays ASSIGNED."""
        task = await task_service.create_task(actor=family["admin"], title="Rollback", base_points=5)
        await task_service.claim_task(actor=family["bob"], task_id=task.id)

        async def broken_credit(**_kwargs):
            raise RuntimeError("credit failed")

        monkeypatch.setattr("src.services.user_service.credit_points", broken_credit)

        with pytest.raises(RuntimeError, match="credit failed"):
            await task_service.complete_task(actor=family["bob"], task_id=task.id)

        stored = await task_service.get_task(actor=family["admin"], task_id=task.id)
        assert stored.status == TaskStatus.ASSIGNED


@pytest.mark.unit
class TestEditAndDelete:
    """Tests for edit_task and delete_task."""

    async def test_editing_verified_task_keeps_credited_score(self, family, refresh):
        """Already-credited points are not adjusted."""
        task = await task_service.create_task(actor=family["admin"], title="Car", base_points=20)
        await task_service.claim_task(actor=family["bob"], task_id=task.id)
        await task_service.complete_task(actor=family["bob"], task_id=task.id)

        edited = await task_service.edit_task(actor=family["admin"], task_id=task.id, fields={"base_points": 80})

        assert edited.base_points == 80
        assert edited.status == TaskStatus.VERIFIED
        assert (await refresh(family["bob"])).score == 20

    async def test_partial_update(self, family):
        """Only the given fields change."""
        task = await task_service.create_task(
            actor=family["admin"], title="Car", base_points=20, description="Wash it"
        )

        edited = await task_service.edit_task(
            actor=family["admin"],
            task_id=task.id,
            fields={"title": "Car wash", "completion_deadline": 123},
        )

        assert edited.title == "Car wash"
        assert edited.completion_deadline == 123
        assert edited.description == "Wash it"

    async def test_status_cannot_be_edited(self, family):
        """Lifecycle fields are off limits."""
        task = await task_service.create_task(actor=family["admin"], title="Car", base_points=20)

        with pytest.raises(ValidationError, match="status"):
            await task_service.edit_task(actor=family["admin"], task_id=task.id, fields={"status": "VERIFIED"})

    async def test_delete_keeps_scores(self, family, refresh):
        """Deleting a verified task leaves scores alone."""
        task = await task_service.create_task(actor=family["admin"], title="Car", base_points=20)
        await task_service.claim_task(actor=family["bob"], task_id=task.id)
        await task_service.complete_task(actor=family["bob"], task_id=task.id)

        await task_service.delete_task(actor=family["admin"], task_id=task.id)

        with pytest.raises(NotFoundError):
            await task_service.get_task(actor=family["admin"], task_id=task.id)
        assert (await refresh(family["bob"])).score == 20

    async def test_member_cannot_delete(self, family):
        """Deletion is admin-only."""
        task = await task_service.create_task(actor=family["admin"], title="Car", base_points=20)

        with pytest.raises(AuthorizationError):
            await task_service.delete_task(actor=family["bob"], task_id=task.id)


@pytest.mark.unit
class TestDeadlineHelpers:
    """Tests for is_booking_expired and is_overdue."""

    def _task(self, **kwargs) -> Task:
        data = {"id": "1", "family_id": "1", "title": "T", "base_points": 5, "created_by": "1", "created_at": 0}
        return Task(**{**data, **kwargs})

    def test_booking_expired_only_for_open_tasks(self):
        """Past booking deadlines matter only while OPEN."""
        assert task_service.is_booking_expired(self._task(booking_deadline=100), now=200) is True
        assert task_service.is_booking_expired(self._task(booking_deadline=300), now=200) is False
        assert task_service.is_booking_expired(self._task(booking_deadline=0), now=200) is False
        assigned = self._task(booking_deadline=100, status=TaskStatus.ASSIGNED, assignee_id="2")
        assert task_service.is_booking_expired(assigned, now=200) is False

    def test_overdue_only_for_assigned_tasks(self):
        """Past completion deadlines matter only while ASSIGNED."""
        assigned = self._task(completion_deadline=100, status=TaskStatus.ASSIGNED, assignee_id="2")
        assert task_service.is_overdue(assigned, now=200) is True
        assert task_service.is_overdue(self._task(completion_deadline=100), now=200) is False
        verified = self._task(completion_deadline=100, status=TaskStatus.VERIFIED, assignee_id="2")
        assert task_service.is_overdue(verified, now=200) is False
