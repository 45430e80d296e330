"""
Tests de inscripción y cancelación: capacidad (también bajo concurrencia),
duplicados, doble reserva del socio y plazo de cancelación.
"""
import asyncio

import pytest

from gymsched.core.auth import Identity
from gymsched.core.exceptions import (
    AuthorizationError,
    CapacityError,
    ConflictError,
    NotFoundError,
    PolicyError,
    StateError,
)
from gymsched.models.schedule import BillingStatus, EnrollmentStatus
from gymsched.models.user import UserRole
from gymsched.repositories.user import member_repository
from gymsched.services.enrollment import enrollment_service
from gymsched.services.schedule import schedule_service
from tests.conftest import ADMIN_ID, MEMBER_USER_IDS, OTHER_TRAINER_ID, at


class TestEnroll:

    @pytest.mark.asyncio
    async def test_enroll_reserves_a_seat(self, db, make_schedule, member_identity):
        schedule = await make_schedule("10:00", "11:00")

        result = await enrollment_service.enroll(db, schedule.id, member_identity(), now=at(8))

        assert result.enrollment.status == EnrollmentStatus.ENROLLED
        assert result.schedule.current_participants == 1
        assert result.schedule.available_spots == 9
        assert result.billing_status == BillingStatus.NOT_REQUIRED
        assert result.billing_warning is None

    @pytest.mark.asyncio
    async def test_full_schedule_rejects_enrollment(self, db, make_schedule, member_identity):
        schedule = await make_schedule("10:00", "11:00", max_participants=2)
        for user_id in MEMBER_USER_IDS[:2]:
            await enrollment_service.enroll(db, schedule.id, member_identity(user_id), now=at(8))

        with pytest.raises(CapacityError):
            await enrollment_service.enroll(db, schedule.id, member_identity(MEMBER_USER_IDS[2]), now=at(8))

        refreshed = await schedule_service.get_schedule(db, schedule.id)
        assert refreshed.current_participants == 2

    @pytest.mark.asyncio
    async def test_duplicate_enrollment_is_rejected(self, db, make_schedule, member_identity):
        schedule = await make_schedule("10:00", "11:00")
        await enrollment_service.enroll(db, schedule.id, member_identity(), now=at(8))

        with pytest.raises(ConflictError):
            await enrollment_service.enroll(db, schedule.id, member_identity(), now=at(8, 5))

    @pytest.mark.asyncio
    async def test_member_cannot_double_book(self, db, make_schedule, member_identity):
        """Socio en 10:00-11:00: 10:30-11:30 se rechaza, 11:00-12:00 se admite."""
        first = await make_schedule("10:00", "11:00")
        overlapping = await make_schedule("10:30", "11:30", trainer_id=OTHER_TRAINER_ID)
        await enrollment_service.enroll(db, first.id, member_identity(), now=at(8))

        with pytest.raises(ConflictError) as exc_info:
            await enrollment_service.enroll(db, overlapping.id, member_identity(), now=at(8))
        assert exc_info.value.extra["conflicting_schedule_id"] == first.id

        back_to_back = await make_schedule("11:00", "12:00")
        result = await enrollment_service.enroll(db, back_to_back.id, member_identity(), now=at(8))
        assert result.enrollment.schedule_id == back_to_back.id

    @pytest.mark.asyncio
    async def test_started_schedule_rejects_enrollment(self, db, make_schedule, member_identity):
        schedule = await make_schedule("10:00", "11:00")
        with pytest.raises(StateError):
            await enrollment_service.enroll(db, schedule.id, member_identity(), now=at(10))

    @pytest.mark.asyncio
    async def test_staff_cannot_enroll(self, db, make_schedule, trainer_identity):
        schedule = await make_schedule("10:00", "11:00")
        with pytest.raises(AuthorizationError):
            await enrollment_service.enroll(db, schedule.id, trainer_identity, now=at(8))

    @pytest.mark.asyncio
    async def test_unknown_schedule(self, db, seed, member_identity):
        with pytest.raises(NotFoundError):
            await enrollment_service.enroll(db, 4242, member_identity(), now=at(8))

    @pytest.mark.asyncio
    async def test_member_record_is_provisioned_on_first_enrollment(self, db, make_schedule):
        schedule = await make_schedule("10:00", "11:00")
        newcomer = Identity(id=555, role=UserRole.MEMBER)

        await enrollment_service.enroll(db, schedule.id, newcomer, now=at(8))

        member = await member_repository.get_by_user_id(db, 555)
        assert member is not None
        assert member.member_code == "GM00000555"

    @pytest.mark.asyncio
    async def test_concurrent_enrollments_for_the_last_seat(self, session_factory, make_schedule, member_identity):
        schedule = await make_schedule("10:00", "11:00", max_participants=2)
        async with session_factory() as session:
            await enrollment_service.enroll(session, schedule.id, member_identity(MEMBER_USER_IDS[0]), now=at(8))

        async def attempt(user_id):
            async with session_factory() as session:
                return await enrollment_service.enroll(session, schedule.id, member_identity(user_id), now=at(8))

        results = await asyncio.gather(
            attempt(MEMBER_USER_IDS[1]),
            attempt(MEMBER_USER_IDS[2]),
            return_exceptions=True,
        )

        admitted = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, Exception)]
        assert len(admitted) == 1
        assert len(rejected) == 1
        assert isinstance(rejected[0], CapacityError)

        async with session_factory() as session:
            final = await schedule_service.get_schedule(session, schedule.id)
            assert final.current_participants == 2

    @pytest.mark.asyncio
    async def test_concurrent_enrollments_in_overlapping_classes(self, session_factory, make_schedule, member_identity):
        first = await make_schedule("10:00", "11:00")
        second = await make_schedule("10:30", "11:30", trainer_id=OTHER_TRAINER_ID)

        async def attempt(schedule_id):
            async with session_factory() as session:
                return await enrollment_service.enroll(session, schedule_id, member_identity(), now=at(8))

        results = await asyncio.gather(
            attempt(first.id),
            attempt(second.id),
            return_exceptions=True,
        )

        admitted = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, Exception)]
        assert len(admitted) == 1
        assert len(rejected) == 1
        assert isinstance(rejected[0], ConflictError)

        async with session_factory() as session:
            upcoming = await enrollment_service.list_member_upcoming(session, member_identity(), now=at(8))
            assert len(upcoming) == 1


class TestCancelEnrollment:

    @pytest.mark.asyncio
    async def test_cancel_before_cutoff_releases_the_seat(self, db, make_schedule, member_identity):
        schedule = await make_schedule("10:00", "11:00")
        result = await enrollment_service.enroll(db, schedule.id, member_identity(), now=at(7))

        cancelled = await enrollment_service.cancel_enrollment(
            db, result.enrollment.id, member_identity(), now=at(7, 59)
        )

        assert cancelled.status == EnrollmentStatus.CANCELLED
        assert cancelled.cancellation_time == at(7, 59)
        refreshed = await schedule_service.get_schedule(db, schedule.id)
        assert refreshed.current_participants == 0

    @pytest.mark.asyncio
    async def test_cancel_inside_cutoff_is_rejected(self, db, make_schedule, member_identity):
        schedule = await make_schedule("10:00", "11:00")
        result = await enrollment_service.enroll(db, schedule.id, member_identity(), now=at(7))

        with pytest.raises(PolicyError):
            await enrollment_service.cancel_enrollment(
                db, result.enrollment.id, member_identity(), now=at(8, 1)
            )

    @pytest.mark.asyncio
    async def test_cancel_exactly_at_cutoff_is_allowed(self, db, make_schedule, member_identity):
        schedule = await make_schedule("10:00", "11:00")
        await enrollment_service.enroll(db, schedule.id, member_identity(), now=at(7))

        cancelled = await enrollment_service.cancel_by_schedule(
            db, schedule.id, member_identity(), now=at(8)
        )
        assert cancelled.status == EnrollmentStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_staff_can_cancel_inside_cutoff(self, db, make_schedule, member_identity):
        schedule = await make_schedule("10:00", "11:00")
        await enrollment_service.enroll(db, schedule.id, member_identity(), now=at(7))
        admin = Identity(id=ADMIN_ID, role=UserRole.ADMIN)

        cancelled = await enrollment_service.cancel_by_schedule(
            db, schedule.id, admin, member_user_id=MEMBER_USER_IDS[0], now=at(9, 30)
        )
        assert cancelled.status == EnrollmentStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_member_cannot_cancel_someone_else(self, db, make_schedule, member_identity):
        schedule = await make_schedule("10:00", "11:00")
        result = await enrollment_service.enroll(db, schedule.id, member_identity(), now=at(7))
        intruder = member_identity(MEMBER_USER_IDS[1])

        with pytest.raises(AuthorizationError):
            await enrollment_service.cancel_enrollment(db, result.enrollment.id, intruder, now=at(7, 30))
        with pytest.raises(AuthorizationError):
            await enrollment_service.cancel_by_schedule(
                db, schedule.id, intruder, member_user_id=MEMBER_USER_IDS[0], now=at(7, 30)
            )

    @pytest.mark.asyncio
    async def test_cancelling_twice(self, db, make_schedule, member_identity):
        schedule = await make_schedule("10:00", "11:00")
        result = await enrollment_service.enroll(db, schedule.id, member_identity(), now=at(7))
        await enrollment_service.cancel_enrollment(db, result.enrollment.id, member_identity(), now=at(7, 30))

        with pytest.raises(StateError):
            await enrollment_service.cancel_enrollment(db, result.enrollment.id, member_identity(), now=at(7, 31))
        with pytest.raises(NotFoundError):
            await enrollment_service.cancel_by_schedule(db, schedule.id, member_identity(), now=at(7, 31))

        refreshed = await schedule_service.get_schedule(db, schedule.id)
        assert refreshed.current_participants == 0

    @pytest.mark.asyncio
    async def test_member_can_enroll_again_after_cancelling(self, db, make_schedule, member_identity):
        schedule = await make_schedule("10:00", "11:00")
        await enrollment_service.enroll(db, schedule.id, member_identity(), now=at(7))
        await enrollment_service.cancel_by_schedule(db, schedule.id, member_identity(), now=at(7, 10))

        again = await enrollment_service.enroll(db, schedule.id, member_identity(), now=at(7, 20))
        assert again.schedule.current_participants == 1


class TestMemberListings:

    @pytest.mark.asyncio
    async def test_upcoming_and_history(self, db, make_schedule, member_identity):
        morning = await make_schedule("10:00", "11:00")
        evening = await make_schedule("18:00", "19:00")
        for schedule in (evening, morning):
            await enrollment_service.enroll(db, schedule.id, member_identity(), now=at(7))

        upcoming = await enrollment_service.list_member_upcoming(db, member_identity(), now=at(12))
        assert [item.schedule.id for item in upcoming] == [evening.id]
        assert upcoming[0].class_name == "Yoga Flow"

        history = await enrollment_service.list_member_history(db, member_identity())
        assert [item.schedule.id for item in history] == [evening.id, morning.id]

        assert await enrollment_service.list_member_upcoming(db, Identity(id=999, role=UserRole.MEMBER)) == []

    @pytest.mark.asyncio
    async def test_schedule_roster(self, db, make_schedule, member_identity):
        schedule = await make_schedule("10:00", "11:00")
        for user_id in MEMBER_USER_IDS:
            await enrollment_service.enroll(db, schedule.id, member_identity(user_id), now=at(7))
        await enrollment_service.cancel_by_schedule(db, schedule.id, member_identity(MEMBER_USER_IDS[2]), now=at(7, 30))

        active = await enrollment_service.list_schedule_enrollments(db, schedule.id)
        everyone = await enrollment_service.list_schedule_enrollments(db, schedule.id, include_cancelled=True)
        assert len(active) == 2
        assert len(everyone) == 3
