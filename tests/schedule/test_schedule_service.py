"""
Tests del servicio de horarios: conflictos del entrenador, edición,
cancelación en cascada y cierre de clases.
"""
import asyncio
from datetime import date

import pytest
from sqlalchemy import select

from gymsched.core.exceptions import CapacityError, ConflictError, NotFoundError, StateError, ValidationError
from gymsched.models.schedule import Enrollment, EnrollmentStatus, ScheduleStatus
from gymsched.repositories.user import member_repository
from gymsched.schemas.schedule import ScheduleCreate, ScheduleUpdate
from gymsched.services.enrollment import enrollment_service
from gymsched.services.schedule import schedule_service
from tests.conftest import CLASS_DAY, MEMBER_USER_IDS, OTHER_TRAINER_ID, TRAINER_ID, at


class TestCreateSchedule:

    @pytest.mark.asyncio
    async def test_defaults_come_from_the_class(self, make_schedule, seed):
        schedule = await make_schedule("10:00", "11:00")

        assert schedule.status == ScheduleStatus.SCHEDULED
        assert schedule.start_time == at(10)
        assert schedule.end_time == at(11)
        assert schedule.room == "Sala 1"
        assert schedule.max_participants == 10
        assert schedule.current_participants == 0
        assert schedule.check_in_code.startswith(f"S{schedule.id}_")

    @pytest.mark.asyncio
    async def test_trainer_overlap_is_rejected(self, make_schedule):
        """Entrenador con clase 10:00-11:00: 10:30-11:30 choca, 11:00-12:00 no."""
        first = await make_schedule("10:00", "11:00")

        with pytest.raises(ConflictError) as exc_info:
            await make_schedule("10:30", "11:30")
        assert exc_info.value.extra["conflicting_schedule_id"] == first.id

        back_to_back = await make_schedule("11:00", "12:00")
        assert back_to_back.id != first.id

    @pytest.mark.asyncio
    async def test_concurrent_overlapping_slots_for_one_trainer(self, session_factory, seed):
        async def attempt(start, end):
            async with session_factory() as session:
                return await schedule_service.create_schedule(
                    session,
                    ScheduleCreate(
                        class_id=seed["free_class"].id, date=CLASS_DAY,
                        start_time=start, end_time=end, trainer_id=TRAINER_ID,
                    ),
                )

        results = await asyncio.gather(
            attempt("09:00", "10:00"),
            attempt("09:30", "10:30"),
            return_exceptions=True,
        )

        created = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, Exception)]
        assert len(created) == 1
        assert len(rejected) == 1
        assert isinstance(rejected[0], ConflictError)

        async with session_factory() as session:
            stored = await schedule_service.list_schedules(session, day=date(2030, 1, 10))
            assert [s.id for s in stored] == [created[0].id]

    @pytest.mark.asyncio
    async def test_other_trainer_can_use_the_same_slot(self, make_schedule):
        await make_schedule("10:00", "11:00")
        other = await make_schedule("10:00", "11:00", trainer_id=OTHER_TRAINER_ID)
        assert other.trainer_id == OTHER_TRAINER_ID

    @pytest.mark.asyncio
    async def test_cancelled_schedule_frees_the_slot(self, db, make_schedule):
        first = await make_schedule("10:00", "11:00")
        await schedule_service.cancel_schedule(db, first.id, now=at(8))
        replacement = await make_schedule("10:00", "11:00")
        assert replacement.status == ScheduleStatus.SCHEDULED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("day, start, end", [
        ("10-01-2030", "10:00", "11:00"),
        (CLASS_DAY, "10h", "11:00"),
        (CLASS_DAY, "11:00", "10:00"),
        (CLASS_DAY, "10:00", "10:00"),
    ])
    async def test_invalid_date_or_interval(self, db, seed, day, start, end):
        with pytest.raises(ValidationError):
            await schedule_service.create_schedule(
                db,
                ScheduleCreate(
                    class_id=seed["free_class"].id, date=day, start_time=start,
                    end_time=end, trainer_id=TRAINER_ID,
                ),
            )

    @pytest.mark.asyncio
    async def test_unknown_class_or_trainer(self, db, seed, make_schedule):
        with pytest.raises(NotFoundError):
            await make_schedule(class_id=9999)
        with pytest.raises(NotFoundError):
            # Un socio no es un entrenador
            await make_schedule(trainer_id=MEMBER_USER_IDS[0])


class TestUpdateSchedule:

    @pytest.mark.asyncio
    async def test_moving_into_another_slot_of_the_trainer_conflicts(self, db, make_schedule):
        await make_schedule("10:00", "11:00")
        second = await make_schedule("12:00", "13:00")

        with pytest.raises(ConflictError):
            await schedule_service.update_schedule(
                db, second.id, ScheduleUpdate(start_time="10:30", end_time="11:30")
            )

    @pytest.mark.asyncio
    async def test_moving_onto_another_class_of_an_enrolled_member_conflicts(self, db, make_schedule, member_identity):
        first = await make_schedule("10:00", "11:00")
        second = await make_schedule("11:00", "12:00", trainer_id=OTHER_TRAINER_ID)
        for schedule in (first, second):
            await enrollment_service.enroll(db, schedule.id, member_identity(), now=at(7))
        member = await member_repository.get_by_user_id(db, MEMBER_USER_IDS[0])

        with pytest.raises(ConflictError) as exc_info:
            await schedule_service.update_schedule(
                db, second.id, ScheduleUpdate(start_time="10:30", end_time="11:30")
            )
        assert exc_info.value.extra["conflicting_schedule_id"] == first.id
        assert exc_info.value.extra["member_id"] == member.id

        unchanged = await schedule_service.get_schedule(db, second.id)
        assert unchanged.start_time == at(11)

        # Sin la otra inscripción el mismo cambio se admite
        await enrollment_service.cancel_by_schedule(db, first.id, member_identity(), now=at(7, 30))
        moved = await schedule_service.update_schedule(
            db, second.id, ScheduleUpdate(start_time="10:30", end_time="11:30")
        )
        assert moved.start_time == at(10, 30)

    @pytest.mark.asyncio
    async def test_update_excludes_itself_from_the_overlap_check(self, db, make_schedule):
        schedule = await make_schedule("10:00", "11:00")
        updated = await schedule_service.update_schedule(
            db, schedule.id, ScheduleUpdate(end_time="11:30", room="Sala 3")
        )
        assert updated.start_time == at(10)
        assert updated.end_time == at(11, 30)
        assert updated.room == "Sala 3"

    @pytest.mark.asyncio
    async def test_capacity_cannot_drop_below_enrolled(self, db, make_schedule, member_identity):
        schedule = await make_schedule("10:00", "11:00")
        for user_id in MEMBER_USER_IDS[:2]:
            await enrollment_service.enroll(db, schedule.id, member_identity(user_id), now=at(8))

        with pytest.raises(CapacityError):
            await schedule_service.update_schedule(db, schedule.id, ScheduleUpdate(max_participants=1))

        updated = await schedule_service.update_schedule(db, schedule.id, ScheduleUpdate(max_participants=2))
        assert updated.available_spots == 0

    @pytest.mark.asyncio
    async def test_completed_schedule_is_immutable(self, db, make_schedule):
        schedule = await make_schedule("10:00", "11:00")
        await schedule_service.complete_schedule(db, schedule.id, now=at(11))

        with pytest.raises(StateError):
            await schedule_service.update_schedule(db, schedule.id, ScheduleUpdate(notes="tarde"))


class TestCancelSchedule:

    @pytest.mark.asyncio
    async def test_cancellation_cascades_to_enrollments(self, db, make_schedule, member_identity):
        schedule = await make_schedule("10:00", "11:00")
        for user_id in MEMBER_USER_IDS[:2]:
            await enrollment_service.enroll(db, schedule.id, member_identity(user_id), now=at(8))

        result = await schedule_service.cancel_schedule(db, schedule.id, now=at(9))

        assert result.schedule.status == ScheduleStatus.CANCELLED
        assert result.cancelled_enrollments == 2
        assert result.already_cancelled is False
        # Las plazas no se devuelven
        assert result.schedule.current_participants == 2

        rows = (await db.execute(
            select(Enrollment).where(Enrollment.schedule_id == schedule.id)
        )).scalars().all()
        assert {row.status for row in rows} == {EnrollmentStatus.CANCELLED}
        assert all(row.cancellation_time == at(9) for row in rows)

    @pytest.mark.asyncio
    async def test_cancelling_twice_is_a_no_op(self, db, make_schedule):
        schedule = await make_schedule("10:00", "11:00")
        await schedule_service.cancel_schedule(db, schedule.id, now=at(8))

        again = await schedule_service.cancel_schedule(db, schedule.id, now=at(9))
        assert again.already_cancelled is True
        assert again.cancelled_enrollments == 0

    @pytest.mark.asyncio
    async def test_cancelled_schedule_rejects_enrollments(self, db, make_schedule, member_identity):
        schedule = await make_schedule("10:00", "11:00")
        await schedule_service.cancel_schedule(db, schedule.id, now=at(8))

        with pytest.raises(StateError):
            await enrollment_service.enroll(db, schedule.id, member_identity(), now=at(8, 30))

    @pytest.mark.asyncio
    async def test_completed_schedule_cannot_be_cancelled(self, db, make_schedule):
        schedule = await make_schedule("10:00", "11:00")
        await schedule_service.complete_schedule(db, schedule.id, now=at(11))
        with pytest.raises(StateError):
            await schedule_service.cancel_schedule(db, schedule.id, now=at(12))


class TestCompleteSchedule:

    @pytest.mark.asyncio
    async def test_cannot_complete_before_start(self, db, make_schedule):
        schedule = await make_schedule("10:00", "11:00")
        with pytest.raises(StateError):
            await schedule_service.complete_schedule(db, schedule.id, now=at(9, 59))

        completed = await schedule_service.complete_schedule(db, schedule.id, now=at(10, 30))
        assert completed.status == ScheduleStatus.COMPLETED


class TestListings:

    @pytest.mark.asyncio
    async def test_list_by_day_and_trainer(self, db, make_schedule):
        await make_schedule("10:00", "11:00")
        await make_schedule("12:00", "13:00")
        await make_schedule("10:00", "11:00", trainer_id=OTHER_TRAINER_ID)
        await make_schedule("10:00", "11:00", day="2030-01-11")

        same_day = await schedule_service.list_schedules(db, day=date(2030, 1, 10))
        assert len(same_day) == 3
        assert [s.start_time for s in same_day] == sorted(s.start_time for s in same_day)

        agenda = await schedule_service.list_trainer_schedules(db, TRAINER_ID)
        assert len(agenda) == 3
        assert all(item.trainer_id == TRAINER_ID for item in agenda)
