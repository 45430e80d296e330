from datetime import date, datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from gymsched.models.catalog import GymClass
from gymsched.models.schedule import Enrollment, EnrollmentStatus, Schedule, ScheduleStatus
from gymsched.repositories.async_base import AsyncBaseRepository


class EnrollmentRepository(AsyncBaseRepository[Enrollment, BaseModel, BaseModel]):

    async def flush_transition(self, db: AsyncSession, enrollment: Enrollment) -> bool:
        """
        Escribe una transición ya aplicada a la inscripción.

        Devuelve False (y deshace la transacción) si otra petición modificó la
        inscripción entre la lectura y la escritura.
        """
        db.add(enrollment)
        try:
            await db.flush()
        except StaleDataError:
            await db.rollback()
            return False
        return True

    async def get_active(
        self, db: AsyncSession, *, member_id: int, schedule_id: int
    ) -> Optional[Enrollment]:
        """Inscripción no cancelada de un socio en un horario (como mucho una)."""
        result = await db.execute(
            select(Enrollment).where(
                Enrollment.member_id == member_id,
                Enrollment.schedule_id == schedule_id,
                Enrollment.status != EnrollmentStatus.CANCELLED,
            ).execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def get_member_day(
        self,
        db: AsyncSession,
        *,
        member_id: int,
        day: date,
        exclude_schedule_id: Optional[int] = None,
        open_attendance_only: bool = False
    ) -> List[Tuple[Enrollment, Schedule]]:
        """
        Inscripciones no canceladas de un socio en horarios de una fecha.

        Args:
            db: Sesión async de base de datos
            member_id: ID del socio
            day: Fecha local del gimnasio
            exclude_schedule_id: Horario a excluir (el horario objetivo)
            open_attendance_only: Solo check-ins sin check-out

        Returns:
            Pares (inscripción, horario)
        """
        stmt = (
            select(Enrollment, Schedule)
            .join(Schedule, Schedule.id == Enrollment.schedule_id)
            .where(
                Enrollment.member_id == member_id,
                Enrollment.status != EnrollmentStatus.CANCELLED,
                Schedule.date == day,
            )
        )
        if exclude_schedule_id is not None:
            stmt = stmt.where(Enrollment.schedule_id != exclude_schedule_id)
        if open_attendance_only:
            stmt = stmt.where(
                Enrollment.status == EnrollmentStatus.ATTENDED,
                Enrollment.checkout_time.is_(None),
            )
        result = await db.execute(stmt.execution_options(populate_existing=True))
        return [(row[0], row[1]) for row in result.all()]

    async def get_by_schedule(
        self,
        db: AsyncSession,
        schedule_id: int,
        *,
        include_cancelled: bool = False,
        checked_in_only: bool = False
    ) -> List[Enrollment]:
        stmt = select(Enrollment).where(Enrollment.schedule_id == schedule_id)
        if not include_cancelled:
            stmt = stmt.where(Enrollment.status != EnrollmentStatus.CANCELLED)
        if checked_in_only:
            stmt = stmt.where(Enrollment.checkin_time.is_not(None))
            stmt = stmt.order_by(Enrollment.checkin_time)
        else:
            stmt = stmt.order_by(Enrollment.enrollment_date, Enrollment.id)
        result = await db.execute(stmt.execution_options(populate_existing=True))
        return list(result.scalars().all())

    async def get_member_upcoming(
        self, db: AsyncSession, *, member_id: int, now: datetime, limit: int = 10
    ) -> List[Tuple[Enrollment, Schedule, str]]:
        stmt = (
            select(Enrollment, Schedule, GymClass.name)
            .join(Schedule, Schedule.id == Enrollment.schedule_id)
            .join(GymClass, GymClass.id == Schedule.class_id)
            .where(
                Enrollment.member_id == member_id,
                Enrollment.status == EnrollmentStatus.ENROLLED,
                Schedule.status == ScheduleStatus.SCHEDULED,
                Schedule.start_time >= now,
            )
            .order_by(Schedule.start_time)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return [(row[0], row[1], row[2]) for row in result.all()]

    async def get_member_history(
        self, db: AsyncSession, *, member_id: int, skip: int = 0, limit: int = 10
    ) -> List[Tuple[Enrollment, Schedule, str]]:
        stmt = (
            select(Enrollment, Schedule, GymClass.name)
            .join(Schedule, Schedule.id == Enrollment.schedule_id)
            .join(GymClass, GymClass.id == Schedule.class_id)
            .where(Enrollment.member_id == member_id)
            .order_by(Schedule.start_time.desc(), Enrollment.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return [(row[0], row[1], row[2]) for row in result.all()]


enrollment_repository = EnrollmentRepository(Enrollment)
