import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from gymsched.core.auth import Identity
from gymsched.core.config import get_settings
from gymsched.core.exceptions import (
    AuthorizationError,
    CapacityError,
    ConflictError,
    NotFoundError,
    PolicyError,
    StateError,
)
from gymsched.core.locks import member_calendar_lock
from gymsched.core.roles import can_enroll, is_privileged
from gymsched.core.timezone_utils import utc_now
from gymsched.models.schedule import BillingStatus, Enrollment, EnrollmentStatus, Schedule, ScheduleStatus
from gymsched.models.user import UserRole
from gymsched.repositories.catalog import gym_class_repository
from gymsched.repositories.enrollment import enrollment_repository
from gymsched.repositories.schedule import schedule_repository
from gymsched.schemas.billing import EnrollmentCommitted
from gymsched.schemas.enrollment import (
    Enrollment as EnrollmentSchema,
    EnrollmentResult,
    MemberSchedule,
)
from gymsched.schemas.schedule import Schedule as ScheduleSchema
from gymsched.services import enrollment_lifecycle as lifecycle
from gymsched.services.billing import get_billing_dispatcher
from gymsched.services.cache_service import invalidate_trainer_schedules
from gymsched.services.intervals import intervals_overlap
from gymsched.services.member_directory import member_directory
from gymsched.services.schedule import schedule_service

logger = logging.getLogger("enrollment_service")


class AsyncEnrollmentService:
    """
    Inscripciones de socios en horarios.

    Controles de admisión, en este orden:
        1. el horario está programado
        2. la clase no ha comenzado
        3. queda plaza
        4. el socio no está ya inscrito
        5. el socio no tiene otra clase solapada ese día

    La plaza se reserva con un compare-and-swap sobre `current_participants`,
    y los controles 4-5 junto a las escrituras se hacen bajo el lock (socio, fecha).
    """

    def __init__(self, billing_dispatcher=None):
        self._billing_dispatcher = billing_dispatcher

    @property
    def billing_dispatcher(self):
        return self._billing_dispatcher or get_billing_dispatcher()

    async def enroll(
        self,
        db: AsyncSession,
        schedule_id: int,
        identity: Identity,
        *,
        redis_client: Optional[Redis] = None,
        now: Optional[datetime] = None
    ) -> EnrollmentResult:
        """
        Inscribe al socio de la identidad en un horario.

        Args:
            db: Sesión async de base de datos
            schedule_id: ID del horario
            identity: Identidad que se inscribe (debe tener rol de socio)
            redis_client: Cliente Redis para invalidar la agenda del entrenador
            now: Instante de referencia (por defecto, ahora en UTC)

        Returns:
            EnrollmentResult con la inscripción, el horario actualizado y el
            estado de facturación

        Raises:
            AuthorizationError: entrenadores y administradores no se inscriben
            NotFoundError, StateError, CapacityError, ConflictError
        """
        now = now or utc_now()
        if not can_enroll(identity.role):
            raise AuthorizationError("Entrenadores y administradores no pueden inscribirse como asistentes")

        member = await member_directory.resolve_or_provision(db, identity)
        schedule = await schedule_service.get_schedule(db, schedule_id)

        if schedule.status != ScheduleStatus.SCHEDULED:
            raise StateError("La clase no está abierta a inscripciones")
        if now >= schedule.start_time:
            raise StateError("La clase ya ha comenzado")
        if schedule.current_participants >= schedule.max_participants:
            raise CapacityError("La clase está completa")

        async with member_calendar_lock.hold((member.id, schedule.date), db):
            if await enrollment_repository.get_active(db, member_id=member.id, schedule_id=schedule.id):
                raise ConflictError("Ya estás inscrito en esta clase")

            same_day = await enrollment_repository.get_member_day(
                db, member_id=member.id, day=schedule.date, exclude_schedule_id=schedule.id
            )
            for _, other in same_day:
                if intervals_overlap(schedule.start_time, schedule.end_time, other.start_time, other.end_time):
                    raise ConflictError(
                        "Ya tienes otra clase en ese horario",
                        extra={"conflicting_schedule_id": other.id},
                    )

            if not await schedule_repository.try_reserve_seat(db, schedule.id):
                await db.rollback()
                await db.refresh(schedule)
                if schedule.status != ScheduleStatus.SCHEDULED:
                    raise StateError("La clase no está abierta a inscripciones")
                raise CapacityError("La clase está completa")

            gym_class = await gym_class_repository.get(db, id=schedule.class_id)
            requires_billing = Decimal(gym_class.price or 0) > 0
            enrollment = Enrollment(
                member_id=member.id,
                schedule_id=schedule.id,
                enrollment_date=now,
                status=EnrollmentStatus.ENROLLED,
                billing_status=BillingStatus.PENDING if requires_billing else BillingStatus.NOT_REQUIRED,
            )
            db.add(enrollment)
            await db.flush()
            await db.commit()

        await db.refresh(schedule)
        await db.refresh(enrollment)
        logger.info(
            f"Socio {member.id} inscrito en el horario {schedule.id} "
            f"({schedule.current_participants}/{schedule.max_participants})"
        )
        await invalidate_trainer_schedules(redis_client, schedule.trainer_id)

        result = EnrollmentResult(
            enrollment=EnrollmentSchema.model_validate(enrollment),
            schedule=ScheduleSchema.model_validate(schedule),
            billing_status=enrollment.billing_status,
        )
        if requires_billing:
            outcome = await self.billing_dispatcher.dispatch(
                EnrollmentCommitted(
                    enrollment_id=enrollment.id,
                    member_id=member.id,
                    schedule_id=schedule.id,
                    class_id=gym_class.id,
                    class_name=gym_class.name,
                    occurred_at=now,
                )
            )
            if outcome is not None:
                result.billing_status = outcome.status
                result.invoice_reference = outcome.invoice_reference
                result.billing_warning = outcome.warning
        return result

    async def _cancel(
        self,
        db: AsyncSession,
        enrollment: Enrollment,
        actor: Identity,
        *,
        redis_client: Optional[Redis],
        now: datetime
    ) -> Enrollment:
        privileged = is_privileged(actor.role)
        if not privileged:
            member = await member_directory.find(db, actor)
            if not member or member.id != enrollment.member_id:
                raise AuthorizationError("Solo puedes cancelar tus propias inscripciones")

        schedule = await schedule_service.get_schedule(db, enrollment.schedule_id)
        if schedule.status == ScheduleStatus.COMPLETED:
            raise StateError("No se puede cancelar la inscripción de una clase completada")

        cutoff = timedelta(hours=get_settings().CANCELLATION_CUTOFF_HOURS)
        if not privileged and schedule.start_time - now < cutoff:
            raise PolicyError(
                f"No se puede cancelar con menos de {get_settings().CANCELLATION_CUTOFF_HOURS} horas de antelación"
            )

        new_state = lifecycle.cancel(lifecycle.state_of(enrollment), now)
        lifecycle.apply_state(enrollment, new_state)
        if not await enrollment_repository.flush_transition(db, enrollment):
            raise ConflictError("La inscripción fue modificada por otra petición")
        await schedule_repository.release_seat(db, schedule.id)
        await db.commit()

        logger.info(f"Inscripción {enrollment.id} cancelada por el usuario {actor.id}")
        await invalidate_trainer_schedules(redis_client, schedule.trainer_id)
        return enrollment

    async def cancel_enrollment(
        self,
        db: AsyncSession,
        enrollment_id: int,
        actor: Identity,
        *,
        redis_client: Optional[Redis] = None,
        now: Optional[datetime] = None
    ) -> Enrollment:
        """Cancela una inscripción por su ID (el propio socio o personal del gimnasio)."""
        enrollment = await enrollment_repository.get(db, id=enrollment_id)
        if not enrollment:
            raise NotFoundError(f"Inscripción {enrollment_id} no encontrada")
        return await self._cancel(db, enrollment, actor, redis_client=redis_client, now=now or utc_now())

    async def cancel_by_schedule(
        self,
        db: AsyncSession,
        schedule_id: int,
        actor: Identity,
        *,
        member_user_id: Optional[int] = None,
        redis_client: Optional[Redis] = None,
        now: Optional[datetime] = None
    ) -> Enrollment:
        """
        Cancela la inscripción activa de un socio en un horario.

        Por defecto la del propio actor; el personal puede indicar `member_user_id`.
        """
        target = actor
        if member_user_id is not None and member_user_id != actor.id:
            if not is_privileged(actor.role):
                raise AuthorizationError("Solo puedes cancelar tus propias inscripciones")
            target = Identity(id=member_user_id, role=UserRole.MEMBER)

        member = await member_directory.find(db, target)
        await schedule_service.get_schedule(db, schedule_id)
        enrollment = None
        if member:
            enrollment = await enrollment_repository.get_active(db, member_id=member.id, schedule_id=schedule_id)
        if not enrollment:
            raise NotFoundError("No hay una inscripción activa en esta clase")
        return await self._cancel(db, enrollment, actor, redis_client=redis_client, now=now or utc_now())

    async def list_schedule_enrollments(
        self, db: AsyncSession, schedule_id: int, *, include_cancelled: bool = False
    ) -> List[Enrollment]:
        await schedule_service.get_schedule(db, schedule_id)
        return await enrollment_repository.get_by_schedule(
            db, schedule_id, include_cancelled=include_cancelled
        )

    async def list_member_upcoming(
        self,
        db: AsyncSession,
        identity: Identity,
        *,
        limit: int = 10,
        now: Optional[datetime] = None
    ) -> List[MemberSchedule]:
        member = await member_directory.find(db, identity)
        if not member:
            return []
        rows = await enrollment_repository.get_member_upcoming(
            db, member_id=member.id, now=now or utc_now(), limit=limit
        )
        return [self._member_schedule(*row) for row in rows]

    async def list_member_history(
        self, db: AsyncSession, identity: Identity, *, skip: int = 0, limit: int = 10
    ) -> List[MemberSchedule]:
        member = await member_directory.find(db, identity)
        if not member:
            return []
        rows = await enrollment_repository.get_member_history(db, member_id=member.id, skip=skip, limit=limit)
        return [self._member_schedule(*row) for row in rows]

    @staticmethod
    def _member_schedule(enrollment: Enrollment, schedule: Schedule, class_name: str) -> MemberSchedule:
        return MemberSchedule(
            enrollment=EnrollmentSchema.model_validate(enrollment),
            schedule=ScheduleSchema.model_validate(schedule),
            class_name=class_name,
        )


enrollment_service = AsyncEnrollmentService()
