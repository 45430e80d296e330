"""
AsyncAttendanceService - check-in y check-out de socios en sus clases.

Ventanas de check-in (configurables):
- Check-in normal: [inicio - 15 min, inicio + 15 min]
- Check-in rápido (código del horario): [inicio - 15 min, inicio + 30 min]

El personal del gimnasio puede registrar la asistencia de otro socio y
saltarse la ventana. Un socio no puede estar presente en dos clases
solapadas a la vez: el check-in se rechaza mientras tenga otra asistencia
abierta (sin check-out) en una franja que se solape.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from gymsched.core.auth import Identity
from gymsched.core.config import get_settings
from gymsched.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PolicyError,
    ValidationError,
)
from gymsched.core.locks import member_calendar_lock
from gymsched.core.roles import is_privileged
from gymsched.core.timezone_utils import utc_now
from gymsched.models.schedule import Enrollment, Schedule, ScheduleStatus
from gymsched.models.user import Member
from gymsched.repositories.enrollment import enrollment_repository
from gymsched.repositories.schedule import schedule_repository
from gymsched.schemas.enrollment import CheckInResult, Enrollment as EnrollmentSchema
from gymsched.services import enrollment_lifecycle as lifecycle
from gymsched.services.intervals import intervals_overlap
from gymsched.services.member_directory import member_directory
from gymsched.services.schedule import schedule_service

logger = logging.getLogger(__name__)


def _within_window(schedule: Schedule, now: datetime, before_minutes: int, after_minutes: int) -> bool:
    opens = schedule.start_time - timedelta(minutes=before_minutes)
    closes = schedule.start_time + timedelta(minutes=after_minutes)
    return opens <= now <= closes


class AsyncAttendanceService:

    def _authorize(self, member_identity: Identity, actor: Optional[Identity], bypass_window: bool) -> None:
        actor = actor or member_identity
        if actor.id == member_identity.id and not bypass_window:
            return
        if not is_privileged(actor.role):
            if bypass_window:
                raise AuthorizationError("Solo el personal del gimnasio puede saltarse la ventana de check-in")
            raise AuthorizationError("Solo el personal del gimnasio puede registrar la asistencia de otro socio")

    async def _active_enrollment(
        self, db: AsyncSession, member_identity: Identity, schedule_id: int
    ) -> Tuple[Member, Enrollment]:
        member = await member_directory.resolve(db, member_identity)
        enrollment = await enrollment_repository.get_active(db, member_id=member.id, schedule_id=schedule_id)
        if not enrollment:
            raise NotFoundError("El socio no está inscrito en esta clase")
        return member, enrollment

    async def _ensure_not_present_elsewhere(
        self, db: AsyncSession, member: Member, schedule: Schedule
    ) -> None:
        open_attendances = await enrollment_repository.get_member_day(
            db,
            member_id=member.id,
            day=schedule.date,
            exclude_schedule_id=schedule.id,
            open_attendance_only=True,
        )
        for _, other in open_attendances:
            if intervals_overlap(schedule.start_time, schedule.end_time, other.start_time, other.end_time):
                raise ConflictError(
                    "El socio tiene un check-in abierto en otra clase que se solapa",
                    extra={"conflicting_schedule_id": other.id},
                )

    def _ensure_window(self, schedule: Schedule, now: datetime, after_minutes: int) -> None:
        if schedule.status != ScheduleStatus.SCHEDULED:
            raise PolicyError("La clase no admite check-in en su estado actual")
        before = get_settings().CHECKIN_WINDOW_BEFORE_MINUTES
        if not _within_window(schedule, now, before, after_minutes):
            raise PolicyError(
                f"Fuera de la ventana de check-in "
                f"(de {before} min antes a {after_minutes} min después del inicio)"
            )

    async def _register(
        self,
        db: AsyncSession,
        schedule: Schedule,
        member_identity: Identity,
        *,
        now: datetime,
        window_after_minutes: Optional[int],
        allow_repeat: bool
    ) -> CheckInResult:
        """
        Registra el check-in de un socio en un horario.

        `window_after_minutes=None` desactiva la comprobación de ventana.
        Con `allow_repeat` un check-in repetido devuelve el registro existente
        en lugar de fallar.
        """
        member, enrollment = await self._active_enrollment(db, member_identity, schedule.id)
        state = lifecycle.state_of(enrollment)
        if allow_repeat and isinstance(state, (lifecycle.Attended, lifecycle.CheckedOut)):
            return CheckInResult(
                success=True,
                already_checked_in=True,
                message="Ya has hecho check-in en esta clase",
                enrollment=EnrollmentSchema.model_validate(enrollment),
            )

        new_state = lifecycle.check_in(state, now)

        async with member_calendar_lock.hold((member.id, schedule.date), db):
            await self._ensure_not_present_elsewhere(db, member, schedule)
            if window_after_minutes is not None:
                self._ensure_window(schedule, now, window_after_minutes)
            lifecycle.apply_state(enrollment, new_state)
            if not await enrollment_repository.flush_transition(db, enrollment):
                raise ConflictError("La inscripción fue modificada por otra petición")
            await db.commit()

        logger.info(f"Check-in del socio {member.id} en el horario {schedule.id}")
        return CheckInResult(
            success=True,
            message="Check-in registrado",
            enrollment=EnrollmentSchema.model_validate(enrollment),
        )

    async def check_in(
        self,
        db: AsyncSession,
        schedule_id: int,
        member_identity: Identity,
        *,
        actor: Optional[Identity] = None,
        bypass_window: bool = False,
        now: Optional[datetime] = None
    ) -> CheckInResult:
        """
        Check-in de un socio en un horario.

        Args:
            db: Sesión async de base de datos
            schedule_id: ID del horario
            member_identity: Socio que asiste
            actor: Quien registra el check-in (por defecto, el propio socio)
            bypass_window: Ignorar la ventana horaria (solo personal)
            now: Instante de referencia

        Raises:
            AuthorizationError, NotFoundError, StateError, ConflictError, PolicyError
        """
        self._authorize(member_identity, actor, bypass_window)
        schedule = await schedule_service.get_schedule(db, schedule_id)
        return await self._register(
            db,
            schedule,
            member_identity,
            now=now or utc_now(),
            window_after_minutes=None if bypass_window else get_settings().CHECKIN_WINDOW_AFTER_MINUTES,
            allow_repeat=False,
        )

    async def quick_check_in(
        self,
        db: AsyncSession,
        member_identity: Identity,
        *,
        schedule_code: Optional[str] = None,
        schedule_id: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> CheckInResult:
        """
        Check-in rápido con el código del horario (o su ID). Es idempotente.
        """
        if schedule_code:
            schedule = await schedule_repository.get_by_check_in_code(db, schedule_code.strip())
            if not schedule:
                raise NotFoundError("Código de clase no válido")
        elif schedule_id is not None:
            schedule = await schedule_service.get_schedule(db, schedule_id)
        else:
            raise ValidationError("Debes indicar el código o el ID del horario")

        return await self._register(
            db,
            schedule,
            member_identity,
            now=now or utc_now(),
            window_after_minutes=get_settings().QUICK_CHECKIN_WINDOW_AFTER_MINUTES,
            allow_repeat=True,
        )

    async def check_out(
        self,
        db: AsyncSession,
        schedule_id: int,
        member_identity: Identity,
        *,
        actor: Optional[Identity] = None,
        now: Optional[datetime] = None
    ) -> CheckInResult:
        self._authorize(member_identity, actor, bypass_window=False)
        now = now or utc_now()
        await schedule_service.get_schedule(db, schedule_id)
        member, enrollment = await self._active_enrollment(db, member_identity, schedule_id)

        new_state = lifecycle.check_out(lifecycle.state_of(enrollment), now)
        lifecycle.apply_state(enrollment, new_state)
        if not await enrollment_repository.flush_transition(db, enrollment):
            raise ConflictError("La inscripción fue modificada por otra petición")
        await db.commit()

        logger.info(f"Check-out del socio {member.id} en el horario {schedule_id} ({new_state.minutes} min)")
        return CheckInResult(
            success=True,
            message="Check-out registrado",
            enrollment=EnrollmentSchema.model_validate(enrollment),
            attendance_minutes=new_state.minutes,
        )

    async def list_schedule_check_ins(self, db: AsyncSession, schedule_id: int) -> List[Enrollment]:
        await schedule_service.get_schedule(db, schedule_id)
        return await enrollment_repository.get_by_schedule(db, schedule_id, checked_in_only=True)


attendance_service = AsyncAttendanceService()
