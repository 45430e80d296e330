import hashlib
import logging
import random
import string
from contextlib import AsyncExitStack
from datetime import date, datetime
from typing import List, Optional, Tuple

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from gymsched.core.config import get_settings
from gymsched.core.exceptions import (
    CapacityError,
    ConflictError,
    NotFoundError,
    StateError,
    ValidationError,
)
from gymsched.core.locks import member_calendar_lock, trainer_slot_lock
from gymsched.core.timezone_utils import (
    combine_local_to_utc,
    ensure_utc,
    local_wall_clock,
    parse_schedule_date,
    parse_wall_clock,
    utc_now,
)
from gymsched.models.schedule import Schedule, ScheduleStatus
from gymsched.repositories.catalog import gym_class_repository
from gymsched.repositories.enrollment import enrollment_repository
from gymsched.repositories.schedule import schedule_repository
from gymsched.repositories.user import user_repository
from gymsched.schemas.schedule import (
    Schedule as ScheduleSchema,
    ScheduleCancellation,
    ScheduleCreate,
    ScheduleUpdate,
)
from gymsched.services import enrollment_lifecycle as lifecycle
from gymsched.services.cache_service import CacheService, invalidate_trainer_schedules
from gymsched.services.intervals import first_overlap, intervals_overlap

logger = logging.getLogger("schedule_service")


def generate_check_in_code(schedule_id: int) -> str:
    """
    Código corto para el check-in rápido.

    Returns:
        Código en formato: S{schedule_id}_{hash}
    """
    random_str = ''.join(random.choices(string.ascii_letters + string.digits, k=6))
    hash_short = hashlib.sha256(f"{schedule_id}_{random_str}".encode()).hexdigest()[:8]
    return f"S{schedule_id}_{hash_short}"


def resolve_interval(
    date_str: str, start_str: str, end_str: str, gym_timezone: str
) -> Tuple[date, datetime, datetime]:
    """
    Valida fecha y horas locales y devuelve (fecha, inicio UTC, fin UTC).

    Raises:
        ValidationError: formato incorrecto o fin no posterior al inicio
    """
    try:
        day = parse_schedule_date(date_str)
        start_clock = parse_wall_clock(start_str)
        end_clock = parse_wall_clock(end_str)
    except ValueError as e:
        raise ValidationError(str(e))

    start = combine_local_to_utc(day, start_clock, gym_timezone)
    end = combine_local_to_utc(day, end_clock, gym_timezone)
    if end <= start:
        raise ValidationError("La hora de fin debe ser posterior a la hora de inicio")
    return day, start, end


class AsyncScheduleService:

    async def _ensure_trainer(self, db: AsyncSession, trainer_id: int) -> None:
        if not await user_repository.get_trainer(db, trainer_id):
            raise NotFoundError(f"Entrenador {trainer_id} no encontrado")

    async def _ensure_trainer_available(
        self,
        db: AsyncSession,
        *,
        trainer_id: int,
        day: date,
        start: datetime,
        end: datetime,
        exclude_id: Optional[int] = None
    ) -> None:
        """
        Rechaza la franja si se solapa con otro horario no cancelado del
        entrenador en la misma fecha. Debe llamarse con el lock del entrenador.
        """
        existing = await schedule_repository.get_trainer_day(
            db, trainer_id=trainer_id, day=day, exclude_id=exclude_id
        )
        clash = first_overlap(start, end, existing)
        if clash is not None:
            logger.info(
                f"Conflicto de horario: entrenador {trainer_id} ya tiene el horario {clash.id} "
                f"({clash.start_time.isoformat()} - {clash.end_time.isoformat()})"
            )
            raise ConflictError(
                "El entrenador ya tiene una clase programada en ese horario",
                extra={"conflicting_schedule_id": clash.id},
            )

    async def _ensure_members_available(
        self,
        db: AsyncSession,
        schedule: Schedule,
        *,
        day: date,
        start: datetime,
        end: datetime,
        member_locks: AsyncExitStack
    ) -> None:
        """
        Rechaza la nueva franja si algún socio inscrito tiene otra clase solapada
        ese día. Toma el lock (socio, fecha) de cada inscrito, en orden de ID,
        y los deja en `member_locks` hasta el commit.
        """
        enrollments = await enrollment_repository.get_by_schedule(db, schedule.id)
        for member_id in sorted({e.member_id for e in enrollments}):
            await member_locks.enter_async_context(member_calendar_lock.hold((member_id, day), db))
            same_day = await enrollment_repository.get_member_day(
                db, member_id=member_id, day=day, exclude_schedule_id=schedule.id
            )
            for _, other in same_day:
                if intervals_overlap(start, end, other.start_time, other.end_time):
                    raise ConflictError(
                        "Un socio inscrito tiene otra clase que se solaparía con el nuevo horario",
                        extra={"conflicting_schedule_id": other.id, "member_id": member_id},
                    )

    async def get_schedule(self, db: AsyncSession, schedule_id: int) -> Schedule:
        schedule = await schedule_repository.get(db, id=schedule_id)
        if not schedule:
            raise NotFoundError(f"Horario {schedule_id} no encontrado")
        return schedule

    async def create_schedule(
        self,
        db: AsyncSession,
        obj_in: ScheduleCreate,
        *,
        redis_client: Optional[Redis] = None
    ) -> Schedule:
        """
        Programa una ocurrencia de una clase.

        Args:
            db: Sesión async de base de datos
            obj_in: Clase, fecha/horas locales, entrenador y datos opcionales
            redis_client: Cliente Redis para invalidar la caché del entrenador

        Returns:
            El horario creado

        Note:
            Capacidad y sala se heredan de la clase si no se indican.
            La comprobación de solapamiento y la inserción se hacen bajo el lock
            (entrenador, fecha) hasta el commit.
        """
        settings = get_settings()
        day, start, end = resolve_interval(
            obj_in.date, obj_in.start_time, obj_in.end_time, settings.GYM_TIMEZONE
        )
        if obj_in.max_participants is not None and obj_in.max_participants < 1:
            raise ValidationError("max_participants debe ser al menos 1")

        gym_class = await gym_class_repository.get(db, id=obj_in.class_id)
        if not gym_class:
            raise NotFoundError(f"Clase {obj_in.class_id} no encontrada")
        await self._ensure_trainer(db, obj_in.trainer_id)
        if not gym_class.is_active:
            raise StateError("No se pueden programar horarios para una clase inactiva")

        async with trainer_slot_lock.hold((obj_in.trainer_id, day), db):
            await self._ensure_trainer_available(
                db, trainer_id=obj_in.trainer_id, day=day, start=start, end=end
            )
            schedule = Schedule(
                class_id=gym_class.id,
                trainer_id=obj_in.trainer_id,
                date=day,
                start_time=start,
                end_time=end,
                room=obj_in.room if obj_in.room is not None else gym_class.room,
                max_participants=obj_in.max_participants or gym_class.max_participants,
                current_participants=0,
                status=ScheduleStatus.SCHEDULED,
                notes=obj_in.notes,
            )
            db.add(schedule)
            await db.flush()
            schedule.check_in_code = generate_check_in_code(schedule.id)
            await db.commit()
        await db.refresh(schedule)

        logger.info(
            f"Horario {schedule.id} creado: clase {gym_class.id}, entrenador {schedule.trainer_id}, "
            f"{schedule.start_time.isoformat()} - {schedule.end_time.isoformat()}"
        )
        await invalidate_trainer_schedules(redis_client, schedule.trainer_id)
        return schedule

    async def update_schedule(
        self,
        db: AsyncSession,
        schedule_id: int,
        obj_in: ScheduleUpdate,
        *,
        redis_client: Optional[Redis] = None
    ) -> Schedule:
        """
        Edita un horario. Los horarios completados son inmutables.

        Las partes de fecha/hora que no se envían se toman del horario actual
        (hora local del gimnasio) y la franja resultante se revalida contra los
        demás horarios del entrenador, excluyendo el propio, y contra las demás
        clases de cada socio inscrito.
        """
        settings = get_settings()
        schedule = await self.get_schedule(db, schedule_id)
        if schedule.status == ScheduleStatus.COMPLETED:
            raise StateError("No se puede modificar un horario completado")

        fields = obj_in.model_dump(exclude_unset=True)
        tz = settings.GYM_TIMEZONE

        day, start, end = resolve_interval(
            fields.get("date") or schedule.date.isoformat(),
            fields.get("start_time") or local_wall_clock(schedule.start_time, tz),
            fields.get("end_time") or local_wall_clock(schedule.end_time, tz),
            tz,
        )

        trainer_id = fields.get("trainer_id") or schedule.trainer_id
        trainer_changed = trainer_id != schedule.trainer_id
        if trainer_changed:
            await self._ensure_trainer(db, trainer_id)

        max_participants = fields.get("max_participants")
        if max_participants is not None:
            if max_participants < 1:
                raise ValidationError("max_participants debe ser al menos 1")
            if max_participants < schedule.current_participants:
                raise CapacityError(
                    f"La capacidad no puede ser menor que los inscritos actuales ({schedule.current_participants})"
                )

        timing_changed = (
            trainer_changed
            or day != schedule.date
            or start != ensure_utc(schedule.start_time)
            or end != ensure_utc(schedule.end_time)
        )
        previous_trainer_id = schedule.trainer_id

        async with trainer_slot_lock.hold((trainer_id, day), db), AsyncExitStack() as member_locks:
            if timing_changed and schedule.status != ScheduleStatus.CANCELLED:
                await self._ensure_trainer_available(
                    db, trainer_id=trainer_id, day=day, start=start, end=end, exclude_id=schedule.id
                )
                await self._ensure_members_available(
                    db, schedule, day=day, start=start, end=end, member_locks=member_locks
                )
            schedule.date = day
            schedule.start_time = start
            schedule.end_time = end
            schedule.trainer_id = trainer_id
            if max_participants is not None:
                schedule.max_participants = max_participants
            if "room" in fields:
                schedule.room = fields["room"]
            if "notes" in fields:
                schedule.notes = fields["notes"]
            await db.commit()

        logger.info(f"Horario {schedule.id} actualizado (campos: {sorted(fields)})")
        await invalidate_trainer_schedules(redis_client, previous_trainer_id, trainer_id)
        return schedule

    async def cancel_schedule(
        self,
        db: AsyncSession,
        schedule_id: int,
        *,
        redis_client: Optional[Redis] = None,
        now: Optional[datetime] = None
    ) -> ScheduleCancellation:
        """
        Cancela un horario y todas sus inscripciones activas en una sola transacción.

        Cancelar un horario ya cancelado no hace nada. Las plazas no se devuelven.
        """
        now = now or utc_now()
        schedule = await self.get_schedule(db, schedule_id)
        if schedule.status == ScheduleStatus.COMPLETED:
            raise StateError("No se puede cancelar un horario completado")
        if schedule.status == ScheduleStatus.CANCELLED:
            return ScheduleCancellation(
                schedule=ScheduleSchema.model_validate(schedule),
                cancelled_enrollments=0,
                already_cancelled=True,
            )

        # Primero el horario: bloquea la fila y corta nuevas inscripciones
        schedule.status = ScheduleStatus.CANCELLED
        await db.flush()

        enrollments = await enrollment_repository.get_by_schedule(db, schedule_id)
        for enrollment in enrollments:
            lifecycle.apply_state(enrollment, lifecycle.cancel(lifecycle.state_of(enrollment), now))
            if not await enrollment_repository.flush_transition(db, enrollment):
                raise ConflictError("Una inscripción del horario fue modificada por otra petición; reintenta la cancelación")
        await db.commit()

        logger.info(f"Horario {schedule_id} cancelado con {len(enrollments)} inscripciones canceladas")
        await invalidate_trainer_schedules(redis_client, schedule.trainer_id)
        return ScheduleCancellation(
            schedule=ScheduleSchema.model_validate(schedule),
            cancelled_enrollments=len(enrollments),
        )

    async def complete_schedule(
        self,
        db: AsyncSession,
        schedule_id: int,
        *,
        redis_client: Optional[Redis] = None,
        now: Optional[datetime] = None
    ) -> Schedule:
        now = now or utc_now()
        schedule = await self.get_schedule(db, schedule_id)
        if schedule.status != ScheduleStatus.SCHEDULED:
            raise StateError(f"No se puede completar un horario en estado {schedule.status.value}")
        if now < schedule.start_time:
            raise StateError("No se puede completar un horario que aún no ha comenzado")
        schedule.status = ScheduleStatus.COMPLETED
        await db.commit()
        await invalidate_trainer_schedules(redis_client, schedule.trainer_id)
        return schedule

    async def list_schedules(
        self,
        db: AsyncSession,
        *,
        day: Optional[date] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        class_id: Optional[int] = None,
        trainer_id: Optional[int] = None,
        status: Optional[ScheduleStatus] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Schedule]:
        return await schedule_repository.search(
            db,
            day=day,
            start_date=start_date,
            end_date=end_date,
            class_id=class_id,
            trainer_id=trainer_id,
            statuses=[status] if status else None,
            skip=skip,
            limit=limit,
        )

    async def list_trainer_schedules(
        self,
        db: AsyncSession,
        trainer_id: int,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[ScheduleStatus] = None,
        redis_client: Optional[Redis] = None
    ) -> List[ScheduleSchema]:
        """Agenda de un entrenador (cacheada en Redis si hay cliente)."""
        settings = get_settings()
        status_key = status.value if status else "all"
        cache_key = f"schedules:trainer:{trainer_id}:{start_date}:{end_date}:{status_key}"

        async def db_fetch():
            schedules = await schedule_repository.search(
                db,
                trainer_id=trainer_id,
                start_date=start_date,
                end_date=end_date,
                statuses=[status] if status else None,
                limit=1000,
            )
            return [ScheduleSchema.model_validate(s) for s in schedules]

        return await CacheService.get_or_set(
            redis_client=redis_client,
            cache_key=cache_key,
            db_fetch_func=db_fetch,
            model_class=ScheduleSchema,
            expiry_seconds=settings.CACHE_TTL_SCHEDULES,
            is_list=True,
        )


schedule_service = AsyncScheduleService()
