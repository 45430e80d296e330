"""
Repositorio async de horarios.

Incluye las consultas que alimentan la detección de solapamientos del
entrenador y el contador de plazas con compare-and-swap.
"""
from datetime import date
from typing import List, Optional, Sequence

from sqlalchemy import select, update, and_
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from gymsched.models.schedule import Schedule, ScheduleStatus
from gymsched.repositories.async_base import AsyncBaseRepository
from gymsched.schemas.schedule import ScheduleCreate, ScheduleUpdate
from gymsched.core.timezone_utils import utc_now

logger = logging.getLogger(__name__)


class ScheduleRepository(AsyncBaseRepository[Schedule, ScheduleCreate, ScheduleUpdate]):

    async def get_by_check_in_code(self, db: AsyncSession, code: str) -> Optional[Schedule]:
        result = await db.execute(select(Schedule).where(Schedule.check_in_code == code))
        return result.scalar_one_or_none()

    async def get_trainer_day(
        self,
        db: AsyncSession,
        *,
        trainer_id: int,
        day: date,
        exclude_id: Optional[int] = None
    ) -> List[Schedule]:
        """
        Horarios no cancelados del entrenador en una fecha.

        Args:
            db: Sesión async de base de datos
            trainer_id: ID del entrenador
            day: Fecha local del gimnasio
            exclude_id: Horario a excluir (el propio horario al editarlo)

        Returns:
            Lista de horarios candidatos a solaparse
        """
        stmt = select(Schedule).where(
            Schedule.trainer_id == trainer_id,
            Schedule.date == day,
            Schedule.status != ScheduleStatus.CANCELLED,
        )
        if exclude_id is not None:
            stmt = stmt.where(Schedule.id != exclude_id)
        result = await db.execute(stmt.order_by(Schedule.start_time))
        return list(result.scalars().all())

    async def search(
        self,
        db: AsyncSession,
        *,
        day: Optional[date] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        class_id: Optional[int] = None,
        trainer_id: Optional[int] = None,
        statuses: Optional[Sequence[ScheduleStatus]] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Schedule]:
        stmt = select(Schedule)
        if day is not None:
            stmt = stmt.where(Schedule.date == day)
        if start_date is not None:
            stmt = stmt.where(Schedule.date >= start_date)
        if end_date is not None:
            stmt = stmt.where(Schedule.date <= end_date)
        if class_id is not None:
            stmt = stmt.where(Schedule.class_id == class_id)
        if trainer_id is not None:
            stmt = stmt.where(Schedule.trainer_id == trainer_id)
        if statuses:
            stmt = stmt.where(Schedule.status.in_(list(statuses)))
        stmt = stmt.order_by(Schedule.start_time, Schedule.id).offset(skip).limit(limit)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def try_reserve_seat(self, db: AsyncSession, schedule_id: int) -> bool:
        """
        Incrementa `current_participants` solo si queda plaza y el horario sigue abierto.

        Es un compare-and-swap en una única sentencia UPDATE: de dos peticiones
        concurrentes por la última plaza solo una obtiene rowcount == 1.

        Returns:
            True si se reservó la plaza
        """
        stmt = (
            update(Schedule)
            .where(
                and_(
                    Schedule.id == schedule_id,
                    Schedule.status == ScheduleStatus.SCHEDULED,
                    Schedule.current_participants < Schedule.max_participants,
                )
            )
            .values(
                current_participants=Schedule.current_participants + 1,
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        reserved = result.rowcount == 1
        if not reserved:
            logger.info(f"Sin plaza disponible en el horario {schedule_id} (CAS fallido)")
        return reserved

    async def release_seat(self, db: AsyncSession, schedule_id: int) -> bool:
        """Decrementa `current_participants` sin bajar de 0."""
        stmt = (
            update(Schedule)
            .where(Schedule.id == schedule_id, Schedule.current_participants > 0)
            .values(
                current_participants=Schedule.current_participants - 1,
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1


schedule_repository = ScheduleRepository(Schedule)
