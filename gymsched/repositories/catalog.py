from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from gymsched.models.catalog import ClassType, GymClass
from gymsched.models.schedule import Schedule
from gymsched.repositories.async_base import AsyncBaseRepository
from gymsched.schemas.catalog import ClassTypeCreate, ClassTypeUpdate, GymClassCreate, GymClassUpdate


class ClassTypeRepository(AsyncBaseRepository[ClassType, ClassTypeCreate, ClassTypeUpdate]):

    async def get_by_name(self, db: AsyncSession, name: str) -> Optional[ClassType]:
        result = await db.execute(select(ClassType).where(ClassType.name == name))
        return result.scalar_one_or_none()

    async def get_all(self, db: AsyncSession, *, active_only: bool = True) -> List[ClassType]:
        stmt = select(ClassType)
        if active_only:
            stmt = stmt.where(ClassType.is_active.is_(True))
        result = await db.execute(stmt.order_by(ClassType.name))
        return list(result.scalars().all())


class GymClassRepository(AsyncBaseRepository[GymClass, GymClassCreate, GymClassUpdate]):

    async def get_by_class_type(self, db: AsyncSession, class_type_id: int) -> List[GymClass]:
        result = await db.execute(select(GymClass).where(GymClass.class_type_id == class_type_id))
        return list(result.scalars().all())

    async def count_schedules(self, db: AsyncSession, class_ids: List[int]) -> int:
        """Número de horarios (en cualquier estado) que referencian estas clases."""
        if not class_ids:
            return 0
        result = await db.execute(
            select(func.count(Schedule.id)).where(Schedule.class_id.in_(class_ids))
        )
        return result.scalar_one()


class_type_repository = ClassTypeRepository(ClassType)
gym_class_repository = GymClassRepository(GymClass)
