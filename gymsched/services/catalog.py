import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from gymsched.core.exceptions import ConflictError, NotFoundError
from gymsched.models.catalog import ClassType, GymClass
from gymsched.repositories.catalog import class_type_repository, gym_class_repository
from gymsched.repositories.user import user_repository
from gymsched.schemas.catalog import (
    ClassTypeCreate,
    ClassTypeUpdate,
    GymClassCreate,
    GymClassUpdate,
    DeletionResult,
)

logger = logging.getLogger("catalog_service")


class AsyncClassTypeService:

    async def get_class_type(self, db: AsyncSession, class_type_id: int) -> ClassType:
        class_type = await class_type_repository.get(db, id=class_type_id)
        if not class_type:
            raise NotFoundError(f"Tipo de clase {class_type_id} no encontrado")
        return class_type

    async def list_class_types(self, db: AsyncSession, *, active_only: bool = True) -> List[ClassType]:
        return await class_type_repository.get_all(db, active_only=active_only)

    async def create_class_type(self, db: AsyncSession, obj_in: ClassTypeCreate) -> ClassType:
        if await class_type_repository.get_by_name(db, obj_in.name):
            raise ConflictError(f"Ya existe un tipo de clase con el nombre '{obj_in.name}'")
        class_type = await class_type_repository.create(db, obj_in=obj_in)
        await db.commit()
        logger.info(f"Tipo de clase creado: {class_type.id} ({class_type.name})")
        return class_type

    async def update_class_type(
        self, db: AsyncSession, class_type_id: int, obj_in: ClassTypeUpdate
    ) -> ClassType:
        class_type = await self.get_class_type(db, class_type_id)
        if obj_in.name and obj_in.name != class_type.name:
            if await class_type_repository.get_by_name(db, obj_in.name):
                raise ConflictError(f"Ya existe un tipo de clase con el nombre '{obj_in.name}'")
        class_type = await class_type_repository.update(db, db_obj=class_type, obj_in=obj_in)
        await db.commit()
        return class_type

    async def delete_class_type(self, db: AsyncSession, class_type_id: int) -> DeletionResult:
        """
        Elimina un tipo de clase en cascada sobre sus clases.

        Si alguna clase dependiente tiene horarios (que nunca se borran), el tipo
        y todas sus clases se desactivan en lugar de eliminarse.
        """
        class_type = await self.get_class_type(db, class_type_id)
        classes = await gym_class_repository.get_by_class_type(db, class_type_id)
        class_ids = [c.id for c in classes]

        if await gym_class_repository.count_schedules(db, class_ids) > 0:
            class_type.is_active = False
            for gym_class in classes:
                gym_class.is_active = False
            await db.commit()
            logger.info(
                f"Tipo de clase {class_type_id} desactivado junto a {len(classes)} clases (con horarios)"
            )
            return DeletionResult(
                deleted=False,
                message="El tipo de clase tiene horarios asociados y se ha desactivado junto a sus clases",
            )

        for class_id in class_ids:
            await gym_class_repository.remove(db, id=class_id)
        await class_type_repository.remove(db, id=class_type_id)
        await db.commit()
        logger.info(f"Tipo de clase {class_type_id} eliminado junto a {len(class_ids)} clases")
        return DeletionResult(deleted=True, message="Tipo de clase eliminado")


class AsyncGymClassService:

    async def _ensure_trainer(self, db: AsyncSession, trainer_id: Optional[int]) -> None:
        if trainer_id is not None and not await user_repository.get_trainer(db, trainer_id):
            raise NotFoundError(f"Entrenador {trainer_id} no encontrado")

    async def get_class(self, db: AsyncSession, class_id: int) -> GymClass:
        gym_class = await gym_class_repository.get(db, id=class_id)
        if not gym_class:
            raise NotFoundError(f"Clase {class_id} no encontrada")
        return gym_class

    async def list_classes(
        self,
        db: AsyncSession,
        *,
        class_type_id: Optional[int] = None,
        trainer_id: Optional[int] = None,
        active_only: bool = True,
        skip: int = 0,
        limit: int = 100
    ) -> List[GymClass]:
        filters = {}
        if class_type_id is not None:
            filters["class_type_id"] = class_type_id
        if trainer_id is not None:
            filters["trainer_id"] = trainer_id
        if active_only:
            filters["is_active"] = True
        return await gym_class_repository.get_multi(db, skip=skip, limit=limit, filters=filters)

    async def create_class(self, db: AsyncSession, obj_in: GymClassCreate) -> GymClass:
        """
        Crea una clase a partir de su tipo.

        Duración y capacidad se heredan del tipo de clase si no se indican.
        """
        class_type = await class_type_service.get_class_type(db, obj_in.class_type_id)
        await self._ensure_trainer(db, obj_in.trainer_id)

        data = obj_in.model_dump()
        if data.get("duration") is None:
            data["duration"] = class_type.duration
        if data.get("max_participants") is None:
            data["max_participants"] = class_type.max_participants

        gym_class = await gym_class_repository.create(db, obj_in=data)
        await db.commit()
        logger.info(f"Clase creada: {gym_class.id} ({gym_class.name}) tipo {class_type.id}")
        return gym_class

    async def update_class(self, db: AsyncSession, class_id: int, obj_in: GymClassUpdate) -> GymClass:
        gym_class = await self.get_class(db, class_id)
        if "trainer_id" in obj_in.model_fields_set:
            await self._ensure_trainer(db, obj_in.trainer_id)
        gym_class = await gym_class_repository.update(db, db_obj=gym_class, obj_in=obj_in)
        await db.commit()
        return gym_class

    async def delete_class(self, db: AsyncSession, class_id: int) -> DeletionResult:
        """Elimina la clase, o la desactiva si tiene horarios."""
        gym_class = await self.get_class(db, class_id)
        if await gym_class_repository.count_schedules(db, [class_id]) > 0:
            gym_class.is_active = False
            await db.commit()
            return DeletionResult(
                deleted=False,
                message="La clase tiene horarios asociados y se ha desactivado",
            )
        await gym_class_repository.remove(db, id=class_id)
        await db.commit()
        return DeletionResult(deleted=True, message="Clase eliminada")


class_type_service = AsyncClassTypeService()
gym_class_service = AsyncGymClassService()
