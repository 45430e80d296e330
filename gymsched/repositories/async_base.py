"""
Repositorio base async para operaciones CRUD genéricas.
"""
from typing import TypeVar, Generic, Optional, List, Dict, Any, Type, Union
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from pydantic import BaseModel
import logging

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType")
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


def _as_dict(obj_in: Union[BaseModel, Dict[str, Any]], exclude_unset: bool) -> Dict[str, Any]:
    if isinstance(obj_in, dict):
        return obj_in
    return obj_in.model_dump(exclude_unset=exclude_unset)


class AsyncBaseRepository(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    Repositorio base genérico con operaciones CRUD async.

    Uso:
        class ClassTypeRepository(AsyncBaseRepository[ClassType, ClassTypeCreate, ClassTypeUpdate]):
            # Métodos específicos del modelo
            pass
    """

    def __init__(self, model: Type[ModelType]):
        self.model = model

    async def get(self, db: AsyncSession, id: Any) -> Optional[ModelType]:
        """
        Obtener un objeto por ID.

        Args:
            db: Sesión async de base de datos
            id: ID del objeto a buscar

        Returns:
            El objeto encontrado o None si no existe
        """
        # populate_existing: una instancia ya cargada en la sesión se actualiza desde la BD
        stmt = select(self.model).where(self.model.id == id).execution_options(populate_existing=True)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_multi(
        self,
        db: AsyncSession,
        *,
        skip: int = 0,
        limit: int = 100,
        filters: Optional[Dict[str, Any]] = None
    ) -> List[ModelType]:
        """
        Obtener múltiples objetos con paginación y filtros de igualdad opcionales.

        Args:
            db: Sesión async de base de datos
            skip: Número de registros a omitir (paginación)
            limit: Número máximo de registros a devolver
            filters: Diccionario de filtros adicionales {campo: valor}

        Returns:
            Lista de objetos que cumplen los criterios
        """
        stmt = select(self.model)

        if filters:
            for field, value in filters.items():
                if hasattr(self.model, field):
                    stmt = stmt.where(getattr(self.model, field) == value)
                else:
                    logger.warning(
                        f"Filtro ignorado: {self.model.__name__} no tiene campo '{field}'"
                    )

        stmt = stmt.order_by(self.model.id).offset(skip).limit(limit)

        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def create(
        self,
        db: AsyncSession,
        *,
        obj_in: Union[CreateSchemaType, Dict[str, Any]]
    ) -> ModelType:
        """
        Crear un nuevo objeto (flush, sin commit).

        Args:
            db: Sesión async de base de datos
            obj_in: Datos del objeto a crear (schema Pydantic o dict)

        Returns:
            El objeto creado con ID asignado
        """
        obj_in_data = _as_dict(obj_in, exclude_unset=False)

        valid_fields = {}
        for field, value in obj_in_data.items():
            if hasattr(self.model, field):
                valid_fields[field] = value
            else:
                logger.warning(
                    f"Campo ignorado en create: {self.model.__name__} no tiene campo '{field}'"
                )

        db_obj = self.model(**valid_fields)

        db.add(db_obj)
        await db.flush()
        await db.refresh(db_obj)

        return db_obj

    async def update(
        self,
        db: AsyncSession,
        *,
        db_obj: ModelType,
        obj_in: Union[UpdateSchemaType, Dict[str, Any]]
    ) -> ModelType:
        """
        Actualizar un objeto existente con los campos enviados (flush, sin commit).

        Args:
            db: Sesión async de base de datos
            db_obj: Objeto existente a actualizar
            obj_in: Datos de actualización (schema Pydantic o dict)

        Returns:
            El objeto actualizado
        """
        update_data = _as_dict(obj_in, exclude_unset=True)

        for field, value in update_data.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)
            else:
                logger.warning(
                    f"Campo ignorado en update: {self.model.__name__} no tiene campo '{field}'"
                )

        db.add(db_obj)
        await db.flush()
        await db.refresh(db_obj)

        return db_obj

    async def remove(self, db: AsyncSession, *, id: int) -> ModelType:
        """
        Eliminar un objeto de la base de datos.

        Raises:
            ValueError: Si el objeto no existe
        """
        obj = await self.get(db, id=id)

        if not obj:
            raise ValueError(f"{self.model.__name__} con ID {id} no encontrado")

        await db.delete(obj)
        await db.flush()

        return obj
