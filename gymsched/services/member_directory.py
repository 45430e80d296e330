"""
Directorio de socios: traduce una identidad externa a su ficha de socio.
"""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gymsched.core.auth import Identity
from gymsched.core.exceptions import NotFoundError
from gymsched.models.user import Member
from gymsched.repositories.user import member_repository

logger = logging.getLogger(__name__)


def member_code_for(user_id: int) -> str:
    """Código de socio determinista para fichas creadas automáticamente."""
    return f"GM{user_id:08d}"


class MemberDirectory:

    async def find(self, db: AsyncSession, identity: Identity) -> Optional[Member]:
        return await member_repository.get_by_user_id(db, identity.id)

    async def resolve(self, db: AsyncSession, identity: Identity) -> Member:
        member = await self.find(db, identity)
        if not member:
            raise NotFoundError(f"No existe ficha de socio para el usuario {identity.id}")
        return member

    async def resolve_or_provision(self, db: AsyncSession, identity: Identity) -> Member:
        """
        Devuelve la ficha del socio, creándola si no existe.

        Se llama antes de cualquier otra escritura de la transacción: si otra
        petición crea la ficha a la vez, se deshace y se reutiliza la existente.
        """
        member = await self.find(db, identity)
        if member:
            return member

        try:
            member = await member_repository.create(
                db,
                obj_in={"user_id": identity.id, "member_code": member_code_for(identity.id)},
            )
            logger.info(f"Ficha de socio creada automáticamente para el usuario {identity.id}")
            return member
        except IntegrityError:
            await db.rollback()
            logger.info(f"Ficha de socio del usuario {identity.id} creada concurrentemente")
            return await self.resolve(db, identity)


member_directory = MemberDirectory()
