from typing import Optional

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gymsched.core.roles import TEACHING_ROLES
from gymsched.models.user import Member, User
from gymsched.repositories.async_base import AsyncBaseRepository


class UserRepository(AsyncBaseRepository[User, BaseModel, BaseModel]):

    async def get_trainer(self, db: AsyncSession, user_id: int) -> Optional[User]:
        """Usuario activo con rol que puede impartir clases (entrenador o administrador)."""
        result = await db.execute(
            select(User).where(
                User.id == user_id,
                User.is_active.is_(True),
                User.role.in_(TEACHING_ROLES),
            )
        )
        return result.scalar_one_or_none()


class MemberRepository(AsyncBaseRepository[Member, BaseModel, BaseModel]):

    async def get_by_user_id(self, db: AsyncSession, user_id: int) -> Optional[Member]:
        result = await db.execute(select(Member).where(Member.user_id == user_id))
        return result.scalar_one_or_none()


user_repository = UserRepository(User)
member_repository = MemberRepository(Member)
