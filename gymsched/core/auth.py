"""
Proveedor de identidad de la API.

La autenticación es externa: un gateway delante de la API valida el token y
propaga la identidad en las cabeceras `X-User-ID` y `X-User-Role`.
"""
import logging

from fastapi import Depends, Header
from pydantic import BaseModel

from gymsched.core.exceptions import AuthorizationError
from gymsched.core.roles import is_privileged
from gymsched.models.user import UserRole

logger = logging.getLogger(__name__)


class Identity(BaseModel):
    id: int
    role: UserRole

    @property
    def is_privileged(self) -> bool:
        return is_privileged(self.role)


async def get_current_identity(
    x_user_id: int = Header(..., alias="X-User-ID"),
    x_user_role: str = Header("member", alias="X-User-Role"),
) -> Identity:
    try:
        role = UserRole(x_user_role.strip().lower())
    except ValueError:
        logger.warning(f"Rol no reconocido en cabecera: {x_user_role!r}")
        raise AuthorizationError(f"Rol desconocido: {x_user_role}")
    return Identity(id=x_user_id, role=role)


async def require_privileged(identity: Identity = Depends(get_current_identity)) -> Identity:
    """Solo entrenadores y administradores."""
    if not identity.is_privileged:
        raise AuthorizationError("Se requiere rol de entrenador o administrador")
    return identity
