"""
Permisos por rol.

Las tablas cubren todos los valores de `UserRole`; un rol sin entrada es un
error de programación y se rechaza en lugar de tratarse como "sin permisos".
"""
from typing import Dict

from gymsched.models.user import UserRole

# Puede saltarse la ventana de check-in y el plazo de cancelación,
# y actuar en nombre de otros socios
_PRIVILEGED: Dict[UserRole, bool] = {
    UserRole.MEMBER: False,
    UserRole.TRAINER: True,
    UserRole.ADMIN: True,
}

# Puede impartir clases (asignable como entrenador de un horario)
_CAN_TEACH: Dict[UserRole, bool] = {
    UserRole.MEMBER: False,
    UserRole.TRAINER: True,
    UserRole.ADMIN: True,
}

for _table in (_PRIVILEGED, _CAN_TEACH):
    if set(_table) != set(UserRole):
        raise RuntimeError(f"Tabla de permisos incompleta: faltan {set(UserRole) - set(_table)}")


def _lookup(table: Dict[UserRole, bool], role) -> bool:
    try:
        return table[UserRole(role)]
    except (KeyError, ValueError):
        raise ValueError(f"Rol desconocido: {role!r}")


def is_privileged(role) -> bool:
    return _lookup(_PRIVILEGED, role)


def can_teach(role) -> bool:
    return _lookup(_CAN_TEACH, role)


def can_enroll(role) -> bool:
    """Solo los socios se inscriben como asistentes."""
    return not is_privileged(role)


TEACHING_ROLES = tuple(role for role in UserRole if _CAN_TEACH[role])
