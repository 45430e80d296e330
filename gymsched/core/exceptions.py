"""
Jerarquía de errores del motor de clases.

Cada error lleva un `kind` estable y el código HTTP con el que se expone.
Los servicios lanzan estos errores; la capa HTTP los traduce en
`{"detail": ..., "kind": ...}` mediante `app_error_handler`.
"""
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

# Literal: el nombre de la constante 422 cambia según la versión de Starlette
HTTP_422 = 422


class AppError(Exception):
    kind = "error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, *, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        body = {"detail": self.message, "kind": self.kind}
        if self.extra:
            body.update(self.extra)
        return body


class ValidationError(AppError):
    """Fecha/hora mal formada o campo obligatorio ausente."""
    kind = "validation_error"
    status_code = HTTP_422


class NotFoundError(AppError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class AuthorizationError(AppError):
    """El rol de la identidad no permite la acción."""
    kind = "authorization_error"
    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(AppError):
    """Solapamiento de horarios, inscripción duplicada o doble reserva."""
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class CapacityError(AppError):
    kind = "capacity_exceeded"
    status_code = status.HTTP_409_CONFLICT


class StateError(AppError):
    """Transición no permitida para el estado actual del recurso."""
    kind = "invalid_state"
    status_code = status.HTTP_409_CONFLICT


class PolicyError(AppError):
    """Fuera de la ventana de check-in o del plazo de cancelación."""
    kind = "policy_violation"
    status_code = HTTP_422


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
