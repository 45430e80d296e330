"""
Ciclo de vida de una inscripción como estado explícito.

    Enrolled ──check_in──> Attended(since) ──check_out──> CheckedOut(since, until)
       │                      │                              │
       └──────────cancel──────┴──────────────cancel──────────┴──> Cancelled(at)

Las columnas persistidas (`status`, `checkin_time`, `checkout_time`,
`cancellation_time`) se derivan siempre del estado con `apply_state`.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from gymsched.core.exceptions import StateError
from gymsched.models.schedule import Enrollment, EnrollmentStatus


@dataclass(frozen=True)
class Enrolled:
    pass


@dataclass(frozen=True)
class Attended:
    since: datetime


@dataclass(frozen=True)
class CheckedOut:
    since: datetime
    until: datetime

    @property
    def minutes(self) -> int:
        return int((self.until - self.since).total_seconds() // 60)


@dataclass(frozen=True)
class Cancelled:
    at: Optional[datetime]


EnrollmentState = Union[Enrolled, Attended, CheckedOut, Cancelled]


def state_of(enrollment: Enrollment) -> EnrollmentState:
    status = EnrollmentStatus(enrollment.status)
    if status == EnrollmentStatus.CANCELLED:
        return Cancelled(at=enrollment.cancellation_time)
    if status == EnrollmentStatus.ENROLLED:
        return Enrolled()
    if status == EnrollmentStatus.ATTENDED:
        if enrollment.checkin_time is None:
            raise StateError(f"Inscripción {enrollment.id} marcada como asistida sin hora de check-in")
        if enrollment.checkout_time is not None:
            return CheckedOut(since=enrollment.checkin_time, until=enrollment.checkout_time)
        return Attended(since=enrollment.checkin_time)
    raise ValueError(f"Estado de inscripción desconocido: {status!r}")


def apply_state(enrollment: Enrollment, state: EnrollmentState) -> None:
    if isinstance(state, Enrolled):
        enrollment.status = EnrollmentStatus.ENROLLED
        enrollment.checkin_time = None
        enrollment.checkout_time = None
        enrollment.cancellation_time = None
    elif isinstance(state, Attended):
        enrollment.status = EnrollmentStatus.ATTENDED
        enrollment.checkin_time = state.since
        enrollment.checkout_time = None
    elif isinstance(state, CheckedOut):
        enrollment.status = EnrollmentStatus.ATTENDED
        enrollment.checkin_time = state.since
        enrollment.checkout_time = state.until
    elif isinstance(state, Cancelled):
        # Las horas de asistencia se conservan como histórico
        enrollment.status = EnrollmentStatus.CANCELLED
        enrollment.cancellation_time = state.at
    else:
        raise ValueError(f"Estado de inscripción desconocido: {state!r}")


def check_in(state: EnrollmentState, at: datetime) -> Attended:
    if isinstance(state, Enrolled):
        return Attended(since=at)
    if isinstance(state, (Attended, CheckedOut)):
        raise StateError("El socio ya ha hecho check-in en esta clase")
    raise StateError("La inscripción está cancelada")


def check_out(state: EnrollmentState, at: datetime) -> CheckedOut:
    if isinstance(state, Attended):
        if at < state.since:
            raise StateError("La hora de check-out no puede ser anterior al check-in")
        return CheckedOut(since=state.since, until=at)
    if isinstance(state, CheckedOut):
        raise StateError("El socio ya ha hecho check-out de esta clase")
    if isinstance(state, Enrolled):
        raise StateError("No se puede hacer check-out sin check-in previo")
    raise StateError("La inscripción está cancelada")


def cancel(state: EnrollmentState, at: datetime) -> Cancelled:
    if isinstance(state, Cancelled):
        raise StateError("La inscripción ya está cancelada")
    return Cancelled(at=at)
