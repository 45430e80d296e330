from typing import Optional
from datetime import datetime
from pydantic import BaseModel

from gymsched.models.schedule import EnrollmentStatus, BillingStatus
from gymsched.schemas.schedule import Schedule


class Enrollment(BaseModel):
    id: int
    member_id: int
    schedule_id: int
    enrollment_date: datetime
    status: EnrollmentStatus
    checkin_time: Optional[datetime] = None
    checkout_time: Optional[datetime] = None
    cancellation_time: Optional[datetime] = None
    billing_status: BillingStatus
    invoice_reference: Optional[str] = None
    billing_warning: Optional[str] = None

    model_config = {"from_attributes": True}


class EnrollmentResult(BaseModel):
    """Resultado de una inscripción. La facturación nunca revierte la inscripción."""
    enrollment: Enrollment
    schedule: Schedule
    billing_status: BillingStatus
    invoice_reference: Optional[str] = None
    billing_warning: Optional[str] = None


class MemberSchedule(BaseModel):
    """Inscripción junto con su horario (listados de próximas clases e historial)."""
    enrollment: Enrollment
    schedule: Schedule
    class_name: str


class CheckInRequest(BaseModel):
    # Solo entrenadores/administradores pueden indicar otro socio o saltarse la ventana
    member_user_id: Optional[int] = None
    bypass_window: bool = False


class QuickCheckInRequest(BaseModel):
    schedule_code: Optional[str] = None
    schedule_id: Optional[int] = None


class CheckInResult(BaseModel):
    success: bool
    already_checked_in: bool = False
    message: str
    enrollment: Enrollment
    attendance_minutes: Optional[int] = None
