from sqlalchemy import Column, Date, ForeignKey, Index, Integer, String, Text, Enum, CheckConstraint, text
import enum

from gymsched.db.base_class import Base
from gymsched.db.types import UTCDateTime
from gymsched.core.timezone_utils import utc_now


class ScheduleStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class EnrollmentStatus(str, enum.Enum):
    ENROLLED = "enrolled"
    ATTENDED = "attended"
    CANCELLED = "cancelled"


class BillingStatus(str, enum.Enum):
    NOT_REQUIRED = "not_required"
    PENDING = "pending"
    INVOICED = "invoiced"
    FAILED = "failed"


class Schedule(Base):
    """Ocurrencia concreta de una clase: fecha, franja horaria (UTC) y entrenador"""
    __tablename__ = "schedule"

    id = Column(Integer, primary_key=True, index=True)
    class_id = Column(Integer, ForeignKey("gym_class.id"), nullable=False, index=True)
    trainer_id = Column(Integer, ForeignKey("user.id"), nullable=False)
    date = Column(Date, nullable=False)  # fecha local del gimnasio
    start_time = Column(UTCDateTime, nullable=False, index=True)
    end_time = Column(UTCDateTime, nullable=False)
    room = Column(String(50), nullable=True)
    max_participants = Column(Integer, nullable=False)
    current_participants = Column(Integer, nullable=False, default=0)
    status = Column(Enum(ScheduleStatus), nullable=False, default=ScheduleStatus.SCHEDULED)
    notes = Column(Text, nullable=True)
    check_in_code = Column(String(32), unique=True, nullable=True)

    created_at = Column(UTCDateTime, default=utc_now, nullable=False)
    updated_at = Column(UTCDateTime, default=utc_now, onupdate=utc_now, nullable=False)

    __table_args__ = (
        CheckConstraint('current_participants >= 0', name='check_schedule_participants_non_negative'),
        CheckConstraint('current_participants <= max_participants', name='check_schedule_capacity'),
        CheckConstraint('end_time > start_time', name='check_schedule_interval'),
        Index('ix_schedule_trainer_date', 'trainer_id', 'date'),
    )

    @property
    def available_spots(self) -> int:
        return max(self.max_participants - (self.current_participants or 0), 0)


class Enrollment(Base):
    """Inscripción de un socio en un horario. Nunca se elimina."""
    __tablename__ = "enrollment"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("member.id"), nullable=False, index=True)
    schedule_id = Column(Integer, ForeignKey("schedule.id"), nullable=False, index=True)
    enrollment_date = Column(UTCDateTime, default=utc_now, nullable=False)
    status = Column(Enum(EnrollmentStatus), nullable=False, default=EnrollmentStatus.ENROLLED)
    checkin_time = Column(UTCDateTime, nullable=True)
    checkout_time = Column(UTCDateTime, nullable=True)
    cancellation_time = Column(UTCDateTime, nullable=True)

    billing_status = Column(Enum(BillingStatus), nullable=False, default=BillingStatus.NOT_REQUIRED)
    invoice_reference = Column(String(64), nullable=True)
    billing_warning = Column(Text, nullable=True)
    version = Column(Integer, nullable=False)

    created_at = Column(UTCDateTime, default=utc_now, nullable=False)
    updated_at = Column(UTCDateTime, default=utc_now, onupdate=utc_now, nullable=False)

    # Bloqueo optimista: dos transiciones concurrentes sobre la misma inscripción
    # no pueden aplicarse ambas
    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint('checkout_time IS NULL OR checkin_time IS NOT NULL', name='check_checkout_after_checkin'),
        # Una sola inscripción activa por (socio, horario)
        Index(
            'uq_enrollment_active_member_schedule',
            'member_id', 'schedule_id',
            unique=True,
            sqlite_where=text("status != 'CANCELLED'"),
            postgresql_where=text("status != 'CANCELLED'"),
        ),
    )
