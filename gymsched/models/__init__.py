from gymsched.models.user import User, Member, UserRole
from gymsched.models.catalog import ClassType, GymClass, ClassDifficultyLevel
from gymsched.models.schedule import (
    Schedule,
    Enrollment,
    ScheduleStatus,
    EnrollmentStatus,
    BillingStatus,
)
from gymsched.models.invoice import Invoice, InvoiceStatus
