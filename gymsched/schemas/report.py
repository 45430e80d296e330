from decimal import Decimal
from pydantic import BaseModel


class PopularClass(BaseModel):
    class_id: int
    class_name: str
    enrollment_count: int


class AttendanceStats(BaseModel):
    total_schedules: int
    total_enrollments: int
    total_attendance: int
    attendance_rate: float


class ClassRevenue(BaseModel):
    class_id: int
    class_name: str
    price: Decimal
    enrollment_count: int
    total_revenue: Decimal
