"""
Informes de solo lectura sobre clases, asistencia e ingresos.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from gymsched.core.exceptions import ValidationError
from gymsched.models.catalog import GymClass
from gymsched.models.schedule import Enrollment, EnrollmentStatus, Schedule, ScheduleStatus
from gymsched.schemas.report import AttendanceStats, ClassRevenue, PopularClass

logger = logging.getLogger(__name__)


def _date_range(stmt, start_date: Optional[date], end_date: Optional[date]):
    if start_date and end_date and end_date < start_date:
        raise ValidationError("end_date no puede ser anterior a start_date")
    if start_date:
        stmt = stmt.where(Schedule.date >= start_date)
    if end_date:
        stmt = stmt.where(Schedule.date <= end_date)
    return stmt


class AsyncReportService:

    async def popular_classes(self, db: AsyncSession, *, limit: int = 5) -> List[PopularClass]:
        """Clases ordenadas por número de inscripciones no canceladas."""
        enrollment_count = func.count(Enrollment.id).label("enrollment_count")
        stmt = (
            select(GymClass.id, GymClass.name, enrollment_count)
            .join(Schedule, Schedule.class_id == GymClass.id)
            .join(Enrollment, Enrollment.schedule_id == Schedule.id)
            .where(Enrollment.status != EnrollmentStatus.CANCELLED)
            .group_by(GymClass.id, GymClass.name)
            .order_by(enrollment_count.desc(), GymClass.id)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return [
            PopularClass(class_id=row.id, class_name=row.name, enrollment_count=row.enrollment_count)
            for row in result.all()
        ]

    async def attendance_stats(
        self,
        db: AsyncSession,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> AttendanceStats:
        """
        Estadísticas de asistencia en un rango de fechas (ambos extremos incluidos).

        Returns:
            AttendanceStats con la tasa de asistencia en porcentaje (2 decimales)
        """
        schedules_stmt = _date_range(
            select(func.count(Schedule.id)).where(Schedule.status != ScheduleStatus.CANCELLED),
            start_date,
            end_date,
        )
        total_schedules = (await db.execute(schedules_stmt)).scalar_one()

        enrollments_stmt = _date_range(
            select(Enrollment.status, func.count(Enrollment.id))
            .join(Schedule, Schedule.id == Enrollment.schedule_id)
            .where(Enrollment.status != EnrollmentStatus.CANCELLED)
            .group_by(Enrollment.status),
            start_date,
            end_date,
        )
        counts = {status: count for status, count in (await db.execute(enrollments_stmt)).all()}

        total_enrollments = sum(counts.values())
        total_attendance = counts.get(EnrollmentStatus.ATTENDED, 0)
        attendance_rate = 0.0
        if total_enrollments > 0:
            attendance_rate = round(total_attendance / total_enrollments * 100, 2)

        return AttendanceStats(
            total_schedules=total_schedules,
            total_enrollments=total_enrollments,
            total_attendance=total_attendance,
            attendance_rate=attendance_rate,
        )

    async def class_revenue(
        self,
        db: AsyncSession,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[ClassRevenue]:
        """Ingresos por clase: inscripciones no canceladas × precio de la clase."""
        enrollment_count = func.count(Enrollment.id).label("enrollment_count")
        stmt = _date_range(
            select(GymClass.id, GymClass.name, GymClass.price, enrollment_count)
            .join(Schedule, Schedule.class_id == GymClass.id)
            .join(Enrollment, Enrollment.schedule_id == Schedule.id)
            .where(Enrollment.status != EnrollmentStatus.CANCELLED)
            .group_by(GymClass.id, GymClass.name, GymClass.price)
            .order_by(GymClass.id),
            start_date,
            end_date,
        )
        result = await db.execute(stmt)

        revenue = []
        for row in result.all():
            price = Decimal(row.price or 0)
            revenue.append(
                ClassRevenue(
                    class_id=row.id,
                    class_name=row.name,
                    price=price,
                    enrollment_count=row.enrollment_count,
                    total_revenue=price * row.enrollment_count,
                )
            )
        logger.debug(f"Informe de ingresos: {len(revenue)} clases")
        return revenue


report_service = AsyncReportService()
