"""
Schedule Module - API Endpoints

Organizes the components of the class scheduling system:
- Catalog: class types and class definitions
- Schedules: concrete occurrences of a class with a trainer and time slot
- Enrollments: member registration and cancellation
- Attendance: check-in, check-out and quick check-in
- Reports: popularity, attendance and revenue
"""

from fastapi import APIRouter

from gymsched.api.v1.endpoints.schedule import (
    categories,
    classes,
    sessions,
    participation,
    attendance,
    reports
)

router = APIRouter()

# Catálogo
router.include_router(categories.router, prefix="/class-types", tags=["class-types"])
router.include_router(classes.router, prefix="/classes", tags=["classes"])

# Horarios, inscripciones y asistencia
router.include_router(sessions.router, prefix="/schedules", tags=["schedules"])
router.include_router(participation.router, prefix="/enrollments", tags=["enrollments"])
router.include_router(attendance.router, prefix="/attendance", tags=["attendance"])

# Informes
router.include_router(reports.router, prefix="/reports", tags=["reports"])
