"""
Common imports and dependencies for the schedule module.

Centralizes the imports shared by every schedule endpoint: identity
dependencies, database and Redis sessions, services and schemas.
"""

from typing import Any, List, Optional
from datetime import date
from fastapi import APIRouter, Body, Depends, Path, Query, status
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from gymsched.core.auth import Identity, get_current_identity, require_privileged
from gymsched.db.redis_client import get_redis_client
from gymsched.db.session import get_async_db
from gymsched.models.schedule import ScheduleStatus
from gymsched.services.attendance import attendance_service
from gymsched.services.catalog import class_type_service, gym_class_service
from gymsched.services.enrollment import enrollment_service
from gymsched.services.reports import report_service
from gymsched.services.schedule import schedule_service
from gymsched.schemas.catalog import (
    ClassType, ClassTypeCreate, ClassTypeUpdate,
    GymClass, GymClassCreate, GymClassUpdate,
    DeletionResult
)
from gymsched.schemas.schedule import Schedule, ScheduleCreate, ScheduleUpdate, ScheduleCancellation
from gymsched.schemas.enrollment import (
    Enrollment, EnrollmentResult, MemberSchedule,
    CheckInRequest, QuickCheckInRequest, CheckInResult
)
from gymsched.schemas.report import AttendanceStats, ClassRevenue, PopularClass
