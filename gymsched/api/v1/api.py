from fastapi import APIRouter

from gymsched.api.v1.endpoints.schedule import router as schedule_router

api_router = APIRouter()

# Schedule module (catalog, schedules, enrollments and attendance)
api_router.include_router(schedule_router, prefix="/schedule")
