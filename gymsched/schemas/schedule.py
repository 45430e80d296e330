from typing import Optional
from datetime import datetime, date
from pydantic import BaseModel, Field

from gymsched.models.schedule import ScheduleStatus


class ScheduleCreate(BaseModel):
    """Fecha y horas se validan en el servicio (YYYY-MM-DD / HH:MM, hora local del gimnasio)."""
    class_id: int
    date: str = Field(..., examples=["2024-01-10"])
    start_time: str = Field(..., examples=["09:00"])
    end_time: str = Field(..., examples=["10:00"])
    trainer_id: int
    max_participants: Optional[int] = None
    room: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class ScheduleUpdate(BaseModel):
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    trainer_id: Optional[int] = None
    max_participants: Optional[int] = None
    room: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class Schedule(BaseModel):
    id: int
    class_id: int
    trainer_id: int
    date: date
    start_time: datetime
    end_time: datetime
    room: Optional[str] = None
    max_participants: int
    current_participants: int
    available_spots: int
    status: ScheduleStatus
    notes: Optional[str] = None
    check_in_code: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ScheduleCancellation(BaseModel):
    schedule: Schedule
    cancelled_enrollments: int
    already_cancelled: bool = False
