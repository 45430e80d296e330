from gymsched.api.v1.endpoints.schedule.common import *

router = APIRouter()


@router.get("", response_model=List[Schedule])
async def get_schedules(
    day: Optional[date] = Query(None, alias="date", description="Local gym date (YYYY-MM-DD)"),
    start_date: Optional[date] = Query(None, description="First date of the range"),
    end_date: Optional[date] = Query(None, description="Last date of the range"),
    class_id: Optional[int] = Query(None),
    trainer_id: Optional[int] = Query(None),
    schedule_status: Optional[ScheduleStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(get_current_identity)
) -> Any:
    """
    Get Schedules

    Lists schedules ordered by start time. `date` takes precedence over the
    `start_date`/`end_date` range.

    Returns:
        List[Schedule]: Schedules including the remaining spots.
    """
    return await schedule_service.list_schedules(
        db,
        day=day,
        start_date=start_date,
        end_date=end_date,
        class_id=class_id,
        trainer_id=trainer_id,
        status=schedule_status,
        skip=skip,
        limit=limit
    )


@router.get("/trainer/{trainer_id}", response_model=List[Schedule])
async def get_trainer_schedules(
    trainer_id: int = Path(..., description="ID of the trainer"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    schedule_status: Optional[ScheduleStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(get_current_identity),
    redis_client: Optional[Redis] = Depends(get_redis_client)
) -> Any:
    """
    Get Trainer Schedules

    Agenda of a trainer. The listing is cached in Redis when available and
    invalidated on every schedule or enrollment change of that trainer.
    """
    return await schedule_service.list_trainer_schedules(
        db,
        trainer_id,
        start_date=start_date,
        end_date=end_date,
        status=schedule_status,
        redis_client=redis_client
    )


@router.get("/{schedule_id}", response_model=Schedule)
async def get_schedule(
    schedule_id: int = Path(..., description="ID of the schedule"),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(get_current_identity)
) -> Any:
    return await schedule_service.get_schedule(db, schedule_id)


@router.post("", response_model=Schedule, status_code=status.HTTP_201_CREATED)
async def create_schedule(
    schedule_data: ScheduleCreate = Body(...),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(require_privileged),
    redis_client: Optional[Redis] = Depends(get_redis_client)
) -> Any:
    """
    Create Schedule

    Schedules an occurrence of a class for a trainer. Date and times are
    local gym wall-clock values.

    Request Body (ScheduleCreate):
        {
          "class_id": integer,
          "date": "YYYY-MM-DD",
          "start_time": "HH:MM",
          "end_time": "HH:MM",
          "trainer_id": integer,
          "max_participants": integer (optional, defaults to the class),
          "room": "string (optional, defaults to the class)",
          "notes": "string (optional)"
        }

    Permissions:
        - Trainers and administrators only.

    Raises:
        404 not_found: Class or trainer not found.
        409 conflict: The trainer already has an overlapping schedule that date.
        422 validation_error: Malformed date/time or end not after start.
    """
    return await schedule_service.create_schedule(db, schedule_data, redis_client=redis_client)


@router.put("/{schedule_id}", response_model=Schedule)
async def update_schedule(
    schedule_id: int = Path(..., description="ID of the schedule"),
    schedule_data: ScheduleUpdate = Body(...),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(require_privileged),
    redis_client: Optional[Redis] = Depends(get_redis_client)
) -> Any:
    return await schedule_service.update_schedule(db, schedule_id, schedule_data, redis_client=redis_client)


@router.post("/{schedule_id}/cancel", response_model=ScheduleCancellation)
async def cancel_schedule(
    schedule_id: int = Path(..., description="ID of the schedule"),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(require_privileged),
    redis_client: Optional[Redis] = Depends(get_redis_client)
) -> Any:
    """
    Cancel Schedule

    Cancels the schedule and every active enrollment in it. Cancelling an
    already cancelled schedule is a no-op (`already_cancelled: true`).
    """
    return await schedule_service.cancel_schedule(db, schedule_id, redis_client=redis_client)


@router.post("/{schedule_id}/complete", response_model=Schedule)
async def complete_schedule(
    schedule_id: int = Path(..., description="ID of the schedule"),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(require_privileged),
    redis_client: Optional[Redis] = Depends(get_redis_client)
) -> Any:
    return await schedule_service.complete_schedule(db, schedule_id, redis_client=redis_client)


@router.get("/{schedule_id}/enrollments", response_model=List[Enrollment])
async def get_schedule_enrollments(
    schedule_id: int = Path(..., description="ID of the schedule"),
    include_cancelled: bool = False,
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(require_privileged)
) -> Any:
    return await enrollment_service.list_schedule_enrollments(
        db, schedule_id, include_cancelled=include_cancelled
    )


@router.get("/{schedule_id}/checkins", response_model=List[Enrollment])
async def get_schedule_check_ins(
    schedule_id: int = Path(..., description="ID of the schedule"),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(require_privileged)
) -> Any:
    return await attendance_service.list_schedule_check_ins(db, schedule_id)
