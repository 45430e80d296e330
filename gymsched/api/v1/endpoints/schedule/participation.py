from gymsched.api.v1.endpoints.schedule.common import *

router = APIRouter()


@router.post("/schedules/{schedule_id}", response_model=EnrollmentResult, status_code=status.HTTP_201_CREATED)
async def enroll_in_schedule(
    schedule_id: int = Path(..., description="ID of the schedule"),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(get_current_identity),
    redis_client: Optional[Redis] = Depends(get_redis_client)
) -> Any:
    """
    Enroll Current Member in a Schedule

    Enrolls the calling member. The member record is created on first use.
    For paid classes the invoice is generated after the enrollment is
    committed; an invoicing failure never undoes the enrollment and is
    reported in `billing_warning`.

    Permissions:
        - Members only (trainers and administrators cannot enroll as attendees).

    Returns:
        EnrollmentResult: The enrollment, the updated schedule and the billing outcome.

    Raises:
        404 not_found: Schedule not found.
        409 invalid_state: Schedule not open or already started.
        409 capacity_exceeded: No spots left.
        409 conflict: Already enrolled, or another class overlaps that day.
    """
    return await enrollment_service.enroll(db, schedule_id, identity, redis_client=redis_client)


@router.delete("/schedules/{schedule_id}", response_model=Enrollment)
async def cancel_schedule_enrollment(
    schedule_id: int = Path(..., description="ID of the schedule"),
    member_user_id: Optional[int] = Query(None, description="Member to cancel for (staff only)"),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(get_current_identity),
    redis_client: Optional[Redis] = Depends(get_redis_client)
) -> Any:
    """
    Cancel Enrollment in a Schedule

    Cancels the active enrollment of the caller (or of `member_user_id` when
    called by staff). Members cannot cancel less than the configured cutoff
    (2 hours by default) before the class starts.
    """
    return await enrollment_service.cancel_by_schedule(
        db, schedule_id, identity, member_user_id=member_user_id, redis_client=redis_client
    )


@router.delete("/{enrollment_id}", response_model=Enrollment)
async def cancel_enrollment(
    enrollment_id: int = Path(..., description="ID of the enrollment"),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(get_current_identity),
    redis_client: Optional[Redis] = Depends(get_redis_client)
) -> Any:
    return await enrollment_service.cancel_enrollment(db, enrollment_id, identity, redis_client=redis_client)


@router.get("/my/upcoming", response_model=List[MemberSchedule])
async def get_my_upcoming_classes(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(get_current_identity)
) -> Any:
    return await enrollment_service.list_member_upcoming(db, identity, limit=limit)


@router.get("/my/history", response_model=List[MemberSchedule])
async def get_my_class_history(
    skip: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(get_current_identity)
) -> Any:
    return await enrollment_service.list_member_history(db, identity, skip=skip, limit=limit)
