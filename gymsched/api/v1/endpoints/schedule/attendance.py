from gymsched.api.v1.endpoints.schedule.common import *
from gymsched.models.user import UserRole

router = APIRouter()


def _member_identity(request: CheckInRequest, identity: Identity) -> Identity:
    if request.member_user_id is None or request.member_user_id == identity.id:
        return identity
    return Identity(id=request.member_user_id, role=UserRole.MEMBER)


@router.post("/schedules/{schedule_id}/check-in", response_model=CheckInResult)
async def check_in(
    schedule_id: int = Path(..., description="ID of the schedule"),
    request: Optional[CheckInRequest] = Body(None),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(get_current_identity)
) -> Any:
    """
    Check In to a Class

    Registers the attendance of the caller, or of `member_user_id` when
    called by staff. Check-in is accepted from 15 minutes before until 15
    minutes after the start; staff can skip the window with `bypass_window`.

    Raises:
        403 authorization_error: A member acting for someone else or skipping the window.
        404 not_found: No active enrollment in the schedule.
        409 invalid_state: Already checked in.
        409 conflict: Open attendance in another overlapping class.
        422 policy_violation: Outside the check-in window.
    """
    request = request or CheckInRequest()
    return await attendance_service.check_in(
        db,
        schedule_id,
        _member_identity(request, identity),
        actor=identity,
        bypass_window=request.bypass_window
    )


@router.post("/schedules/{schedule_id}/check-out", response_model=CheckInResult)
async def check_out(
    schedule_id: int = Path(..., description="ID of the schedule"),
    request: Optional[CheckInRequest] = Body(None),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(get_current_identity)
) -> Any:
    request = request or CheckInRequest()
    return await attendance_service.check_out(
        db, schedule_id, _member_identity(request, identity), actor=identity
    )


@router.post("/quick-check-in", response_model=CheckInResult)
async def quick_check_in(
    request: QuickCheckInRequest = Body(...),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(get_current_identity)
) -> Any:
    """
    Quick Check-In

    Check-in with the schedule code shown at the room (or the schedule id).
    The window stays open until 30 minutes after the start. Repeating the
    check-in returns `already_checked_in: true` without changes.
    """
    return await attendance_service.quick_check_in(
        db,
        identity,
        schedule_code=request.schedule_code,
        schedule_id=request.schedule_id
    )
