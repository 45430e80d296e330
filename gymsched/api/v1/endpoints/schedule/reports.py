from gymsched.api.v1.endpoints.schedule.common import *

router = APIRouter()


@router.get("/popular-classes", response_model=List[PopularClass])
async def get_popular_classes(
    limit: int = Query(5, ge=1, le=50),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(require_privileged)
) -> Any:
    return await report_service.popular_classes(db, limit=limit)


@router.get("/attendance", response_model=AttendanceStats)
async def get_attendance_stats(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(require_privileged)
) -> Any:
    """
    Attendance Statistics

    Totals of non-cancelled schedules and enrollments in the date range and
    the attendance rate as a percentage (0 when there are no enrollments).
    """
    return await report_service.attendance_stats(db, start_date=start_date, end_date=end_date)


@router.get("/revenue", response_model=List[ClassRevenue])
async def get_class_revenue(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(require_privileged)
) -> Any:
    return await report_service.class_revenue(db, start_date=start_date, end_date=end_date)
