from gymsched.api.v1.endpoints.schedule.common import *

router = APIRouter()


@router.get("", response_model=List[GymClass])
async def get_classes(
    class_type_id: Optional[int] = Query(None, description="Filter by class type"),
    trainer_id: Optional[int] = Query(None, description="Filter by default trainer"),
    active_only: bool = True,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(get_current_identity)
) -> Any:
    """
    Get Class Definitions

    Retrieves the class definitions (templates) of the gym.

    Args:
        class_type_id (int, optional): Only classes of this class type.
        trainer_id (int, optional): Only classes whose default trainer is this user.
        active_only (bool, optional): If true, only returns active classes. Defaults to True.
        skip (int, optional): Number of records to skip for pagination. Defaults to 0.
        limit (int, optional): Maximum number of records to return. Defaults to 100.

    Returns:
        List[GymClass]: A list of class definition objects.
    """
    return await gym_class_service.list_classes(
        db,
        class_type_id=class_type_id,
        trainer_id=trainer_id,
        active_only=active_only,
        skip=skip,
        limit=limit
    )


@router.get("/{class_id}", response_model=GymClass)
async def get_class(
    class_id: int = Path(..., description="ID of the class definition"),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(get_current_identity)
) -> Any:
    return await gym_class_service.get_class(db, class_id)


@router.post("", response_model=GymClass, status_code=status.HTTP_201_CREATED)
async def create_class(
    class_data: GymClassCreate = Body(...),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(require_privileged)
) -> Any:
    """
    Create Class Definition

    Duration and capacity default to the values of the class type when omitted.

    Request Body (GymClassCreate):
        {
          "class_type_id": integer,
          "name": "string",
          "description": "string (optional)",
          "trainer_id": integer (optional, default trainer),
          "duration": integer (minutes, optional),
          "max_participants": integer (optional),
          "price": decimal (optional, default 0),
          "room": "string (optional)"
        }

    Permissions:
        - Trainers and administrators only.
    """
    return await gym_class_service.create_class(db, class_data)


@router.put("/{class_id}", response_model=GymClass)
async def update_class(
    class_id: int = Path(..., description="ID of the class definition"),
    class_data: GymClassUpdate = Body(...),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(require_privileged)
) -> Any:
    return await gym_class_service.update_class(db, class_id, class_data)


@router.delete("/{class_id}", response_model=DeletionResult)
async def delete_class(
    class_id: int = Path(..., description="ID of the class definition"),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(require_privileged)
) -> Any:
    """
    Delete Class Definition

    A class with schedules is deactivated instead of deleted.
    """
    return await gym_class_service.delete_class(db, class_id)
