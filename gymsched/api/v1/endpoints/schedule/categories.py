from gymsched.api.v1.endpoints.schedule.common import *

router = APIRouter()


@router.get("", response_model=List[ClassType])
async def get_class_types(
    active_only: bool = True,
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(get_current_identity)
) -> Any:
    """
    Get Class Types

    Lists the class types (categories) of the gym catalog.

    Args:
        active_only (bool, optional): Only active class types. Defaults to True.

    Returns:
        List[ClassType]: Class types ordered by name.
    """
    return await class_type_service.list_class_types(db, active_only=active_only)


@router.get("/{class_type_id}", response_model=ClassType)
async def get_class_type(
    class_type_id: int = Path(..., description="ID of the class type"),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(get_current_identity)
) -> Any:
    return await class_type_service.get_class_type(db, class_type_id)


@router.post("", response_model=ClassType, status_code=status.HTTP_201_CREATED)
async def create_class_type(
    class_type_data: ClassTypeCreate = Body(...),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(require_privileged)
) -> Any:
    """
    Create Class Type

    Permissions:
        - Trainers and administrators only.

    Raises:
        409 conflict: A class type with the same name already exists.
    """
    return await class_type_service.create_class_type(db, class_type_data)


@router.put("/{class_type_id}", response_model=ClassType)
async def update_class_type(
    class_type_id: int = Path(..., description="ID of the class type"),
    class_type_data: ClassTypeUpdate = Body(...),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(require_privileged)
) -> Any:
    return await class_type_service.update_class_type(db, class_type_id, class_type_data)


@router.delete("/{class_type_id}", response_model=DeletionResult)
async def delete_class_type(
    class_type_id: int = Path(..., description="ID of the class type"),
    db: AsyncSession = Depends(get_async_db),
    identity: Identity = Depends(require_privileged)
) -> Any:
    """
    Delete Class Type

    Deletes the class type together with its classes. When any of those
    classes already has schedules, everything is deactivated instead so the
    schedule history is preserved.
    """
    return await class_type_service.delete_class_type(db, class_type_id)
