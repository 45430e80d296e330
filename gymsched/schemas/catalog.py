from typing import Optional, List
from decimal import Decimal
from datetime import datetime
from pydantic import BaseModel, Field

from gymsched.models.catalog import ClassDifficultyLevel

HEX_COLOR = r"^#[0-9a-fA-F]{6}$"


# ClassType schemas
class ClassTypeBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    duration: int = Field(..., gt=0, description="Duración en minutos")
    max_participants: int = Field(10, gt=0)
    equipment: List[str] = Field(default_factory=list)
    difficulty: ClassDifficultyLevel = ClassDifficultyLevel.BEGINNER
    color: str = Field("#3498db", pattern=HEX_COLOR)


class ClassTypeCreate(ClassTypeBase):
    pass


class ClassTypeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    duration: Optional[int] = Field(None, gt=0)
    max_participants: Optional[int] = Field(None, gt=0)
    equipment: Optional[List[str]] = None
    difficulty: Optional[ClassDifficultyLevel] = None
    color: Optional[str] = Field(None, pattern=HEX_COLOR)
    is_active: Optional[bool] = None


class ClassType(ClassTypeBase):
    id: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# Class schemas
class GymClassBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    trainer_id: Optional[int] = None
    room: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class GymClassCreate(GymClassBase):
    class_type_id: int
    # Si se omiten se toman del tipo de clase
    duration: Optional[int] = Field(None, gt=0)
    max_participants: Optional[int] = Field(None, gt=0)
    price: Decimal = Field(Decimal("0"), ge=0)


class GymClassUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    trainer_id: Optional[int] = None
    duration: Optional[int] = Field(None, gt=0)
    max_participants: Optional[int] = Field(None, gt=0)
    price: Optional[Decimal] = Field(None, ge=0)
    room: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class GymClass(GymClassBase):
    id: int
    class_type_id: int
    duration: int
    max_participants: int
    price: Decimal
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DeletionResult(BaseModel):
    deleted: bool
    message: str
