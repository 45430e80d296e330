from sqlalchemy import Boolean, Column, ForeignKey, Integer, JSON, Numeric, String, Text, Enum, CheckConstraint
import enum

from gymsched.db.base_class import Base
from gymsched.db.types import UTCDateTime
from gymsched.core.timezone_utils import utc_now


class ClassDifficultyLevel(str, enum.Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class ClassType(Base):
    """Plantilla de actividad (yoga, spinning...) con valores por defecto"""
    __tablename__ = "class_type"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    duration = Column(Integer, nullable=False)  # minutos
    max_participants = Column(Integer, nullable=False, default=10)
    equipment = Column(JSON, nullable=False, default=list)
    difficulty = Column(Enum(ClassDifficultyLevel), nullable=False, default=ClassDifficultyLevel.BEGINNER)
    color = Column(String(7), nullable=False, default="#3498db")
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(UTCDateTime, default=utc_now, nullable=False)
    updated_at = Column(UTCDateTime, default=utc_now, onupdate=utc_now, nullable=False)

    __table_args__ = (
        CheckConstraint('duration > 0', name='check_class_type_duration_positive'),
        CheckConstraint('max_participants > 0', name='check_class_type_capacity_positive'),
    )


class GymClass(Base):
    """Clase reservable basada en un tipo de clase"""
    __tablename__ = "gym_class"

    id = Column(Integer, primary_key=True, index=True)
    class_type_id = Column(Integer, ForeignKey("class_type.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    trainer_id = Column(Integer, ForeignKey("user.id"), nullable=True)  # entrenador por defecto
    duration = Column(Integer, nullable=False)
    max_participants = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    room = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, default=utc_now, nullable=False)
    updated_at = Column(UTCDateTime, default=utc_now, onupdate=utc_now, nullable=False)

    __table_args__ = (
        CheckConstraint('price >= 0', name='check_class_price_non_negative'),
        CheckConstraint('max_participants > 0', name='check_class_capacity_positive'),
    )
