from sqlalchemy import Boolean, Column, Integer, Numeric, String, Enum, CheckConstraint
import enum

from gymsched.db.base_class import Base
from gymsched.db.types import UTCDateTime
from gymsched.core.timezone_utils import utc_now


class UserRole(str, enum.Enum):
    MEMBER = "member"
    TRAINER = "trainer"
    ADMIN = "admin"


class User(Base):
    """Identidades del personal y socios conocidas por el gimnasio"""
    __tablename__ = "user"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=True)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.MEMBER)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(UTCDateTime, default=utc_now, nullable=False)


class Member(Base):
    """Ficha de socio. `user_id` es el id de la identidad externa."""
    __tablename__ = "member"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, unique=True, index=True, nullable=False)
    member_code = Column(String(32), unique=True, nullable=False)
    full_name = Column(String(120), nullable=True)
    # Descuento del plan de membresía aplicado al precio de las clases
    class_discount_percent = Column(Numeric(5, 2), nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(UTCDateTime, default=utc_now, nullable=False)

    __table_args__ = (
        CheckConstraint(
            'class_discount_percent >= 0 AND class_discount_percent <= 100',
            name='check_member_discount_range'
        ),
    )
