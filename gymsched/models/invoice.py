from sqlalchemy import Column, Date, ForeignKey, Integer, Numeric, String, Text, Enum
import enum

from gymsched.db.base_class import Base
from gymsched.db.types import UTCDateTime
from gymsched.core.timezone_utils import utc_now


class InvoiceStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class Invoice(Base):
    """Factura generada por el motor de facturación local al inscribirse en una clase de pago"""
    __tablename__ = "invoice"

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String(32), unique=True, nullable=True)
    member_id = Column(Integer, ForeignKey("member.id"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("gym_class.id"), nullable=True)
    description = Column(Text, nullable=True)
    session_count = Column(Integer, nullable=False, default=1)
    subtotal = Column(Numeric(10, 2), nullable=False)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(Enum(InvoiceStatus), nullable=False, default=InvoiceStatus.PENDING)

    created_at = Column(UTCDateTime, default=utc_now, nullable=False)
