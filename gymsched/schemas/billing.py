from typing import Optional
from decimal import Decimal
from datetime import date, datetime
from pydantic import BaseModel, Field

from gymsched.models.schedule import BillingStatus


class PriceQuote(BaseModel):
    base_price: Decimal
    discount_percent: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    final_price: Decimal


class InvoiceRequest(BaseModel):
    class_id: int
    class_name: str
    session_count: int = Field(1, gt=0)


class InvoiceRef(BaseModel):
    invoice_id: int
    invoice_number: str
    due_date: date
    total: Decimal


class EnrollmentCommitted(BaseModel):
    """Evento publicado tras el commit de una inscripción de pago."""
    enrollment_id: int
    member_id: int
    schedule_id: int
    class_id: int
    class_name: str
    occurred_at: datetime


class BillingOutcome(BaseModel):
    enrollment_id: int
    status: BillingStatus
    invoice_reference: Optional[str] = None
    warning: Optional[str] = None
    quote: Optional[PriceQuote] = None
