"""
Orquestación de precios y facturación de inscripciones.

La inscripción publica un evento `EnrollmentCommitted` después de su commit.
El `BillingService` lo consume: calcula el precio con un `PricingEngine`,
genera la factura con un `InvoicingEngine` y guarda la referencia en la
inscripción. Un fallo de facturación nunca deshace la inscripción; queda
registrado como `billing_warning`.

Dos despachadores:
    - InlineBillingDispatcher: procesa el evento en la misma petición y
      devuelve el resultado (BILLING_MODE=inline).
    - QueuedBillingDispatcher: encola el evento en un asyncio.Queue que consume
      un worker arrancado en el lifespan de la aplicación (BILLING_MODE=queue).
"""
import asyncio
import logging
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from gymsched.core.config import get_settings
from gymsched.core.exceptions import NotFoundError
from gymsched.core.timezone_utils import utc_now
from gymsched.db.session import get_async_db_for_jobs
from gymsched.models.invoice import Invoice, InvoiceStatus
from gymsched.models.schedule import BillingStatus
from gymsched.repositories.catalog import gym_class_repository
from gymsched.repositories.enrollment import enrollment_repository
from gymsched.repositories.user import member_repository
from gymsched.schemas.billing import (
    BillingOutcome,
    EnrollmentCommitted,
    InvoiceRef,
    InvoiceRequest,
    PriceQuote,
)

logger = logging.getLogger("billing_service")

CENTS = Decimal("0.01")


class PricingEngine(Protocol):
    async def calculate_price(self, db: AsyncSession, *, class_id: int, member_id: int) -> PriceQuote:
        ...


class InvoicingEngine(Protocol):
    async def generate_invoice(
        self,
        db: AsyncSession,
        *,
        member_id: int,
        request: InvoiceRequest,
        quote: PriceQuote
    ) -> InvoiceRef:
        ...


class MembershipPricingEngine:
    """Precio de la clase menos el descuento del plan del socio."""

    async def calculate_price(self, db: AsyncSession, *, class_id: int, member_id: int) -> PriceQuote:
        gym_class = await gym_class_repository.get(db, id=class_id)
        if not gym_class:
            raise NotFoundError(f"Clase {class_id} no encontrada")
        member = await member_repository.get(db, id=member_id)
        if not member:
            raise NotFoundError(f"Socio {member_id} no encontrado")

        base_price = Decimal(gym_class.price or 0).quantize(CENTS)
        discount_percent = Decimal(member.class_discount_percent or 0)
        discount_amount = (base_price * discount_percent / Decimal(100)).quantize(CENTS, rounding=ROUND_HALF_UP)
        return PriceQuote(
            base_price=base_price,
            discount_percent=discount_percent,
            discount_amount=discount_amount,
            final_price=base_price - discount_amount,
        )


class LocalInvoicingEngine:
    """Genera la factura en la tabla `invoice` con vencimiento a CLASS_INVOICE_DUE_DAYS días."""

    async def generate_invoice(
        self,
        db: AsyncSession,
        *,
        member_id: int,
        request: InvoiceRequest,
        quote: PriceQuote
    ) -> InvoiceRef:
        settings = get_settings()
        now = utc_now()
        invoice = Invoice(
            member_id=member_id,
            class_id=request.class_id,
            description=f"Clase: {request.class_name} ({request.session_count} sesión/es)",
            session_count=request.session_count,
            subtotal=quote.base_price * request.session_count,
            discount_amount=quote.discount_amount * request.session_count,
            total=quote.final_price * request.session_count,
            due_date=(now + timedelta(days=settings.CLASS_INVOICE_DUE_DAYS)).date(),
            status=InvoiceStatus.PENDING,
        )
        db.add(invoice)
        await db.flush()
        invoice.invoice_number = f"INV-{now:%Y%m%d}-{invoice.id:06d}"
        await db.flush()
        return InvoiceRef(
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            due_date=invoice.due_date,
            total=invoice.total,
        )


class BillingService:

    def __init__(
        self,
        session_scope: Callable = get_async_db_for_jobs,
        pricing: Optional[PricingEngine] = None,
        invoicing: Optional[InvoicingEngine] = None
    ):
        self.session_scope = session_scope
        self.pricing = pricing or MembershipPricingEngine()
        self.invoicing = invoicing or LocalInvoicingEngine()

    async def process(self, event: EnrollmentCommitted) -> BillingOutcome:
        """
        Factura una inscripción ya confirmada.

        Args:
            event: Evento publicado tras el commit de la inscripción

        Returns:
            BillingOutcome con estado `invoiced` o `failed` (con aviso)
        """
        try:
            async with self.session_scope() as db:
                quote = await self.pricing.calculate_price(
                    db, class_id=event.class_id, member_id=event.member_id
                )
                invoice = await self.invoicing.generate_invoice(
                    db,
                    member_id=event.member_id,
                    request=InvoiceRequest(class_id=event.class_id, class_name=event.class_name),
                    quote=quote,
                )
                enrollment = await enrollment_repository.get(db, id=event.enrollment_id)
                enrollment.billing_status = BillingStatus.INVOICED
                enrollment.invoice_reference = invoice.invoice_number
                enrollment.billing_warning = None
                await db.commit()
            logger.info(f"Inscripción {event.enrollment_id} facturada: {invoice.invoice_number}")
            return BillingOutcome(
                enrollment_id=event.enrollment_id,
                status=BillingStatus.INVOICED,
                invoice_reference=invoice.invoice_number,
                quote=quote,
            )
        except Exception as e:
            logger.error(
                f"Error facturando la inscripción {event.enrollment_id}: {e}", exc_info=True
            )
            warning = f"La inscripción se realizó pero no se pudo generar la factura: {e}"
            await self._mark_failed(event.enrollment_id, warning)
            return BillingOutcome(
                enrollment_id=event.enrollment_id,
                status=BillingStatus.FAILED,
                warning=warning,
            )

    async def _mark_failed(self, enrollment_id: int, warning: str) -> None:
        try:
            async with self.session_scope() as db:
                enrollment = await enrollment_repository.get(db, id=enrollment_id)
                if enrollment:
                    enrollment.billing_status = BillingStatus.FAILED
                    enrollment.billing_warning = warning
                    await db.commit()
        except Exception as e:
            logger.error(f"No se pudo registrar el fallo de facturación de {enrollment_id}: {e}", exc_info=True)


class InlineBillingDispatcher:
    def __init__(self, service: BillingService):
        self.service = service

    async def dispatch(self, event: EnrollmentCommitted) -> Optional[BillingOutcome]:
        return await self.service.process(event)


class QueuedBillingDispatcher:
    """Cola en memoria consumida por un worker en segundo plano."""

    def __init__(self, service: BillingService, maxsize: int = 1000):
        self.service = service
        self.maxsize = maxsize
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self.maxsize)
        self._worker = asyncio.create_task(self._run(), name="billing-worker")
        logger.info("Worker de facturación iniciado")

    async def dispatch(self, event: EnrollmentCommitted) -> Optional[BillingOutcome]:
        if not self.running:
            logger.warning("Worker de facturación parado; procesando el evento en línea")
            return await self.service.process(event)
        await self._queue.put(event)
        logger.debug(f"Evento de facturación encolado para la inscripción {event.enrollment_id}")
        return None

    async def drain(self) -> None:
        if self._queue is not None:
            await self._queue.join()

    async def stop(self) -> None:
        if not self.running:
            return
        await self.drain()
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("Worker de facturación detenido")

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self.service.process(event)
            finally:
                self._queue.task_done()


billing_service = BillingService()
inline_billing_dispatcher = InlineBillingDispatcher(billing_service)
queued_billing_dispatcher = QueuedBillingDispatcher(billing_service)


def get_billing_dispatcher():
    if get_settings().BILLING_MODE == "queue":
        return queued_billing_dispatcher
    return inline_billing_dispatcher
