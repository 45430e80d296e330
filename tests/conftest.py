from datetime import datetime, timezone
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gymsched.core.auth import Identity
from gymsched.db.session import build_async_engine, create_tables
from gymsched.models.catalog import ClassType, GymClass
from gymsched.models.user import Member, User, UserRole
from gymsched.schemas.schedule import ScheduleCreate
from gymsched.services.schedule import schedule_service

TRAINER_ID = 5
OTHER_TRAINER_ID = 6
ADMIN_ID = 1
MEMBER_USER_IDS = (101, 102, 103)

# Fecha de referencia de los tests (la zona horaria por defecto es UTC)
CLASS_DAY = "2030-01-10"


def at(hour: int, minute: int = 0, day: int = 10) -> datetime:
    return datetime(2030, 1, day, hour, minute, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def engine(tmp_path):
    # Fichero en disco: cada sesión usa su propia conexión, como en producción
    engine = build_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'gymsched_test.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seed(db):
    """Entrenadores, administrador, socios, un tipo de clase y dos clases (gratuita y de pago)."""
    db.add_all([
        User(id=ADMIN_ID, full_name="Admin", email="admin@gym.test", role=UserRole.ADMIN),
        User(id=TRAINER_ID, full_name="Laura Trainer", email="laura@gym.test", role=UserRole.TRAINER),
        User(id=OTHER_TRAINER_ID, full_name="Pablo Trainer", email="pablo@gym.test", role=UserRole.TRAINER),
    ])
    for index, user_id in enumerate(MEMBER_USER_IDS):
        db.add(Member(
            user_id=user_id,
            member_code=f"M{user_id}",
            full_name=f"Socio {user_id}",
            class_discount_percent=Decimal("10") if index == 0 else Decimal("0"),
        ))
    yoga = ClassType(name="Yoga", duration=60, max_participants=10)
    db.add(yoga)
    await db.flush()

    free_class = GymClass(
        class_type_id=yoga.id, name="Yoga Flow", trainer_id=TRAINER_ID,
        duration=60, max_participants=10, price=Decimal("0"), room="Sala 1",
    )
    paid_class = GymClass(
        class_type_id=yoga.id, name="Yoga Premium", trainer_id=TRAINER_ID,
        duration=60, max_participants=10, price=Decimal("20.00"), room="Sala 2",
    )
    db.add_all([free_class, paid_class])
    await db.commit()
    return {"class_type": yoga, "free_class": free_class, "paid_class": paid_class}


@pytest.fixture
def member_identity():
    def _identity(user_id: int = MEMBER_USER_IDS[0]) -> Identity:
        return Identity(id=user_id, role=UserRole.MEMBER)
    return _identity


@pytest.fixture
def trainer_identity():
    return Identity(id=TRAINER_ID, role=UserRole.TRAINER)


@pytest.fixture
def make_schedule(db, seed):
    async def _make(
        start: str = "10:00",
        end: str = "11:00",
        *,
        trainer_id: int = TRAINER_ID,
        class_id: int = None,
        day: str = CLASS_DAY,
        max_participants: int = None
    ):
        return await schedule_service.create_schedule(
            db,
            ScheduleCreate(
                class_id=class_id or seed["free_class"].id,
                date=day,
                start_time=start,
                end_time=end,
                trainer_id=trainer_id,
                max_participants=max_participants,
            ),
        )
    return _make
