from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.exc import SQLAlchemyError
from contextlib import asynccontextmanager
import logging

from gymsched.core.config import get_settings

logger = logging.getLogger(__name__)

settings_instance = get_settings()
db_url = settings_instance.DATABASE_URL


def _display_url(url: str) -> str:
    # Ocultar credenciales en el log
    if '@' in url:
        scheme = url.split('://')[0]
        return f"{scheme}://***@{url.split('@', 1)[1]}"
    return url


def build_async_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Crea el engine async adecuado para el driver de la URL."""
    if url.startswith("sqlite"):
        return create_async_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
    return create_async_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=280,
        connect_args={
            "server_settings": {
                "application_name": "gymsched_async",
                "statement_timeout": "30000",
            }
        },
    )


async_engine = build_async_engine(db_url, echo=settings_instance.DATABASE_ECHO)
logger.info(f"Async engine creado: {_display_url(db_url)}")

AsyncSessionLocal = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_async_db():
    """
    Dependencia async para obtener sesión de base de datos.

    Uso en endpoints:
        @router.get("/endpoint")
        async def my_endpoint(db: AsyncSession = Depends(get_async_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except SQLAlchemyError as e:
            logger.error(f"Error SQLAlchemy en sesión async: {e}", exc_info=True)
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def get_async_db_for_jobs():
    """
    Context manager async para trabajos en segundo plano (worker de facturación).

    Para endpoints FastAPI usar get_async_db() con Depends().

    Yields:
        AsyncSession: Sesión async de base de datos
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except SQLAlchemyError as e:
            logger.error(f"Error SQLAlchemy en background job async DB: {e}", exc_info=True)
            await session.rollback()
            raise
        finally:
            await session.close()


async def create_tables(engine: AsyncEngine = None) -> None:
    """Crea todas las tablas declaradas en los modelos."""
    from gymsched.db.base import Base

    engine = engine or async_engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Tablas creadas/verificadas correctamente")
