"""
Cliente Redis con connection pooling (redis.asyncio).

Redis es opcional: si REDIS_URL no está configurada la dependencia
`get_redis_client` entrega None y los servicios consultan la BD sin caché.
"""
import logging
from typing import Optional

from redis.asyncio import ConnectionPool, Redis

from gymsched.core.config import get_settings

logger = logging.getLogger(__name__)

REDIS_POOL: Optional[ConnectionPool] = None


def _clean_redis_url(redis_url: Optional[str]) -> str:
    if not redis_url:
        return ""
    # Eliminar comentarios y espacios
    return redis_url.split('#')[0].strip()


async def initialize_redis_pool() -> Optional[ConnectionPool]:
    """
    Inicializa el pool de conexiones a Redis.
    Debe llamarse una sola vez al iniciar la aplicación.
    """
    global REDIS_POOL
    if REDIS_POOL is not None:
        return REDIS_POOL

    settings = get_settings()
    redis_url = _clean_redis_url(settings.REDIS_URL)
    if not redis_url:
        logger.warning("REDIS_URL no configurada. La caché de horarios queda desactivada.")
        return None

    logger.info("Inicializando connection pool para Redis...")
    REDIS_POOL = ConnectionPool.from_url(
        redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=settings.REDIS_POOL_MAX_CONNECTIONS,
        socket_timeout=settings.REDIS_POOL_SOCKET_TIMEOUT,
        health_check_interval=settings.REDIS_POOL_HEALTH_CHECK_INTERVAL,
    )
    logger.info(f"Connection pool de Redis inicializado (max_connections={settings.REDIS_POOL_MAX_CONNECTIONS}).")
    return REDIS_POOL


async def get_redis_client():
    """
    Dependencia FastAPI que entrega un cliente Redis por request usando el pool
    compartido, o None si Redis no está configurado.
    """
    if REDIS_POOL is None:
        await initialize_redis_pool()

    if REDIS_POOL is None:
        yield None
        return

    client = Redis(connection_pool=REDIS_POOL)
    try:
        yield client
    finally:
        try:
            await client.aclose()
        except Exception as e:
            logger.warning(f"Error cerrando cliente Redis: {e}")


async def close_redis_client():
    """Cierra el pool de conexiones Redis al finalizar la aplicación."""
    global REDIS_POOL

    if REDIS_POOL:
        logger.info("Cerrando connection pool de Redis...")
        await REDIS_POOL.disconnect()
        REDIS_POOL = None
        logger.info("Connection pool de Redis cerrado.")
