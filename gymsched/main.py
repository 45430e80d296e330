import time
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from gymsched.core.logging_config import setup_logging

# Configurar logging antes de importar el resto de módulos
setup_logging()

from gymsched.api.v1.api import api_router
from gymsched.core.config import get_settings
from gymsched.core.exceptions import AppError, app_error_handler
from gymsched.db.redis_client import initialize_redis_pool, close_redis_client
from gymsched.db.session import create_tables
from gymsched.services.billing import queued_billing_dispatcher

logger = logging.getLogger(__name__)

settings_instance = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Lifespan: Startup iniciado...")

    await create_tables()

    try:
        pool = await initialize_redis_pool()
        if pool is not None:
            logger.info("Lifespan: Redis connection pool inicializado correctamente.")
    except Exception as e:
        logger.error(f"Lifespan: Error al inicializar Redis connection pool: {e}", exc_info=True)

    if settings_instance.BILLING_MODE == "queue":
        await queued_billing_dispatcher.start()

    yield

    logger.info("Lifespan: Shutdown iniciado...")

    if settings_instance.BILLING_MODE == "queue":
        await queued_billing_dispatcher.stop()

    try:
        await close_redis_client()
        logger.info("Lifespan: Connection pool de Redis cerrado.")
    except Exception as e:
        logger.error(f"Lifespan: Error cerrando Redis connection pool: {e}", exc_info=True)


app = FastAPI(
    title=settings_instance.PROJECT_NAME,
    description=settings_instance.PROJECT_DESCRIPTION,
    version=settings_instance.VERSION,
    openapi_url=f"{settings_instance.API_V1_STR}/openapi.json",
    docs_url=f"{settings_instance.API_V1_STR}/docs",
    redoc_url=f"{settings_instance.API_V1_STR}/redoc",
    lifespan=lifespan,
)

app.add_exception_handler(AppError, app_error_handler)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    user_id = request.headers.get("x-user-id", "-")
    logger.info(f"Middleware: Recibida petición: {request.method} {request.url.path} (usuario {user_id})")

    response = await call_next(request)

    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = f"{process_time:.4f}"
    logger.info(f"Middleware: Enviando respuesta: {response.status_code} ({process_time * 1000:.1f} ms)")
    return response


# Lista de orígenes permitidos para CORS
origins = settings_instance.BACKEND_CORS_ORIGINS or []

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
    max_age=86400,
)

# Incluir routers
app.include_router(api_router, prefix=settings_instance.API_V1_STR)


# Ruta raíz
@app.get("/")
def root():
    return {
        "message": "Bienvenido a la API de horarios del gimnasio",
        "docs": f"{settings_instance.API_V1_STR}/docs",
    }
