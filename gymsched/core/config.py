import os
from typing import List, Optional, Union
from functools import lru_cache
import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Configurar el logger
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Permitir campos extra en .env
    )

    # Configuración básica
    API_V1_STR: str = "/api/v1"

    # Información del proyecto
    PROJECT_NAME: str = "GymSched"
    PROJECT_DESCRIPTION: str = "API de programación de clases, inscripciones y asistencia"
    VERSION: str = "0.3.0"

    # Debug mode
    DEBUG_MODE: bool = os.getenv("DEBUG_MODE", "False").lower() in ("true", "1", "t")
    LOG_TO_FILE: bool = False

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode='before')
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # Base de datos
    DATABASE_URL: str = "sqlite+aiosqlite:///./gymsched.db"
    DATABASE_ECHO: bool = False

    @field_validator("DATABASE_URL", mode="before")
    def ensure_async_driver(cls, v: Optional[str]) -> str:
        """Asegura que DATABASE_URL use un driver async (asyncpg / aiosqlite)."""
        if not v:
            return "sqlite+aiosqlite:///./gymsched.db"
        if v.startswith("postgres://"):
            v = v.replace("postgres://", "postgresql://", 1)
        if v.startswith("postgresql://"):
            logger.info("DATABASE_URL convertida a driver asyncpg")
            v = v.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif v.startswith("sqlite:///"):
            v = v.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        return v

    # Zona horaria en la que se interpretan fechas y horas de los horarios
    GYM_TIMEZONE: str = "UTC"

    # Redis (opcional: sin URL no hay caché)
    REDIS_URL: Optional[str] = None
    REDIS_POOL_MAX_CONNECTIONS: int = 50
    REDIS_POOL_SOCKET_TIMEOUT: int = 5
    REDIS_POOL_HEALTH_CHECK_INTERVAL: int = 30
    CACHE_TTL_SCHEDULES: int = 300

    # Ventanas de asistencia (minutos alrededor del inicio de la clase)
    CHECKIN_WINDOW_BEFORE_MINUTES: int = 15
    CHECKIN_WINDOW_AFTER_MINUTES: int = 15
    QUICK_CHECKIN_WINDOW_AFTER_MINUTES: int = 30

    # Política de cancelación para miembros
    CANCELLATION_CUTOFF_HOURS: int = 2

    # Facturación
    CLASS_INVOICE_DUE_DAYS: int = 3
    BILLING_MODE: str = "inline"  # inline | queue

    @field_validator("BILLING_MODE", mode="before")
    def validate_billing_mode(cls, v: str) -> str:
        v = (v or "inline").strip().lower()
        if v not in ("inline", "queue"):
            raise ValueError(f"BILLING_MODE inválido: {v}")
        return v


@lru_cache()
def get_settings() -> Settings:
    settings = Settings()
    logger.info("Configuración cargada correctamente")
    return settings
