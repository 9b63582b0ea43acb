# app/db/session.py
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from app.core.config import get_settings
from app.core.logging_config import logger


def normalize_db_url(url: str) -> str:
    # Algunos proveedores usan postgres://
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)

    # Si viene sin driver, forzamos psycopg2
    if url.startswith("postgresql://") and "+psycopg2" not in url:
        url = url.replace("postgresql://", "postgresql+psycopg2://", 1)
    return url


DATABASE_URL = normalize_db_url(get_settings().database_url)

connect_args = {}
if DATABASE_URL.startswith("postgresql"):
    connect_args = {"options": "-c client_encoding=UTF8"}

# Engine
engine = create_engine(
    DATABASE_URL,
    poolclass=NullPool,     # evita conexiones colgadas en hosting free
    future=True,
    connect_args=connect_args,
)

# Sesión
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


def get_db():
    """Dependency para FastAPI."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def test_db_connection() -> bool:
    """Para /db/ping."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"[DB] ping falló: {e}")
        return False
