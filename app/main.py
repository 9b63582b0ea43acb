# app/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.core.config import get_settings
from app.core.deps import close_storage
from app.core.exceptions import DomainError
from app.core.logging_config import logger, setup_logging

# Modelos: se importan todos para que las relaciones por string resuelvan
from app.models import almacenamiento, documentos, gestion, institucion, usuarios  # noqa: F401

from app.routes.auth import router as auth_router
from app.routes.db import router as db_router
from app.routes.documentos import router as documentos_router
from app.routes.gestion import router as gestion_router

settings = get_settings()
setup_logging(settings.env, settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"[Startup] Gestión Institucional ({settings.env})")
    yield
    close_storage()
    logger.info("[Shutdown] Cliente de storage cerrado")


app = FastAPI(
    title="Gestión Institucional",
    version="0.1.0",
    default_response_class=JSONResponse,
    lifespan=lifespan,
)


# =========================
# Errores de dominio -> HTTP
# =========================
@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    logger.info(f"[API] {request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.errors(include_url=False, include_context=False), "kind": "VALIDATION_ERROR"})


# =========================
# 🔒 FUERZA UTF-8 EN JSON
# =========================
@app.middleware("http")
async def force_utf8_json(request: Request, call_next):
    response = await call_next(request)
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        response.headers["Content-Type"] = "application/json; charset=utf-8"
    return response


# Routers
app.include_router(db_router)
app.include_router(auth_router)
app.include_router(documentos_router)
app.include_router(gestion_router)
