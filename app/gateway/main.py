"""Lingua – Translation Management Gateway.

FastAPI application: project/translation CRUD, leaf editor, AI suggestions.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.auth import ensure_default_admin
from app.core.instrumentation import router as metrics_router, setup_instrumentation
from app.gateway.auth import router as auth_router
from app.gateway.dependencies import document_cache
from app.gateway.routers.languages import router as languages_router
from app.gateway.routers.projects import router as projects_router
from app.gateway.routers.translations import router as translations_router
from app.translation.errors import PropagationError, TranslationError
from app.translation.llm import unnamed_languages
from config.settings import Settings, get_settings

logger = structlog.get_logger()

VERSION = "1.0.0"

# --- Globals ---
settings: Settings = get_settings()


def _parse_cors_origins(raw: str) -> list[str]:
    origins = [item.strip() for item in (raw or "").split(",") if item.strip()]
    return origins or ["http://localhost:3000"]


def _enforce_startup_guards() -> None:
    if not settings.is_production:
        return
    if settings.auth_secret in {"", "change-me-long-random-secret", "changeme", "password123"}:
        raise RuntimeError("Refusing startup in production due to weak/default secrets.")


def _check_language_config(codes: list[str] | None = None) -> None:
    unnamed = unnamed_languages(settings.language_codes if codes is None else codes)
    if unnamed:
        raise RuntimeError(f"No display name for configured languages: {', '.join(unnamed)}")


@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore[type-arg]
    """Application lifespan: bootstrap schema, connect the cache."""
    _enforce_startup_guards()
    _check_language_config()
    ensure_default_admin()
    logger.info("lingua.gateway.startup", version=VERSION, env=settings.environment)
    try:
        await document_cache.connect()
    except Exception as e:
        logger.warning("lingua.gateway.redis_unavailable", msg="Starting without document cache", error=str(e))
        await document_cache.disconnect()

    yield
    await document_cache.disconnect()
    logger.info("lingua.gateway.shutdown")


app = FastAPI(
    title="Lingua Gateway",
    description="Lingua – Translation Management – FastAPI + SQLAlchemy + Redis cache",
    version=VERSION,
    lifespan=lifespan,
)

setup_instrumentation(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_parse_cors_origins(settings.cors_allowed_origins),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


@app.exception_handler(TranslationError)
async def translation_error_handler(request: Request, exc: TranslationError) -> JSONResponse:
    content: dict[str, Any] = {"detail": str(exc)}
    if isinstance(exc, PropagationError):
        content["language"] = exc.language
    log = logger.error if exc.status_code >= 500 else logger.info
    log("lingua.gateway.request_failed", path=request.url.path, status=exc.status_code, error=str(exc))
    return JSONResponse(status_code=exc.status_code, content=content)


app.include_router(metrics_router)
app.include_router(auth_router)
app.include_router(languages_router)
app.include_router(projects_router)
app.include_router(translations_router)


@app.get("/health")
async def health_check() -> dict[str, Any]:
    """Health endpoint – returns system status."""
    cache_ok = await document_cache.health_check()
    return {
        "status": "ok" if cache_ok else "degraded",
        "service": "lingua-gateway",
        "version": VERSION,
        "redis": "connected" if cache_ok else "disconnected",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def serve() -> None:
    """Run the gateway under uvicorn (``lingua-gateway`` console script)."""
    import uvicorn

    uvicorn.run("app.gateway.main:app", host=settings.gateway_host, port=settings.gateway_port)


if __name__ == "__main__":
    serve()
