# paperboy/main.py
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
import structlog

from paperboy.config import CORS_ORIGINS, PORT, STORE_TIMEOUT_SECONDS, STRICT_TRANSITIONS
from paperboy.infrastructure.database import Database
from paperboy.infrastructure.file_storage import LocalFileStorage
from paperboy.middleware.logging import RequestIdMiddleware
from paperboy.routers.image_router import router as image_router
from paperboy.routers.post_router import router as post_router
from paperboy.services.lifecycle import Clock, LifecycleEngine


def configure_structlog():
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
    )


configure_structlog()
logger = structlog.get_logger()


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("request_validation_failed", errors=len(exc.errors()))
    return JSONResponse(
        status_code=400,
        content={"error": "invalid_input", "details": jsonable_encoder(exc.errors())},
    )


def create_app(
    database: Optional[Database] = None,
    storage: Optional[LocalFileStorage] = None,
    clock: Optional[Clock] = None,
    strict: Optional[bool] = None,
    store_timeout: float = STORE_TIMEOUT_SECONDS,
) -> FastAPI:
    app = FastAPI(title="Paperboy")

    app.state.database = database or Database()
    app.state.storage = storage or LocalFileStorage()
    app.state.lifecycle = LifecycleEngine(clock=clock, strict=STRICT_TRANSITIONS if strict is None else strict)
    app.state.store_timeout = store_timeout

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept"],
    )
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    app.include_router(post_router)
    app.include_router(image_router)
    app.mount("/api/images", StaticFiles(directory=app.state.storage.upload_dir, check_dir=False), name="images")

    @app.on_event("startup")
    async def on_startup():
        await app.state.database.init()
        app.state.storage.ensure_dir()
        logger.info("app_startup")

    @app.on_event("shutdown")
    async def on_shutdown():
        await app.state.database.close()

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("paperboy.main:app", host="0.0.0.0", port=PORT, reload=True)
