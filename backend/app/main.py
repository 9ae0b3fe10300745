import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from app.core.config import settings
from app.core.database import init_db, seed_presets
from app.core.errors import RelayError, UpstreamHandshakeFailed
from app.api import chat, conversations, presets

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Configure logging based on debug setting
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s" if settings.debug
        else "%(levelname)-8s %(name)s: %(message)s",
    )

    init_db()
    settings.uploads_dir.mkdir(parents=True, exist_ok=True)
    if settings.presets_file:
        seed_presets(settings.presets_file)

    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError):
    if isinstance(exc, UpstreamHandshakeFailed):
        # Forward the upstream failure as-is so clients see the provider's own message.
        if isinstance(exc.body, str):
            return PlainTextResponse(exc.body, status_code=exc.status_code)
        return JSONResponse(exc.body, status_code=exc.status_code)
    logger.info(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse({"error": {"message": exc.message}}, status_code=exc.status_code)


app.include_router(chat.router, prefix="/api/chat", tags=["chat"])
app.include_router(conversations.router, prefix="/api/conversations", tags=["conversations"])
app.include_router(presets.router, prefix="/api", tags=["presets"])
app.mount("/uploads", StaticFiles(directory=settings.uploads_dir, check_dir=False), name="uploads")


@app.get("/api/health")
async def health():
    return {"status": "ok", "app": settings.app_name}
