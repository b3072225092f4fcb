"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from sqlalchemy import text

from app.config import get_settings
from app.db.base import Base
from app.db.session import engine
from app.logging_config import configure_logging
from app.routers import generate, messages
from app.routers.generate import GENERATE_TEXT_PATH
from app.services.messages import ChatPersistenceError
from app.services.request_queue import build_generation_queue

logger = logging.getLogger(__name__)

_UI_FILE = Path(__file__).resolve().parent / "static" / "index.html"

settings = get_settings()
configure_logging(settings.log_level)


def _prepare_database() -> None:
    """Create the messages table if needed and verify connectivity."""

    try:
        Base.metadata.create_all(engine)
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("startup.database_ready")
    except Exception:
        logger.exception("Database preparation failed; continuing without startup check.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    _prepare_database()
    app.state.generation_queue = build_generation_queue(settings)
    yield


app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

app.include_router(generate.router, tags=["generate"])
app.include_router(messages.router, tags=["messages"])


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_encoder(exc.errors())
    logger.warning("request.invalid path=%s errors=%s", request.url.path, errors)
    if request.url.path == GENERATE_TEXT_PATH:
        return JSONResponse(status_code=400, content={"error": "Prompt is required", "details": errors})
    return JSONResponse(status_code=422, content={"error": "Invalid request", "details": errors})


@app.exception_handler(ChatPersistenceError)
async def persistence_error_handler(_: Request, exc: ChatPersistenceError) -> JSONResponse:
    logger.error("request.database_error detail=%s", exc)
    return JSONResponse(status_code=500, content={"error": "Database Error", "details": str(exc)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request.unhandled_error path=%s", request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error", "details": str(exc)})


@app.get("/", include_in_schema=False)
def chat_page() -> FileResponse:
    """Serve the browser chat interface."""

    return FileResponse(_UI_FILE, media_type="text/html")


@app.get("/health")
def health() -> dict[str, str]:
    """Simple health check endpoint."""

    return {"status": "ok"}
