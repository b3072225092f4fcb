"""Text generation route."""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.config import get_settings
from app.db.dependencies import get_db
from app.schemas.chat import GenerateTextRequest, GenerateTextResult
from app.schemas.common import ApiResponse, ErrorResponse
from app.services.backoff import RATE_LIMIT_STATUS
from app.services.chat import PromptRequiredError, run_generate_turn
from app.services.gemini import GeminiError, RateLimitExceededError, UpstreamHTTPError
from app.services.messages import ChatPersistenceError
from app.services.request_queue import GenerationQueue, get_generation_queue

logger = logging.getLogger(__name__)

router = APIRouter()

GENERATE_TEXT_PATH = "/generate-text"


def _error(status_code: int, error: str, details: Any = None, retry_after: float | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details, retry_after=retry_after)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@router.post(
    GENERATE_TEXT_PATH,
    response_model=ApiResponse[GenerateTextResult],
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def generate_text(
    payload: GenerateTextRequest,
    db: Session = Depends(get_db),
    queue: GenerationQueue = Depends(get_generation_queue),
):
    """Send a prompt to Gemini and store the exchange."""

    try:
        result = await run_generate_turn(db, payload.prompt, queue=queue)
    except PromptRequiredError as exc:
        logger.warning("generate.rejected reason=%s", exc)
        return _error(400, str(exc))
    except RateLimitExceededError as exc:
        logger.error("generate.rate_limited attempts=%d", exc.attempts)
        return _rate_limited()
    except UpstreamHTTPError as exc:
        logger.error("generate.upstream_error status=%d", exc.status_code)
        if exc.status_code == RATE_LIMIT_STATUS:
            return _rate_limited()
        return _error(exc.status_code, "Gemini API Error", details=exc.body)
    except ChatPersistenceError as exc:
        logger.error("generate.database_error detail=%s", exc)
        return _error(500, "Database Error", details=str(exc))
    except GeminiError as exc:
        logger.error("generate.failed detail=%s", exc)
        return _error(500, "Error generating response", details=str(exc))

    return ApiResponse(data=result)


def _rate_limited() -> JSONResponse:
    return _error(
        429,
        "Rate limit exceeded",
        details="Please wait a moment and try again",
        retry_after=get_settings().rate_limit_delay_seconds,
    )
