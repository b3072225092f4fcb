"""Exponential backoff around rate-limited generation calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from app.services.gemini import RateLimitExceededError, TextGenerationClient, UpstreamHTTPError

logger = logging.getLogger(__name__)

RATE_LIMIT_STATUS = 429

SleepFn = Callable[[float], Awaitable[None]]


def retry_delay_seconds(attempt: int, initial_delay_seconds: float) -> float:
    """Delay before retry number ``attempt + 1``; doubles every attempt."""

    return initial_delay_seconds * (2**attempt)


async def generate_with_backoff(
    client: TextGenerationClient,
    prompt: str,
    *,
    max_retries: int = 3,
    initial_delay_seconds: float = 1.0,
    sleep: SleepFn = asyncio.sleep,
) -> str:
    """Call ``client.generate`` and retry on HTTP 429 with doubling delays.

    The first call plus at most ``max_retries`` retries are made. When every
    attempt is rate limited, :class:`RateLimitExceededError` is raised. Other
    failures propagate on the first occurrence.
    """

    attempt = 0
    while True:
        logger.info("gemini.request attempt=%d", attempt + 1)
        try:
            return await asyncio.to_thread(client.generate, prompt)
        except UpstreamHTTPError as exc:
            if exc.status_code != RATE_LIMIT_STATUS:
                raise
            if attempt >= max_retries:
                logger.error("gemini.rate_limit_exhausted attempts=%d", attempt + 1)
                raise RateLimitExceededError(attempts=attempt + 1) from exc
            delay = retry_delay_seconds(attempt, initial_delay_seconds)
            logger.warning("gemini.rate_limited attempt=%d retry_in_s=%.2f", attempt + 1, delay)
            await sleep(delay)
            attempt += 1
