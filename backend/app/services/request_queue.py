"""Single-slot serializer for outbound generation calls."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from fastapi import Request

from app.config import Settings
from app.services.backoff import SleepFn, generate_with_backoff
from app.services.gemini import TextGenerationClient, get_default_gemini_client

logger = logging.getLogger(__name__)

GenerateFn = Callable[[str], Awaitable[str]]


@dataclass(slots=True)
class _PendingRequest:
    prompt: str
    future: asyncio.Future[str]


class GenerationQueue:
    """Run prompts one at a time, spaced by a minimum interval.

    Requests are drained in submission order by a single worker. Before each
    call the worker waits until ``min_interval_seconds`` have passed since the
    previous call finished, whether it succeeded or failed.
    """

    def __init__(
        self,
        generate: GenerateFn,
        *,
        min_interval_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._generate = generate
        self.min_interval_seconds = min_interval_seconds
        self._clock = clock
        self._sleep = sleep
        self._pending: deque[_PendingRequest] = deque()
        self._processing = False
        self._last_completed_at: float | None = None
        self._worker: asyncio.Task[None] | None = None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def is_processing(self) -> bool:
        return self._processing

    async def submit(self, prompt: str) -> str:
        """Enqueue a prompt and wait for its generated text."""

        loop = asyncio.get_running_loop()
        future: asyncio.Future[str] = loop.create_future()
        self._pending.append(_PendingRequest(prompt=prompt, future=future))
        logger.debug("queue.enqueued pending=%d processing=%s", len(self._pending), self._processing)
        if not self._processing:
            self._processing = True
            self._worker = loop.create_task(self._drain())
        return await future

    async def _drain(self) -> None:
        try:
            while self._pending:
                request = self._pending.popleft()
                await self._wait_for_slot()
                try:
                    result = await self._generate(request.prompt)
                except Exception as exc:
                    if not request.future.done():
                        request.future.set_exception(exc)
                else:
                    if not request.future.done():
                        request.future.set_result(result)
                finally:
                    self._last_completed_at = self._clock()
        finally:
            self._processing = False

    async def _wait_for_slot(self) -> None:
        if self._last_completed_at is None:
            return
        elapsed = self._clock() - self._last_completed_at
        if elapsed < self.min_interval_seconds:
            wait_seconds = self.min_interval_seconds - elapsed
            logger.info("queue.spacing wait_s=%.2f pending=%d", wait_seconds, len(self._pending))
            await self._sleep(wait_seconds)


def build_generation_queue(
    settings: Settings,
    client: TextGenerationClient | None = None,
    *,
    sleep: SleepFn = asyncio.sleep,
) -> GenerationQueue:
    """Wire a queue to the Gemini client and the rate-limit retry policy."""

    async def _generate(prompt: str) -> str:
        return await generate_with_backoff(
            client or get_default_gemini_client(),
            prompt,
            max_retries=settings.max_retries,
            initial_delay_seconds=settings.initial_retry_delay_seconds,
            sleep=sleep,
        )

    return GenerationQueue(
        _generate,
        min_interval_seconds=settings.rate_limit_delay_seconds,
        sleep=sleep,
    )


def get_generation_queue(request: Request) -> GenerationQueue:
    """Return the process-wide queue created at startup."""

    return request.app.state.generation_queue
