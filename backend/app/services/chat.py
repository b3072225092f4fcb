"""One prompt/response exchange: validate, generate, persist."""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy.orm import Session

from app.schemas.chat import GenerateTextResult
from app.services.messages import append_exchange
from app.services.request_queue import GenerationQueue

logger = logging.getLogger(__name__)


class PromptRequiredError(ValueError):
    """Raised when a request carries no usable prompt."""


async def run_generate_turn(db: Session, prompt: str | None, *, queue: GenerationQueue) -> GenerateTextResult:
    """Generate a reply for ``prompt`` and append both records to the transcript."""

    trimmed_prompt = (prompt or "").strip()
    if not trimmed_prompt:
        raise PromptRequiredError("Prompt is required")

    reply = await queue.submit(trimmed_prompt)
    logger.info("chat.reply_received prompt_chars=%d reply_chars=%d", len(trimmed_prompt), len(reply))

    user_message, assistant_message = await asyncio.to_thread(append_exchange, db, trimmed_prompt, reply)
    return GenerateTextResult(
        user_input=user_message.content,
        response=assistant_message.content,
        time=user_message.timestamp,
    )
