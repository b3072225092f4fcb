"""Schemas for the text generation endpoint."""

from datetime import datetime

from pydantic import BaseModel


class GenerateTextRequest(BaseModel):
    """Request payload for one prompt.

    ``prompt`` is optional here so that a missing or blank prompt is rejected
    by the service with a 400 instead of a schema validation error.
    """

    prompt: str | None = None


class GenerateTextResult(BaseModel):
    """Generated reply plus the time the prompt was recorded."""

    user_input: str
    response: str
    time: datetime
