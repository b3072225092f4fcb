"""Chat message response schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict


class MessageRead(BaseModel):
    """Serialized transcript record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime
