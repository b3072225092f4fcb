"""ORM models package exports."""

from app.models.message import ChatMessage

__all__ = ["ChatMessage"]
