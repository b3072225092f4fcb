"""SQLAlchemy metadata registry import for table creation."""

from app.models import ChatMessage
from app.models.base import Base

__all__ = ["Base", "ChatMessage"]
