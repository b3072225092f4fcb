"""Transcript persistence services."""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.message import ChatMessage

logger = logging.getLogger(__name__)


class ChatPersistenceError(RuntimeError):
    """Raised when transcript records cannot be stored or read."""


def append_exchange(db: Session, prompt: str, reply: str) -> tuple[ChatMessage, ChatMessage]:
    """Append the user prompt and assistant reply, in that order."""

    user_timestamp = datetime.now(timezone.utc)
    user_message = ChatMessage(role="user", content=prompt, timestamp=user_timestamp)
    assistant_message = ChatMessage(
        role="assistant",
        content=reply,
        timestamp=max(datetime.now(timezone.utc), user_timestamp),
    )
    try:
        db.add(user_message)
        db.flush()
        db.add(assistant_message)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("messages.append_failed")
        raise ChatPersistenceError(str(exc)) from exc

    db.refresh(user_message)
    db.refresh(assistant_message)
    logger.info("messages.appended user_id=%d assistant_id=%d", user_message.id, assistant_message.id)
    return user_message, assistant_message


def list_messages(db: Session, *, limit: int = 100, offset: int = 0) -> list[ChatMessage]:
    """Return transcript records in arrival order."""

    stmt = (
        select(ChatMessage)
        .order_by(ChatMessage.timestamp.asc(), ChatMessage.id.asc())
        .offset(offset)
        .limit(limit)
    )
    try:
        return list(db.scalars(stmt).all())
    except SQLAlchemyError as exc:
        logger.exception("messages.list_failed")
        raise ChatPersistenceError(str(exc)) from exc
