"""Transcript history routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.dependencies import get_db
from app.schemas.common import ApiResponse
from app.schemas.message import MessageRead
from app.services.messages import list_messages


router = APIRouter()


@router.get("/messages", response_model=ApiResponse[list[MessageRead]])
def get_messages(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
) -> ApiResponse[list[MessageRead]]:
    """List stored transcript records in arrival order."""

    records = list_messages(db, limit=limit, offset=offset)
    return ApiResponse(data=[MessageRead.model_validate(message) for message in records])
