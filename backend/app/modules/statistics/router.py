"""
Statistics API routes.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.auth import get_current_user_id
from app.core.database import get_db
from app.core.timezone import local_today
from app.modules.statistics.services import yearly_statistics

router = APIRouter()


@router.get("/")
async def get_statistics(
    year: Optional[int] = Query(None, ge=1900, le=9998),
    period: Literal["month", "week"] = "month",
    wallet_id: Optional[int] = None,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Income vs expense for a year, by month or week, plus category breakdowns."""
    return yearly_statistics(db, owner_id, year or local_today().year, period=period, wallet_id=wallet_id)
