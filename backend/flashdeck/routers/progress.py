import aiosqlite
from fastapi import APIRouter, Depends

from flashdeck.db.sqlite import get_db, get_progress_stats
from flashdeck.models.quiz import ProgressStats

router = APIRouter()


@router.get("", response_model=ProgressStats)
async def progress(db: aiosqlite.Connection = Depends(get_db)) -> ProgressStats:
    """Learned / unlearned card counts with rounded percentages."""
    return await get_progress_stats(db)
