# caseload_calendar/api/dependencies/calendar.py
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from caseload_calendar.core.config import get_settings
from caseload_calendar.db.session import get_db
from caseload_calendar.services.calendar_service import CalendarService
from caseload_calendar.services.engine_settings import EngineSettings
from caseload_calendar.services.occurrence_engine import OccurrenceCache
from caseload_calendar.services.stores import SqlMeetingStore, SqlScheduleStore, SqlSessionStore


@lru_cache()
def get_occurrence_cache() -> OccurrenceCache:
    """
    Process-wide occurrence memo, shared across requests.
    """
    settings = get_settings()
    return OccurrenceCache(
        maxsize=settings.OCCURRENCE_CACHE_SIZE,
        settings=EngineSettings.from_settings(settings),
    )


async def get_calendar_service(
    db: AsyncSession = Depends(get_db),
) -> CalendarService:
    return CalendarService(
        schedule_store=SqlScheduleStore(db),
        session_store=SqlSessionStore(db),
        meeting_store=SqlMeetingStore(db),
        cache=get_occurrence_cache(),
    )
