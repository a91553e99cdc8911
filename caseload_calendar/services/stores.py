# caseload_calendar/services/stores.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Protocol

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from caseload_calendar.models.meeting import MeetingRow
from caseload_calendar.models.schedule_template import ScheduleTemplateRow
from caseload_calendar.models.session_record import SessionRecordRow
from caseload_calendar.schemas.meeting import MeetingRecord, MeetingRecordCreate
from caseload_calendar.schemas.schedule_template import ScheduleTemplate, ScheduleTemplateCreate
from caseload_calendar.schemas.session_record import SessionRecord, SessionRecordCreate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduleSnapshot:
    """
    Everything the occurrence engine reads, loaded together.
    """

    templates: list[ScheduleTemplate] = field(default_factory=list)
    sessions: list[SessionRecord] = field(default_factory=list)
    meetings: list[MeetingRecord] = field(default_factory=list)


# --------------------------------------------------------------------------
# Collaborator protocols
# --------------------------------------------------------------------------

class ScheduleStore(Protocol):
    async def list_templates(self) -> list[ScheduleTemplate]: ...

    async def get_template(self, template_id: str) -> ScheduleTemplate | None: ...

    async def create_template(self, payload: ScheduleTemplateCreate) -> ScheduleTemplate: ...

    async def update_template(
        self, template_id: str, changes: Mapping[str, Any]
    ) -> ScheduleTemplate: ...

    async def delete_template(self, template_id: str) -> None: ...


class SessionStore(Protocol):
    async def list_sessions(self) -> list[SessionRecord]: ...

    async def create_session(self, payload: SessionRecordCreate) -> SessionRecord: ...

    async def update_session(
        self, session_id: str, changes: Mapping[str, Any]
    ) -> SessionRecord: ...

    async def delete_session(self, session_id: str) -> None: ...


class MeetingStore(Protocol):
    async def list_meetings(self) -> list[MeetingRecord]: ...

    async def update_meeting(
        self, meeting_id: str, changes: Mapping[str, Any]
    ) -> MeetingRecord: ...

    async def delete_meeting(self, meeting_id: str) -> None: ...


def _new_id() -> str:
    return uuid.uuid4().hex


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


# --------------------------------------------------------------------------
# SQLAlchemy implementations
# --------------------------------------------------------------------------

class SqlScheduleStore:
    """
    Schedule Store backed by the `schedule_templates` table.

    Missing ids raise LookupError; database errors propagate unchanged.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _get_row(self, template_id: str) -> ScheduleTemplateRow:
        result = await self.db.execute(
            select(ScheduleTemplateRow).where(ScheduleTemplateRow.id == template_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise LookupError(f"Template with id={template_id} not found")
        return row

    async def list_templates(self) -> list[ScheduleTemplate]:
        result = await self.db.execute(
            select(ScheduleTemplateRow).order_by(ScheduleTemplateRow.id.asc())
        )
        return [ScheduleTemplate.model_validate(r) for r in result.scalars().all()]

    async def get_template(self, template_id: str) -> ScheduleTemplate | None:
        try:
            row = await self._get_row(template_id)
        except LookupError:
            return None
        return ScheduleTemplate.model_validate(row)

    async def create_template(self, payload: ScheduleTemplateCreate) -> ScheduleTemplate:
        data = payload.model_dump(mode="json")
        data["id"] = data.get("id") or _new_id()
        now = _utc_now_iso()
        row = ScheduleTemplateRow(**data, date_created=now, date_updated=now)
        self.db.add(row)
        await self.db.commit()
        await self.db.refresh(row)
        logger.info("Created template %s", row.id)
        return ScheduleTemplate.model_validate(row)

    async def update_template(
        self, template_id: str, changes: Mapping[str, Any]
    ) -> ScheduleTemplate:
        row = await self._get_row(template_id)
        for name, value in changes.items():
            setattr(row, name, value)
        row.date_updated = _utc_now_iso()
        await self.db.commit()
        await self.db.refresh(row)
        return ScheduleTemplate.model_validate(row)

    async def delete_template(self, template_id: str) -> None:
        row = await self._get_row(template_id)
        await self.db.delete(row)
        await self.db.commit()
        logger.info("Deleted template %s", template_id)


class SqlSessionStore:
    """
    Session Store backed by the `session_records` table, listed in creation order.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _get_row(self, session_id: str) -> SessionRecordRow:
        result = await self.db.execute(
            select(SessionRecordRow).where(SessionRecordRow.id == session_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise LookupError(f"Session with id={session_id} not found")
        return row

    async def list_sessions(self) -> list[SessionRecord]:
        result = await self.db.execute(
            select(SessionRecordRow).order_by(SessionRecordRow.seq.asc(), SessionRecordRow.id.asc())
        )
        return [SessionRecord.model_validate(r) for r in result.scalars().all()]

    async def create_session(self, payload: SessionRecordCreate) -> SessionRecord:
        data = payload.model_dump(mode="json")
        data["id"] = data.get("id") or _new_id()
        next_seq = (await self.db.execute(select(func.max(SessionRecordRow.seq)))).scalar()
        row = SessionRecordRow(**data, seq=(next_seq or 0) + 1)
        self.db.add(row)
        await self.db.commit()
        await self.db.refresh(row)
        return SessionRecord.model_validate(row)

    async def update_session(
        self, session_id: str, changes: Mapping[str, Any]
    ) -> SessionRecord:
        """
        Partial update. The merged record is validated before anything is
        written, so a null on a required field raises ValidationError.
        """
        row = await self._get_row(session_id)
        current = SessionRecord.model_validate(row)
        SessionRecord.model_validate({**current.model_dump(), **changes})
        for name, value in changes.items():
            setattr(row, name, value)
        await self.db.commit()
        await self.db.refresh(row)
        return SessionRecord.model_validate(row)

    async def delete_session(self, session_id: str) -> None:
        row = await self._get_row(session_id)
        await self.db.delete(row)
        await self.db.commit()


class SqlMeetingStore:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _get_row(self, meeting_id: str) -> MeetingRow:
        result = await self.db.execute(select(MeetingRow).where(MeetingRow.id == meeting_id))
        row = result.scalar_one_or_none()
        if row is None:
            raise LookupError(f"Meeting with id={meeting_id} not found")
        return row

    async def list_meetings(self) -> list[MeetingRecord]:
        result = await self.db.execute(select(MeetingRow).order_by(MeetingRow.date.asc(), MeetingRow.id.asc()))
        return [MeetingRecord.model_validate(r) for r in result.scalars().all()]

    async def create_meeting(self, payload: MeetingRecordCreate) -> MeetingRecord:
        data = payload.model_dump(mode="json")
        data["id"] = data.get("id") or _new_id()
        row = MeetingRow(**data)
        self.db.add(row)
        await self.db.commit()
        await self.db.refresh(row)
        return MeetingRecord.model_validate(row)

    async def update_meeting(
        self, meeting_id: str, changes: Mapping[str, Any]
    ) -> MeetingRecord:
        row = await self._get_row(meeting_id)
        current = MeetingRecord.model_validate(row)
        MeetingRecord.model_validate({**current.model_dump(), **changes})
        for name, value in changes.items():
            setattr(row, name, value)
        await self.db.commit()
        await self.db.refresh(row)
        return MeetingRecord.model_validate(row)

    async def delete_meeting(self, meeting_id: str) -> None:
        row = await self._get_row(meeting_id)
        await self.db.delete(row)
        await self.db.commit()
