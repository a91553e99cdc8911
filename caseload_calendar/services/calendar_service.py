# caseload_calendar/services/calendar_service.py
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date as date_type
from typing import Any, Dict, List, Mapping, Sequence

from pydantic import ValidationError

from caseload_calendar.schemas.mutation import MutationResult, MutationStatus
from caseload_calendar.schemas.occurrence import (
    CalendarWindow,
    Occurrence,
    OccurrenceKind,
    OccurrenceStatus,
    build_occurrence_id,
    parse_occurrence_id,
)
from caseload_calendar.schemas.schedule_summary import ScheduleSummary
from caseload_calendar.schemas.schedule_template import (
    RecurrencePattern,
    ScheduleTemplate,
    ScheduleTemplateUpdate,
)
from caseload_calendar.services.engine_settings import EngineSettings
from caseload_calendar.services.input_normalizer import parse_date
from caseload_calendar.services.meeting_overlay import MEETING_ID_PREFIX
from caseload_calendar.services.occurrence_engine import OccurrenceCache, revalidate_occurrences
from caseload_calendar.services.orphan_collector import ORPHAN_ID_PREFIX
from caseload_calendar.services.schedule_summary import compute_schedule_summary
from caseload_calendar.services.stores import (
    MeetingStore,
    ScheduleSnapshot,
    ScheduleStore,
    SessionStore,
)

logger = logging.getLogger(__name__)

_MOVABLE_PATTERNS = (RecurrencePattern.NONE, RecurrencePattern.SPECIFIC_DATES)


class ScheduleMutationError(RuntimeError):
    """
    Raised when the Schedule Store fails while applying a calendar mutation.

    The original exception is kept on `original` (and chained as __cause__).
    For multi-template writes, `updated_template_ids` lists the templates that
    were already committed before the failure.
    """

    def __init__(
        self,
        message: str,
        original: BaseException | None = None,
        updated_template_ids: Sequence[str] = (),
    ) -> None:
        super().__init__(message)
        self.original = original
        self.updated_template_ids = list(updated_template_ids)


def can_cancel(occurrence: Occurrence) -> bool:
    """
    Only still-pending scheduled occurrences can be cancelled.
    """
    return (
        occurrence.kind == OccurrenceKind.SCHEDULED
        and occurrence.status == OccurrenceStatus.SCHEDULED
    )


def can_reschedule(occurrence: Occurrence, template: ScheduleTemplate) -> bool:
    return (
        occurrence.kind == OccurrenceKind.SCHEDULED
        and not occurrence.is_logged
        and template.recurrence_pattern in _MOVABLE_PATTERNS
    )


def _rejected(reason: str) -> MutationResult:
    return MutationResult(status=MutationStatus.REJECTED, reason=reason)


def _noop(reason: str) -> MutationResult:
    return MutationResult(status=MutationStatus.NOOP, reason=reason)


def _applied(*template_ids: str) -> MutationResult:
    return MutationResult(status=MutationStatus.APPLIED, updated_template_ids=list(template_ids))


class CalendarService:
    """
    Calendar facade over the stores and the occurrence engine.

    Reads always recompute from a freshly loaded snapshot (memoized by
    content). Mutations write templates through the Schedule Store and never
    patch a derived view; an APPLIED result tells the caller to reload.
    """

    def __init__(
        self,
        schedule_store: ScheduleStore,
        session_store: SessionStore,
        meeting_store: MeetingStore,
        settings: EngineSettings | None = None,
        cache: OccurrenceCache | None = None,
    ) -> None:
        self.schedule_store = schedule_store
        self.session_store = session_store
        self.meeting_store = meeting_store
        self.cache = cache or OccurrenceCache(settings=settings)
        self.engine = self.cache.engine

    # ------------------------------------------------------------------ reads

    async def load_snapshot(self) -> ScheduleSnapshot:
        return ScheduleSnapshot(
            templates=await self.schedule_store.list_templates(),
            sessions=await self.session_store.list_sessions(),
            meetings=await self.meeting_store.list_meetings(),
        )

    async def occurrences(self, window: CalendarWindow) -> List[Occurrence]:
        snapshot = await self.load_snapshot()
        return self.cache.get(snapshot.templates, snapshot.sessions, snapshot.meetings, window)

    async def revalidate(self, occurrences: List[Occurrence]) -> List[Occurrence]:
        """
        Drop matched-session references that were deleted since `occurrences`
        was computed.
        """
        sessions = await self.session_store.list_sessions()
        return revalidate_occurrences(occurrences, sessions)

    async def schedule_summary(
        self,
        window: CalendarWindow,
        as_of: date_type | None = None,
    ) -> ScheduleSummary:
        snapshot = await self.load_snapshot()
        return compute_schedule_summary(snapshot, window, as_of=as_of, settings=self.engine.settings)

    # -------------------------------------------------------------- mutations

    async def cancel_occurrence(
        self,
        template_id: str,
        occurrence_date: date_type,
    ) -> MutationResult:
        snapshot = await self.load_snapshot()
        template = self._find_template(snapshot, template_id)

        cancelled = self._normalized_dates(template.cancelled_dates)
        if occurrence_date in cancelled:
            return _noop(f"Occurrence on {occurrence_date} is already cancelled.")

        occurrence = self._find_occurrence(snapshot, template_id, occurrence_date)
        if occurrence is None:
            return _rejected(f"Template {template_id} has no occurrence on {occurrence_date}.")
        if occurrence.is_logged:
            return _rejected("Occurrence has already been logged.")

        cancelled.add(occurrence_date)
        await self._write(template_id, {"cancelled_dates": self._iso_sorted(cancelled)})
        logger.info(
            "Cancelled occurrence %s",
            occurrence.id,
            extra={
                "extra_fields": {
                    "template_id": template_id,
                    "occurrence_date": occurrence_date.isoformat(),
                }
            },
        )
        return _applied(template_id)

    async def cancel_all_on_date(self, target_date: date_type) -> MutationResult:
        snapshot = await self.load_snapshot()
        day = CalendarWindow(start=target_date, end=target_date)
        occurrences = self.engine.compute(snapshot.templates, snapshot.sessions, snapshot.meetings, day)

        dates_by_template: Dict[str, set] = defaultdict(set)
        for occurrence in occurrences:
            if occurrence.date == target_date and can_cancel(occurrence):
                dates_by_template[occurrence.template_id].add(occurrence.date)

        if not dates_by_template:
            return _noop(f"No cancellable occurrences on {target_date}.")

        templates = {t.id: t for t in snapshot.templates}
        updated: List[str] = []
        for template_id in sorted(dates_by_template):
            cancelled = self._normalized_dates(templates[template_id].cancelled_dates)
            cancelled |= dates_by_template[template_id]
            try:
                await self._write(template_id, {"cancelled_dates": self._iso_sorted(cancelled)})
            except ScheduleMutationError as exc:
                exc.updated_template_ids = list(updated)
                raise
            updated.append(template_id)

        logger.info(
            "Cancelled %d template occurrence(s) on %s",
            len(updated),
            target_date,
            extra={
                "extra_fields": {
                    "template_ids": updated,
                    "occurrence_date": target_date.isoformat(),
                }
            },
        )
        return _applied(*updated)

    async def reschedule_occurrence(
        self,
        occurrence_id: str,
        new_date: date_type,
    ) -> MutationResult:
        if occurrence_id.startswith((ORPHAN_ID_PREFIX, MEETING_ID_PREFIX)):
            return _rejected("Only scheduled occurrences can be rescheduled.")

        template_id, old_date = parse_occurrence_id(occurrence_id)
        snapshot = await self.load_snapshot()
        template = self._find_template(snapshot, template_id)

        occurrence = self._find_occurrence(snapshot, template_id, old_date)
        if occurrence is None:
            return _rejected(f"Template {template_id} has no occurrence on {old_date}.")
        if new_date == old_date:
            return _noop("Occurrence dropped on its own date.")
        if not can_reschedule(occurrence, template):
            if occurrence.is_logged:
                return _rejected("Occurrence has already been logged.")
            return _rejected(
                f"Occurrences of a {template.recurrence_pattern.value} template cannot be "
                "moved individually; edit the template instead."
            )

        cancelled = self._normalized_dates(template.cancelled_dates)
        changes: Dict[str, Any] = {}
        if template.recurrence_pattern == RecurrencePattern.NONE:
            changes["start_date"] = new_date.isoformat()
        else:
            dates = self._normalized_dates(template.specific_dates)
            if new_date in dates and new_date not in cancelled:
                return _rejected(f"Template {template_id} already has an occurrence on {new_date}.")
            dates.discard(old_date)
            dates.add(new_date)
            changes["specific_dates"] = self._iso_sorted(dates)
            if new_date < parse_date(template.start_date):
                changes["start_date"] = new_date.isoformat()
            if template.end_date and new_date > parse_date(template.end_date):
                changes["end_date"] = new_date.isoformat()

        if new_date in cancelled:
            cancelled.discard(new_date)
            changes["cancelled_dates"] = self._iso_sorted(cancelled)

        await self._write(template_id, changes)
        logger.info(
            "Rescheduled %s to %s",
            occurrence_id,
            new_date,
            extra={
                "extra_fields": {
                    "template_id": template_id,
                    "new_date": new_date.isoformat(),
                }
            },
        )
        return _applied(template_id)

    async def update_template(
        self,
        template_id: str,
        changes: ScheduleTemplateUpdate | Mapping[str, Any],
    ) -> MutationResult:
        """
        Validated partial update. Past matches need no migration: they are
        recomputed from the new template on the next read.
        """
        if isinstance(changes, ScheduleTemplateUpdate):
            update_data = changes.model_dump(exclude_unset=True, mode="json")
        else:
            update_data = ScheduleTemplateUpdate.model_validate(dict(changes)).model_dump(
                exclude_unset=True, mode="json"
            )

        snapshot = await self.load_snapshot()
        template = self._find_template(snapshot, template_id)
        if not update_data:
            return _noop("No fields to update.")

        try:
            candidate = ScheduleTemplate.model_validate(
                {**template.model_dump(mode="json"), **update_data}
            )
        except ValidationError as exc:
            return _rejected(f"Invalid template: {exc.errors()[0]['msg']}")
        if self.engine.normalizer.normalize_template(candidate) is None:
            return _rejected("Template dates or times could not be parsed.")

        await self._write(template_id, update_data)
        return _applied(template_id)

    # ---------------------------------------------------------------- helpers

    @staticmethod
    def _find_template(snapshot: ScheduleSnapshot, template_id: str) -> ScheduleTemplate:
        for template in snapshot.templates:
            if template.id == template_id:
                return template
        raise LookupError(f"Template with id={template_id} not found")

    def _find_occurrence(
        self,
        snapshot: ScheduleSnapshot,
        template_id: str,
        occurrence_date: date_type,
    ) -> Occurrence | None:
        day = CalendarWindow(start=occurrence_date, end=occurrence_date)
        wanted = build_occurrence_id(template_id, occurrence_date)
        for occurrence in self.engine.compute(
            snapshot.templates, snapshot.sessions, snapshot.meetings, day
        ):
            if occurrence.id == wanted:
                return occurrence
        return None

    @staticmethod
    def _normalized_dates(values: List[str]) -> set:
        dates = set()
        for value in values:
            try:
                dates.add(parse_date(value))
            except ValueError:
                logger.warning("Dropping unreadable date %r while rewriting a template", value)
        return dates

    @staticmethod
    def _iso_sorted(dates: set) -> List[str]:
        return [d.isoformat() for d in sorted(dates)]

    async def _write(self, template_id: str, changes: Mapping[str, Any]) -> ScheduleTemplate:
        try:
            return await self.schedule_store.update_template(template_id, changes)
        except LookupError:
            raise
        except Exception as exc:
            logger.exception("Schedule store failed to update template %s", template_id)
            raise ScheduleMutationError(
                f"Failed to update template {template_id}: {exc}", original=exc
            ) from exc
