# caseload_calendar/services/recurrence_expander.py
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import List

from dateutil.rrule import DAILY, FR, MO, SA, SU, TH, TU, WE, WEEKLY, rrule, rruleset

from caseload_calendar.schemas.occurrence import CalendarWindow
from caseload_calendar.schemas.schedule_template import RecurrencePattern
from caseload_calendar.services.engine_settings import EngineSettings
from caseload_calendar.services.input_normalizer import NormalizedTemplate


# Indexed by the stored weekday numbering (0 = Sunday)
_RRULE_WEEKDAYS = (SU, MO, TU, WE, TH, FR, SA)


def _midnight(value: date) -> datetime:
    return datetime.combine(value, time.min)


class RecurrenceExpander:
    """
    Expands one normalized template into the ascending list of dates on which
    it occurs, through a dateutil `rruleset`.

    Rules
    -----
    - none:           the start date, if inside the window.
    - daily:          every date from max(template start, window start) to the
                      upper bound.
    - weekly:         as daily, restricted to the template's weekdays.
    - specific-dates: the explicit list, kept inside the window and inside
                      [template start, template end].
    - Upper bound for daily/weekly: min(end date, window end) when the template
      has an end date, else max(window end, window start + horizon).
    - Cancelled dates are excluded (exdate), unless `include_cancelled` is set
      (used by reporting to count exceptions).
    """

    def __init__(self, settings: EngineSettings | None = None) -> None:
        self.settings = settings or EngineSettings()

    def expand(
        self,
        template: NormalizedTemplate,
        window: CalendarWindow,
        include_cancelled: bool = False,
    ) -> List[date]:
        if not template.active:
            return []

        rule_set = self.build_ruleset(template, window)
        if not include_cancelled:
            for cancelled in template.cancelled_dates:
                rule_set.exdate(_midnight(cancelled))
        return [occurrence.date() for occurrence in rule_set]

    def build_ruleset(self, template: NormalizedTemplate, window: CalendarWindow) -> rruleset:
        rule_set = rruleset()

        if template.pattern == RecurrencePattern.NONE:
            if window.contains(template.start_date):
                rule_set.rdate(_midnight(template.start_date))
        elif template.pattern == RecurrencePattern.SPECIFIC_DATES:
            for value in template.specific_dates:
                if window.contains(value) and self._within_template_range(template, value):
                    rule_set.rdate(_midnight(value))
        elif template.pattern in (RecurrencePattern.DAILY, RecurrencePattern.WEEKLY):
            rule = self._recurring_rule(template, window)
            if rule is not None:
                rule_set.rrule(rule)

        return rule_set

    def upper_bound(self, template: NormalizedTemplate, window: CalendarWindow) -> date:
        if template.end_date is not None:
            return min(template.end_date, window.end)
        horizon_end = window.start + timedelta(days=self.settings.expansion_horizon_days)
        return max(window.end, horizon_end)

    def _recurring_rule(self, template: NormalizedTemplate, window: CalendarWindow) -> rrule | None:
        first = max(template.start_date, window.start)
        last = self.upper_bound(template, window)
        if first > last:
            return None

        if template.pattern == RecurrencePattern.DAILY:
            return rrule(DAILY, dtstart=_midnight(first), until=_midnight(last))

        # rrule falls back to dtstart's weekday when byweekday is empty
        if not template.weekdays:
            return None
        return rrule(
            WEEKLY,
            dtstart=_midnight(first),
            until=_midnight(last),
            byweekday=[_RRULE_WEEKDAYS[d] for d in sorted(template.weekdays)],
        )

    @staticmethod
    def _within_template_range(template: NormalizedTemplate, value: date) -> bool:
        if value < template.start_date:
            return False
        if template.end_date is not None and value > template.end_date:
            return False
        return True
