# caseload_calendar/services/occurrence_evaluator.py
from __future__ import annotations

from datetime import date

from caseload_calendar.schemas.occurrence import OccurrenceStatus
from caseload_calendar.services.input_normalizer import NormalizedTemplate
from caseload_calendar.services.session_matcher import MatchResult


class OccurrenceEvaluator:
    """
    Classifies one (template, date) pair for the current computation pass.

    Rules
    -----
    1) Date in the template's cancelled set  => CANCELLED
    2) Else a session was matched, missed    => MISSED
    3) Else a session was matched            => LOGGED
    4) Else                                  => SCHEDULED

    Nothing is stored: the same inputs always give the same status.
    """

    @staticmethod
    def evaluate(
        template: NormalizedTemplate,
        occurrence_date: date,
        match: MatchResult | None,
    ) -> OccurrenceStatus:
        # Rule 1: Cancelled wins immediately
        if template.is_cancelled(occurrence_date):
            return OccurrenceStatus.CANCELLED

        if match is None:
            return OccurrenceStatus.SCHEDULED

        # Rules 2/3: Logged and missed are mutually exclusive
        if match.missed:
            return OccurrenceStatus.MISSED
        return OccurrenceStatus.LOGGED
