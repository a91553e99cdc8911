# caseload_calendar/services/session_matcher.py
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

from caseload_calendar.services.engine_settings import EngineSettings
from caseload_calendar.services.input_normalizer import NormalizedSession

logger = logging.getLogger(__name__)


class MatchTier(str, Enum):
    DIRECT_TIME = "direct_time"
    DIRECT_DATE = "direct_date"
    PARTICIPANT_TIME = "participant_time"
    PARTICIPANT_DATE = "participant_date"
    GROUP = "group"
    GROUP_MEMBERS_TIME = "group_members_time"
    GROUP_MEMBERS_DATE = "group_members_date"


@dataclass(frozen=True)
class MatchTarget:
    """
    What the matcher needs to know about one scheduled occurrence.
    """

    key: str
    template_id: str
    date: date
    start: datetime
    participant_ids: tuple[str, ...]

    @property
    def is_group(self) -> bool:
        return len(self.participant_ids) > 1


@dataclass(frozen=True)
class MatchResult:
    """
    Records a strategy linked to a target. `sessions[0]` is the primary pick.

    After finalization by SessionMatcher, `sessions` holds every member record
    (whole groups included) and `missed` is resolved.
    """

    tier: MatchTier
    sessions: tuple[NormalizedSession, ...]
    missed: bool = False

    @property
    def primary(self) -> NormalizedSession:
        return self.sessions[0]

    @property
    def session_ids(self) -> list[str]:
        return [s.id for s in self.sessions]


class MatchStrategy(ABC):
    """
    One matching tier. Strategies are pure: they only look at the target and
    the candidate records they are handed.
    """

    #: Records matched by this strategy are reserved for the target and hidden
    #: from the fallback tiers of every other target.
    reserves_sessions: bool = False

    def __init__(self, settings: EngineSettings | None = None) -> None:
        self.settings = settings or EngineSettings()

    @abstractmethod
    def try_match(
        self,
        target: MatchTarget,
        candidates: Sequence[NormalizedSession],
    ) -> Optional[MatchResult]:
        ...

    # -- shared helpers -------------------------------------------------------

    @staticmethod
    def delta(session: NormalizedSession, target: MatchTarget) -> timedelta:
        return abs(session.start - target.start)

    def within_tolerance(self, session: NormalizedSession, target: MatchTarget) -> bool:
        return self.delta(session, target) <= self.settings.match_tolerance

    def rank(
        self, sessions: Iterable[NormalizedSession], target: MatchTarget
    ) -> List[NormalizedSession]:
        """
        Smallest time delta first, then creation order, then id.
        """
        return sorted(sessions, key=lambda s: (self.delta(s, target), s.position, s.id))

    def best_per_participant(
        self,
        sessions: Sequence[NormalizedSession],
        target: MatchTarget,
    ) -> Dict[str, NormalizedSession]:
        picks: Dict[str, NormalizedSession] = {}
        for session in self.rank(sessions, target):
            picks.setdefault(session.participant_id, session)
        return picks


class _DirectLinkStrategy(MatchStrategy):
    reserves_sessions = True
    tier: MatchTier
    time_tolerant: bool

    def try_match(self, target, candidates):
        linked = [
            s
            for s in candidates
            if s.template_id == target.template_id and s.date == target.date
        ]
        eligible = [s for s in linked if self.within_tolerance(s, target)] if self.time_tolerant else linked
        if not eligible:
            return None

        ranked = self.rank(eligible, target)
        primary = ranked[0]
        if not target.is_group:
            return MatchResult(tier=self.tier, sessions=(primary,))

        # Group appointment logged per student against the template.
        members = [primary]
        picks = self.best_per_participant(
            [s for s in linked if s.participant_id in target.participant_ids], target
        )
        for participant_id in target.participant_ids:
            pick = picks.get(participant_id)
            if pick is not None and pick.participant_id != primary.participant_id:
                members.append(pick)
        return MatchResult(tier=self.tier, sessions=tuple(members))


class DirectLinkTimeTolerantStrategy(_DirectLinkStrategy):
    """
    Tier 1: a record linked to the occurrence's template, on the same date,
    starting within the tolerance window. Nearest start wins.
    """

    tier = MatchTier.DIRECT_TIME
    time_tolerant = True


class DirectLinkDateOnlyStrategy(_DirectLinkStrategy):
    """
    Tier 2: a record linked to the template on the same date, any time.
    """

    tier = MatchTier.DIRECT_DATE
    time_tolerant = False


class SingleParticipantStrategy(MatchStrategy):
    """
    Tier 3: any record for the single scheduled student on that date, within
    tolerance first, else at any time that day.
    """

    def try_match(self, target, candidates):
        if len(target.participant_ids) != 1:
            return None
        participant_id = target.participant_ids[0]
        same_day = [
            s
            for s in candidates
            if s.participant_id == participant_id and s.date == target.date
        ]
        if not same_day:
            return None

        timed = [s for s in same_day if self.within_tolerance(s, target)]
        if timed:
            return MatchResult(
                tier=MatchTier.PARTICIPANT_TIME,
                sessions=(self.rank(timed, target)[0],),
            )
        return MatchResult(
            tier=MatchTier.PARTICIPANT_DATE,
            sessions=(self.rank(same_day, target)[0],),
        )


class GroupStrategy(MatchStrategy):
    """
    Tier 4: multi-student occurrences.

    1) Records sharing a group-session id whose student set equals the
       occurrence's, with the group's earliest start within tolerance.
    2) Otherwise every scheduled student needs an individual record that day,
       all within tolerance first, else at any time.
    """

    def try_match(self, target, candidates):
        if not target.is_group:
            return None

        same_day = [s for s in candidates if s.date == target.date]
        if not same_day:
            return None

        group_match = self._match_logged_group(target, same_day)
        if group_match is not None:
            return group_match

        wanted = set(target.participant_ids)
        mine = [s for s in same_day if s.participant_id in wanted]

        timed = self.best_per_participant(
            [s for s in mine if self.within_tolerance(s, target)], target
        )
        if wanted.issubset(timed):
            return MatchResult(
                tier=MatchTier.GROUP_MEMBERS_TIME,
                sessions=tuple(timed[p] for p in target.participant_ids),
            )

        any_time = self.best_per_participant(mine, target)
        if wanted.issubset(any_time):
            return MatchResult(
                tier=MatchTier.GROUP_MEMBERS_DATE,
                sessions=tuple(any_time[p] for p in target.participant_ids),
            )
        return None

    def _match_logged_group(
        self,
        target: MatchTarget,
        same_day: Sequence[NormalizedSession],
    ) -> Optional[MatchResult]:
        groups: Dict[str, List[NormalizedSession]] = defaultdict(list)
        for session in same_day:
            if session.group_id:
                groups[session.group_id].append(session)

        wanted = set(target.participant_ids)
        best: Optional[tuple] = None
        for group_id, members in groups.items():
            if {m.participant_id for m in members} != wanted:
                continue
            reference = min(members, key=lambda m: (m.start, m.position))
            delta = abs(reference.start - target.start)
            if delta > self.settings.match_tolerance:
                continue
            rank_key = (delta, min(m.position for m in members), group_id)
            if best is None or rank_key < best[0]:
                best = (rank_key, reference, members)

        if best is None:
            return None

        _, reference, members = best
        ordered = [reference] + sorted(
            (m for m in members if m is not reference), key=lambda m: (m.position, m.id)
        )
        return MatchResult(tier=MatchTier.GROUP, sessions=tuple(ordered))


def default_strategies(settings: EngineSettings | None = None) -> List[MatchStrategy]:
    return [
        DirectLinkTimeTolerantStrategy(settings),
        DirectLinkDateOnlyStrategy(settings),
        SingleParticipantStrategy(settings),
        GroupStrategy(settings),
    ]


class SessionMatcher:
    """
    Links logged session records to scheduled occurrences.

    Strategies are applied in priority order per occurrence and the first
    success wins. Before a match is accepted every record in it must still be
    present in the current snapshot, otherwise the occurrence stays unmatched.

    Records claimed through a direct template link are reserved for that
    occurrence and not offered to the fallback tiers of other occurrences.
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        strategies: Sequence[MatchStrategy] | None = None,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.strategies: List[MatchStrategy] = (
            list(strategies) if strategies is not None else default_strategies(self.settings)
        )

    def match_all(
        self,
        targets: Sequence[MatchTarget],
        sessions: Sequence[NormalizedSession],
    ) -> Dict[str, MatchResult]:
        snapshot = {s.id: s for s in sessions}
        by_group: Dict[str, List[NormalizedSession]] = defaultdict(list)
        for session in sessions:
            if session.group_id:
                by_group[session.group_id].append(session)

        reserved = self._reserve_direct_links(targets, sessions)

        results: Dict[str, MatchResult] = {}
        for target in targets:
            candidates = [s for s in sessions if reserved.get(s.id, target.key) == target.key]
            for strategy in self.strategies:
                result = strategy.try_match(target, candidates)
                if result is None:
                    continue
                finalized = self._finalize(target, result, snapshot, by_group)
                if finalized is not None:
                    results[target.key] = finalized
                break

        return results

    def _reserve_direct_links(
        self,
        targets: Sequence[MatchTarget],
        sessions: Sequence[NormalizedSession],
    ) -> Dict[str, str]:
        reserved: Dict[str, str] = {}
        reserving = [s for s in self.strategies if s.reserves_sessions]
        for target in targets:
            for strategy in reserving:
                result = strategy.try_match(target, sessions)
                if result is None:
                    continue
                for session in result.sessions:
                    reserved.setdefault(session.id, target.key)
                break
        return reserved

    def _finalize(
        self,
        target: MatchTarget,
        result: MatchResult,
        snapshot: Dict[str, NormalizedSession],
        by_group: Dict[str, List[NormalizedSession]],
    ) -> Optional[MatchResult]:
        stale = [s.id for s in result.sessions if s.id not in snapshot]
        if stale:
            logger.debug(
                "Discarding match for occurrence %s: records %s are not in the snapshot",
                target.key,
                stale,
            )
            return None

        members: Dict[str, NormalizedSession] = {}
        for session in result.sessions:
            if session.group_id:
                for member in by_group.get(session.group_id, ()):
                    members.setdefault(member.id, member)
            else:
                members.setdefault(session.id, session)

        primary = result.primary
        ordered = [primary] + sorted(
            (m for m in members.values() if m.id != primary.id),
            key=lambda m: (m.position, m.id),
        )

        if target.is_group:
            missed = any(m.missed for m in ordered)
        else:
            missed = primary.missed

        return MatchResult(tier=result.tier, sessions=tuple(ordered), missed=missed)
