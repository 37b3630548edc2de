"""Clash detection for class timetables.

A class timetable is rejected when two of its own periods overlap, or when
one of its periods shares a teacher or a location with an overlapping period
of another active timetable in the same academic year and term. Only the
first blocking conflict is reported.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Literal

from portal.core.exceptions import InvalidInputError
from portal.schemas.timetable import DAY_VALUES, parse_time_to_minutes

logger = logging.getLogger(__name__)

ConflictType = Literal["period_overlap", "teacher_conflict", "location_conflict"]


@dataclass(frozen=True)
class PeriodSlot:
    day_of_week: str
    start_time: str
    end_time: str
    subject_id: str
    teacher_id: str | None = None
    location: str | None = None
    # Display labels; ids are used when they are missing.
    subject_name: str | None = None
    teacher_name: str | None = None

    @property
    def subject_label(self) -> str:
        return self.subject_name or self.subject_id

    @property
    def teacher_label(self) -> str:
        return self.teacher_name or self.teacher_id or "unassigned"

    @property
    def window(self) -> str:
        return f"{self.start_time}-{self.end_time}"


@dataclass(frozen=True)
class TimetableScope:
    academic_year_id: str
    class_id: str
    term_id: str | None = None
    timetable_id: str | None = None


@dataclass(frozen=True)
class TimetableSnapshot:
    id: str
    academic_year_id: str
    class_id: str
    term_id: str | None
    is_active: bool
    periods: Sequence[PeriodSlot] = field(default_factory=tuple)
    class_name: str | None = None

    @property
    def class_label(self) -> str:
        return self.class_name or self.class_id


@dataclass(frozen=True)
class TimetableConflict:
    conflict_type: ConflictType
    message: str
    day_of_week: str
    other_timetable_id: str | None = None


@dataclass(frozen=True)
class _Interval:
    slot: PeriodSlot
    start: int
    end: int

    def overlaps(self, other: "_Interval") -> bool:
        # Half-open ranges: 09:00-10:00 and 10:00-11:00 do not clash.
        return (
            self.slot.day_of_week == other.slot.day_of_week
            and self.start < other.end
            and self.end > other.start
        )


def _to_interval(slot: PeriodSlot) -> _Interval:
    if slot.day_of_week not in DAY_VALUES:
        raise InvalidInputError(
            f"Invalid day of week '{slot.day_of_week}'",
            details={"subject_id": slot.subject_id},
        )
    try:
        start = parse_time_to_minutes(slot.start_time)
        end = parse_time_to_minutes(slot.end_time)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(
            f"Invalid period time '{slot.start_time}-{slot.end_time}': expected HH:MM",
            details={"subject_id": slot.subject_id, "day_of_week": slot.day_of_week},
        ) from exc
    if end <= start:
        raise InvalidInputError(
            f"Period {slot.window} on {slot.day_of_week} must end after it starts",
            details={"subject_id": slot.subject_id, "day_of_week": slot.day_of_week},
        )
    return _Interval(slot=slot, start=start, end=end)


def _normalize_location(location: str | None) -> str:
    return (location or "").strip().casefold()


def _in_scope(snapshot: TimetableSnapshot, scope: TimetableScope) -> bool:
    if not snapshot.is_active:
        return False
    if scope.timetable_id is not None and snapshot.id == scope.timetable_id:
        return False
    # The class's own active timetable is superseded when this one is activated.
    if snapshot.class_id == scope.class_id:
        return False
    # Timetables without a term form their own bucket.
    return snapshot.academic_year_id == scope.academic_year_id and snapshot.term_id == scope.term_id


def _check_intra_list(intervals: Sequence[_Interval]) -> TimetableConflict | None:
    for index, first in enumerate(intervals):
        for second in intervals[index + 1 :]:
            if first.overlaps(second):
                a, b = first.slot, second.slot
                return TimetableConflict(
                    conflict_type="period_overlap",
                    message=(
                        f"Periods overlap on {a.day_of_week}: "
                        f"{a.subject_label} ({a.window}) and {b.subject_label} ({b.window})."
                    ),
                    day_of_week=a.day_of_week,
                )
    return None


def _check_against(candidate: _Interval, other: _Interval, snapshot: TimetableSnapshot) -> TimetableConflict | None:
    if not candidate.overlaps(other):
        return None
    mine, theirs = candidate.slot, other.slot
    if mine.teacher_id and mine.teacher_id == theirs.teacher_id:
        return TimetableConflict(
            conflict_type="teacher_conflict",
            message=(
                f"Teacher {theirs.teacher_label} is already teaching {theirs.subject_label} "
                f"for {snapshot.class_label} on {theirs.day_of_week} {theirs.window}, "
                f"which overlaps {mine.subject_label} ({mine.window})."
            ),
            day_of_week=mine.day_of_week,
            other_timetable_id=snapshot.id,
        )
    location = _normalize_location(mine.location)
    if location and location == _normalize_location(theirs.location):
        return TimetableConflict(
            conflict_type="location_conflict",
            message=(
                f"Location {theirs.location.strip()} is already booked for {snapshot.class_label} "
                f"on {theirs.day_of_week} {theirs.window}, which overlaps "
                f"{mine.subject_label} ({mine.window})."
            ),
            day_of_week=mine.day_of_week,
            other_timetable_id=snapshot.id,
        )
    return None


def detect_conflicts(
    candidate_periods: Sequence[PeriodSlot],
    scope: TimetableScope,
    other_active_timetables: Iterable[TimetableSnapshot],
) -> TimetableConflict | None:
    """Return the first blocking conflict for ``candidate_periods``, or ``None``.

    Pairs within the candidate list are checked first, then every candidate
    period against the periods of each in-scope timetable in iteration order.
    In scope means active, in the same academic year and term bucket, and
    belonging to a different class; timetables of ``scope.class_id`` (including
    ``scope.timetable_id`` itself) are skipped since activation retires them.
    Raises ``InvalidInputError`` for malformed days or times.
    """
    if not scope.academic_year_id or not scope.class_id:
        raise InvalidInputError("academic_year_id and class_id are required for conflict detection")

    candidates = [_to_interval(slot) for slot in candidate_periods]

    conflict = _check_intra_list(candidates)
    if conflict is not None:
        logger.info("Timetable %s rejected: %s", scope.timetable_id or "<new>", conflict.message)
        return conflict

    others = [
        (snapshot, [_to_interval(slot) for slot in snapshot.periods])
        for snapshot in other_active_timetables
        if _in_scope(snapshot, scope)
    ]
    for candidate in candidates:
        for snapshot, intervals in others:
            for other in intervals:
                conflict = _check_against(candidate, other, snapshot)
                if conflict is not None:
                    logger.info(
                        "Timetable %s clashes with timetable %s: %s",
                        scope.timetable_id or "<new>",
                        snapshot.id,
                        conflict.message,
                    )
                    return conflict
    return None
