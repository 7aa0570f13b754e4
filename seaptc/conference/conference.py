"""
seaptc/conference/conference.py
The Conference value: an immutable snapshot of all conference data.

A Conference is never modified after it is published. The update_* methods
return a new value that shares every unchanged field with the old one and
rebuilds only the indices derived from the replaced field. Indices that join
several fields (session grid, evaluation codes, staff IDs, lunches) are
computed on first use, exactly once per value.
"""
import logging
import threading
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from seaptc.conference.models import (
    LUNCH_SESSION,
    NO_CLASS,
    NUM_SESSION,
    PROGRAM_LUNCH,
    TBD_LUNCH,
    ConferenceClass,
    Configuration,
    Lunch,
    Participant,
)
from seaptc.conference.session_class import SessionClass

logger = logging.getLogger(__name__)

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"

# Fields carried over by a shallow copy. Memoized indices are not.
_SHARED_FIELDS = (
    "_classes",
    "_classes_by_number",
    "_participants",
    "_participants_by_id",
    "_participants_by_login_code",
    "_instructor_classes",
    "configuration",
    "date",
)

_EMPTY_MAPPING: Mapping = MappingProxyType({})


def format_base36(n: int) -> str:
    if n == 0:
        return "0"
    sign = ""
    if n < 0:
        sign = "-"
        n = -n
    digits = []
    while n:
        n, r = divmod(n, 36)
        digits.append(_BASE36_DIGITS[r])
    return sign + "".join(reversed(digits))


class memoized:
    """
    Non-data descriptor computing a Conference attribute once per value.

    The computed value is stored in the instance dict, so later reads do not
    go through the descriptor or the lock.
    """

    def __init__(self, fn):
        self.fn = fn
        self.name = fn.__name__
        self.__doc__ = fn.__doc__

    def __get__(self, conf, owner=None):
        if conf is None:
            return self
        with conf._memo_lock:
            if self.name not in conf.__dict__:
                conf.__dict__[self.name] = self.fn(conf)
        return conf.__dict__[self.name]


class Conference:
    """Most of the data associated with the conference."""

    def __init__(self, configuration: Optional[Configuration] = None):
        self._classes: Tuple[ConferenceClass, ...] = ()
        self._classes_by_number: Mapping[int, ConferenceClass] = _EMPTY_MAPPING
        self._participants: Tuple[Participant, ...] = ()
        self._participants_by_id: Mapping[str, Participant] = _EMPTY_MAPPING
        self._participants_by_login_code: Mapping[str, Participant] = _EMPTY_MAPPING
        self._instructor_classes: Mapping[str, Tuple[int, ...]] = _EMPTY_MAPPING
        self.configuration = configuration or Configuration()
        self.date = self.configuration.conference_date()
        self._memo_lock = threading.Lock()

    def _copy(self) -> "Conference":
        new = Conference.__new__(Conference)
        for name in _SHARED_FIELDS:
            new.__dict__[name] = self.__dict__[name]
        new._memo_lock = threading.Lock()
        return new

    # ============================================
    # Functional updates
    # ============================================

    def update_configuration(self, configuration: Configuration) -> "Conference":
        new = self._copy()
        new.configuration = configuration
        new.date = configuration.conference_date()
        return new

    def update_classes(self, classes: Iterable[ConferenceClass]) -> "Conference":
        new = self._copy()
        new._classes = tuple(classes)
        new._classes_by_number = MappingProxyType({c.number: c for c in new._classes})
        return new

    def update_participants(self, participants: Iterable[Participant]) -> "Conference":
        new = self._copy()
        new._participants = tuple(participants)
        new._participants_by_id = MappingProxyType({p.id: p for p in new._participants})
        new._participants_by_login_code = MappingProxyType(
            {p.login_code: p for p in new._participants if p.login_code}
        )
        return new

    def update_instructor_classes(self, instructor_classes: Mapping[str, Sequence[int]]) -> "Conference":
        new = self._copy()
        new._instructor_classes = MappingProxyType(
            {pid: tuple(numbers) for pid, numbers in instructor_classes.items()}
        )
        return new

    # ============================================
    # Direct lookups
    # ============================================

    @property
    def classes(self) -> List[ConferenceClass]:
        # A new list so that the caller can sort and filter.
        return list(self._classes)

    @property
    def participants(self) -> List[Participant]:
        return list(self._participants)

    @property
    def instructor_classes(self) -> Mapping[str, Tuple[int, ...]]:
        return self._instructor_classes

    def get_class(self, number: int) -> Optional[ConferenceClass]:
        return self._classes_by_number.get(number)

    def participant(self, participant_id: str) -> Optional[Participant]:
        return self._participants_by_id.get(participant_id)

    def participant_from_login_code(self, login_code: str) -> Optional[Participant]:
        if not login_code:
            return None
        return self._participants_by_login_code.get(login_code)

    def participant_instructor_classes(self, p: Participant) -> Tuple[int, ...]:
        numbers = self._instructor_classes.get(p.id, ())
        if len(numbers) < NUM_SESSION:
            numbers = tuple(numbers) + (0,) * (NUM_SESSION - len(numbers))
        return numbers

    def print_signature(self, p: Participant) -> str:
        """
        Fingerprint of the participant's class vector, used to decide whether
        the participant's form must be printed again.
        """
        classes = ",".join(format_base36(n) for n in p.classes)
        instructor = ",".join(format_base36(n) for n in self.participant_instructor_classes(p))
        return f"{classes}|{instructor}"

    def class_participants(self, c: ConferenceClass) -> List[Participant]:
        return [p for p in self._participants if c.number in p.classes]

    # ============================================
    # Staff
    # ============================================

    @memoized
    def _ids(self) -> Tuple[frozenset, frozenset]:
        staff = {i.lower() for i in self.configuration.staff_ids}
        admin = {i.lower() for i in self.configuration.admin_ids}
        return frozenset(staff | admin), frozenset(admin)

    def is_staff(self, user_id: Optional[str]) -> bool:
        if not user_id:
            return False
        return user_id.lower() in self._ids[0]

    def is_admin(self, user_id: Optional[str]) -> bool:
        if not user_id:
            return False
        return user_id.lower() in self._ids[1]

    # ============================================
    # Sessions and evaluation codes
    # ============================================

    @memoized
    def sessions(self) -> Tuple[Tuple[SessionClass, ...], ...]:
        """For each session index, the classes meeting in that session."""
        grid: List[List[SessionClass]] = [[] for _ in range(NUM_SESSION)]
        for c in self._classes:
            for i in range(max(c.start, 0), min(c.end, NUM_SESSION - 1) + 1):
                grid[i].append(SessionClass(c, i))
        return tuple(tuple(row) for row in grid)

    @memoized
    def _evaluation_codes(self) -> Mapping[str, SessionClass]:
        index: Dict[str, SessionClass] = {}
        for c in self._classes:
            for i, code in enumerate(c.evaluation_codes):
                index[code] = SessionClass(c, c.start + i)
        return MappingProxyType(index)

    def session_class_from_evaluation_code(self, evaluation_code: str) -> Optional[SessionClass]:
        return self._evaluation_codes.get(evaluation_code)

    # ============================================
    # Lunch
    # ============================================

    @memoized
    def _lunches(self) -> Tuple[Mapping[int, Lunch], Mapping[str, Lunch]]:
        by_class: Dict[int, Lunch] = {}
        by_unit_type: Dict[str, Lunch] = {}
        for lunch in self.configuration.lunches:
            for n in lunch.classes:
                by_class[n] = lunch
            for unit_type in lunch.unit_types:
                by_unit_type[unit_type] = lunch
        return MappingProxyType(by_class), MappingProxyType(by_unit_type)

    def class_lunch(self, c: ConferenceClass) -> Optional[Lunch]:
        """Lunch for students of c, or None if c does not meet over lunch."""
        if not c.spans_session(LUNCH_SESSION):
            return None
        return self._lunches[0].get(c.number, PROGRAM_LUNCH)

    def general_lunch(self) -> Lunch:
        if not self.configuration.lunches:
            return TBD_LUNCH
        return self.configuration.lunches[0]

    # ============================================
    # Participant view
    # ============================================

    def participant_session_classes_and_lunch(self, p: Participant) -> Tuple[List[SessionClass], Lunch]:
        session_classes = [SessionClass(NO_CLASS, i) for i in range(NUM_SESSION)]

        for n in p.classes:
            c = self.get_class(n)
            if c is None:
                logger.warning(f"unknown class {n} for participant {p.id}")
                continue
            for i in range(max(c.start, 0), min(c.end, NUM_SESSION - 1) + 1):
                session_classes[i] = SessionClass(c, i)

        for i, n in enumerate(self._instructor_classes.get(p.id, ())[:NUM_SESSION]):
            if n <= 0:
                continue
            c = self.get_class(n)
            if c is None:
                logger.warning(f"unknown instructor class {n} for participant {p.id}")
                continue
            session_classes[i] = SessionClass(c, i, instructor=True)

        by_class, by_unit_type = self._lunches
        lunch = by_class.get(session_classes[LUNCH_SESSION].number)
        if lunch is None:
            lunch = by_unit_type.get(p.unit_type)
        if lunch is None:
            lunch = self.general_lunch()
        return session_classes, lunch

    def participant_session_classes(self, p: Participant) -> List[SessionClass]:
        return self.participant_session_classes_and_lunch(p)[0]

    def participant_lunch(self, p: Participant) -> Lunch:
        return self.participant_session_classes_and_lunch(p)[1]
