"""
seaptc/services/evaluation_service.py
Evaluation form handling for participants and staff.

Participants submit one session (selected by evaluation code) and, in the last
session, the conference evaluation. Staff edit every section of a
participant's evaluation at once; each section carries the hash of the values
that were displayed and only sections whose hash changed are written.
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Mapping, Optional, Set, Tuple

from seaptc.conference.conference import Conference
from seaptc.conference.evaluation import (
    MAX_EVAL_RATING,
    SOURCE_PARTICIPANT,
    SOURCE_STAFF,
    ConferenceEvaluation,
    Evaluation,
    EvaluationNote,
    SessionEvaluation,
)
from seaptc.conference.models import NUM_SESSION, TIME_ZONE, Participant
from seaptc.conference.session_class import SessionClass
from seaptc.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

CONFERENCE_EVAL_CODE = "conference"

# Participant access relative to the conference date
STATE_BEFORE = "before"          # no login
STATE_LOGIN_EDIT = "loginEdit"   # login and data entry
STATE_EDIT = "edit"              # data entry, no new logins
STATE_AFTER = "after"            # closed


def availability_state(
    conference_date: Optional[datetime],
    now: datetime,
    time_override: Optional[timedelta] = None,
) -> str:
    """Where `now` falls relative to the conference day."""
    if time_override is not None:
        since = time_override
    elif conference_date is None:
        return STATE_BEFORE
    else:
        since = now - conference_date

    if since < timedelta(0):
        return STATE_BEFORE
    if since < timedelta(hours=24):
        return STATE_LOGIN_EDIT
    if since < timedelta(hours=48):
        return STATE_EDIT
    return STATE_AFTER


def eval_update_string(source: str, t: Optional[datetime]) -> str:
    if not source or t is None:
        return ""
    t = t.astimezone(TIME_ZONE)
    return f"{source} @ {t.month}/{t.day}/{t.year} {t.strftime('%I:%M%p').lstrip('0')}"


def _to_int(value) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return 0


def _get_rating(form: Mapping[str, str], name: str, required: bool, invalid: Set[str]) -> int:
    """
    Parse a rating input. Missing or empty is 0.

    A required rating outside 1..MAX_EVAL_RATING, or an optional one that is
    set and out of range, marks the input invalid.
    """
    raw = form.get(name)
    if raw is None or str(raw).strip() == "":
        n = 0
    else:
        n = _to_int(raw)
    if required or n != 0:
        if n < 1 or n > MAX_EVAL_RATING:
            invalid.add(name)
    return n


# ============================================
# Participant
# ============================================

def participant_evaluation(
    conf: Conference,
    participant: Participant,
    eval_code: str,
    form: Mapping[str, str],
    now: datetime,
) -> Evaluation:
    """
    Build the modification for a participant's evaluation submission.

    Raises InvalidInputError without building anything when a code or rating
    is invalid.
    """
    evaluate_conference = eval_code == CONFERENCE_EVAL_CODE
    session_class: Optional[SessionClass] = None
    is_instructor = False

    if not evaluate_conference:
        session_class = conf.session_class_from_evaluation_code(eval_code)
        if session_class is None:
            raise InvalidInputError(["evalCode"], "Unknown evaluation code")
        evaluate_conference = session_class.session == NUM_SESSION - 1
        taken = conf.participant_session_classes(participant)[session_class.session]
        is_instructor = taken.number == session_class.number and taken.instructor

    invalid: Set[str] = set()
    modified = Evaluation(participant_id=participant.id)

    if session_class is not None:
        ratings = {}
        if not is_instructor:
            for name, field in SessionEvaluation._rating_fields().items():
                ratings[field] = _get_rating(form, name, True, invalid)
        modified.sessions.append(SessionEvaluation(
            session=session_class.session,
            class_number=session_class.number,
            comments=form.get("comments", ""),
            source=SOURCE_PARTICIPANT,
            updated=now,
            **ratings,
        ))

    if evaluate_conference:
        ratings = {}
        for name, field in ConferenceEvaluation._rating_fields().items():
            ratings[field] = _get_rating(form, name, False, invalid)
        modified.conference = ConferenceEvaluation(
            learn_topics=form.get("learnTopics", ""),
            teach_topics=form.get("teachTopics", ""),
            comments=form.get("confComments", ""),
            source=SOURCE_PARTICIPANT,
            updated=now,
            **ratings,
        )

    if invalid:
        raise InvalidInputError(invalid)
    return modified


# ============================================
# Staff
# ============================================

def staff_evaluation_form(conf: Conference, evaluation: Evaluation) -> Dict[str, str]:
    """
    Form values for editing an evaluation, including the per-section hashes
    that must be sent back with the edit.
    """
    form: Dict[str, str] = {}

    def set_rating(key: str, rating: int) -> None:
        form[key] = str(rating) if rating else ""

    ce = evaluation.conference or ConferenceEvaluation()
    form["hashc"] = ce.hash()
    form["updatec"] = eval_update_string(ce.source, ce.updated)
    for name, rating in ce.ratings().items():
        set_rating(name, rating)
    form["learnTopics"] = ce.learn_topics
    form["teachTopics"] = ce.teach_topics
    form["confComments"] = ce.comments

    note = evaluation.note or EvaluationNote()
    form["hashn"] = note.hash()
    form["note"] = note.text
    form["noShow"] = "on" if note.no_show else ""

    by_session: List[Optional[SessionEvaluation]] = [None] * NUM_SESSION
    for se in evaluation.sessions:
        if not 0 <= se.session < NUM_SESSION:
            logger.error(f"bad class eval, participant={evaluation.participant_id}, session={se.session}")
            continue
        by_session[se.session] = se

    for i, se in enumerate(by_session):
        if se is None:
            se = SessionEvaluation(session=i)
        form[f"class{i}"] = str(se.class_number) if se.class_number else ""
        form[f"comments{i}"] = se.comments
        form[f"hash{i}"] = se.hash()
        form[f"update{i}"] = eval_update_string(se.source, se.updated)
        for name, rating in se.ratings().items():
            set_rating(f"{name}{i}", rating)
    return form


def staff_evaluation_changes(form: Mapping[str, str], now: datetime) -> Tuple[Evaluation, List[str]]:
    """
    Compare a submitted staff edit with its hashes.

    Returns the modification holding only the changed sections and a
    description of each change. Raises InvalidInputError when any input is
    invalid, in which case nothing may be written.
    """
    invalid: Set[str] = set()
    modified = Evaluation()
    changes: List[str] = []

    for i in range(NUM_SESSION):
        ratings = {}
        has_rating = False
        for name, field in SessionEvaluation._rating_fields().items():
            ratings[field] = _get_rating(form, f"{name}{i}", False, invalid)
            if ratings[field]:
                has_rating = True

        se = SessionEvaluation(
            session=i,
            class_number=_to_int(form.get(f"class{i}", "")),
            comments=form.get(f"comments{i}", ""),
            **ratings,
        )
        if se.class_number == 0 and (has_rating or se.comments):
            invalid.add(f"class{i}")

        if se.hash() != form.get(f"hash{i}"):
            se.source = SOURCE_STAFF
            se.updated = now
            modified.sessions.append(se)
            changes.append(f"session {i + 1}")

    ratings = {}
    for name, field in ConferenceEvaluation._rating_fields().items():
        ratings[field] = _get_rating(form, name, False, invalid)
    ce = ConferenceEvaluation(
        learn_topics=form.get("learnTopics", ""),
        teach_topics=form.get("teachTopics", ""),
        comments=form.get("confComments", ""),
        **ratings,
    )
    if ce.hash() != form.get("hashc"):
        ce.source = SOURCE_STAFF
        ce.updated = now
        modified.conference = ce
        changes.append("conference")

    note = EvaluationNote(text=form.get("note", ""), no_show=bool(form.get("noShow")))
    if note.hash() != form.get("hashn"):
        modified.note = note
        changes.append("staff notes")

    if invalid:
        raise InvalidInputError(invalid)
    return modified, changes
