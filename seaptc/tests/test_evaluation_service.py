"""
Evaluation form handling tests: participant access window, participant
submissions and staff edits.
"""
from datetime import datetime, timedelta

import pytest

from seaptc.conference.conference import Conference
from seaptc.conference.evaluation import (
    SOURCE_PARTICIPANT,
    SOURCE_STAFF,
    ConferenceEvaluation,
    Evaluation,
    EvaluationNote,
    SessionEvaluation,
)
from seaptc.conference.models import TIME_ZONE
from seaptc.exceptions import InvalidInputError
from seaptc.services.evaluation_service import (
    STATE_AFTER,
    STATE_BEFORE,
    STATE_EDIT,
    STATE_LOGIN_EDIT,
    availability_state,
    eval_update_string,
    participant_evaluation,
    staff_evaluation_changes,
    staff_evaluation_form,
)
from seaptc.tests.conftest import make_class, make_configuration, make_participant

CONFERENCE_DATE = datetime(2024, 3, 9, tzinfo=TIME_ZONE)
NOW = CONFERENCE_DATE + timedelta(hours=15)

SESSION_RATINGS = {"knowledge": "4", "presentation": "3", "usefulness": "2", "overall": "1"}


@pytest.fixture
def conf() -> Conference:
    return (
        Conference()
        .update_configuration(make_configuration())
        .update_classes([
            make_class(101, 0, 0, evaluation_codes=("e101",)),
            make_class(301, 2, 3, evaluation_codes=("e301a", "e301b")),
            make_class(601, 5, 5, evaluation_codes=("e601",)),
        ])
        .update_participants([
            make_participant("Jane", "Doe", id="jane", classes=(101, 601)),
            make_participant("Ian", "Instructor", id="ian"),
        ])
        .update_instructor_classes({"ian": [101]})
    )


# ============================================
# Access window
# ============================================

@pytest.mark.parametrize("offset, expected", [
    (timedelta(minutes=-1), STATE_BEFORE),
    (timedelta(0), STATE_LOGIN_EDIT),
    (timedelta(hours=23, minutes=59), STATE_LOGIN_EDIT),
    (timedelta(hours=24), STATE_EDIT),
    (timedelta(hours=47), STATE_EDIT),
    (timedelta(hours=48), STATE_AFTER),
])
def test_availability_state(offset, expected):
    assert availability_state(CONFERENCE_DATE, CONFERENCE_DATE + offset) == expected


def test_availability_state_without_date():
    assert availability_state(None, NOW) == STATE_BEFORE


def test_time_override_replaces_elapsed_time():
    assert availability_state(None, NOW, timedelta(hours=30)) == STATE_EDIT
    assert availability_state(CONFERENCE_DATE, NOW, timedelta(hours=-2)) == STATE_BEFORE


def test_eval_update_string():
    t = datetime(2024, 3, 9, 17, 5, tzinfo=TIME_ZONE)
    assert eval_update_string("staff", t) == "staff @ 3/9/2024 5:05PM"
    assert eval_update_string("", t) == ""
    assert eval_update_string("staff", None) == ""


# ============================================
# Participant submissions
# ============================================

class TestParticipantEvaluation:

    def test_session_evaluation(self, conf):
        jane = conf.participant("jane")
        modified = participant_evaluation(conf, jane, "e101", {**SESSION_RATINGS, "comments": "ok"}, NOW)

        [se] = modified.sessions
        assert se.session == 0
        assert se.class_number == 101
        assert se.ratings() == {"knowledge": 4, "presentation": 3, "usefulness": 2, "overall": 1}
        assert se.comments == "ok"
        assert se.source == SOURCE_PARTICIPANT
        assert se.updated == NOW
        assert modified.conference is None

    def test_multi_session_code_selects_session(self, conf):
        jane = conf.participant("jane")
        modified = participant_evaluation(conf, jane, "e301b", SESSION_RATINGS, NOW)
        assert modified.sessions[0].session == 3
        assert modified.sessions[0].class_number == 301

    def test_last_session_includes_conference(self, conf):
        jane = conf.participant("jane")
        form = {**SESSION_RATINGS, "experience": "4", "learnTopics": "knots", "confComments": "fun"}
        modified = participant_evaluation(conf, jane, "e601", form, NOW)

        assert modified.sessions[0].session == 5
        assert modified.conference.experience_rating == 4
        assert modified.conference.lunch_rating == 0
        assert modified.conference.learn_topics == "knots"
        assert modified.conference.comments == "fun"

    def test_conference_code(self, conf):
        modified = participant_evaluation(conf, conf.participant("jane"), "conference", {"lunch": "2"}, NOW)
        assert modified.sessions == []
        assert modified.conference.lunch_rating == 2

    def test_required_ratings(self, conf):
        with pytest.raises(InvalidInputError) as exc_info:
            participant_evaluation(conf, conf.participant("jane"), "e101", {"knowledge": "5", "overall": "x"}, NOW)
        assert exc_info.value.fields == ["knowledge", "overall", "presentation", "usefulness"]

    def test_optional_conference_rating_out_of_range(self, conf):
        with pytest.raises(InvalidInputError) as exc_info:
            participant_evaluation(conf, conf.participant("jane"), "conference", {"midway": "9"}, NOW)
        assert exc_info.value.fields == ["midway"]

    def test_instructor_gives_no_ratings(self, conf):
        modified = participant_evaluation(conf, conf.participant("ian"), "e101", {"comments": "taught"}, NOW)
        [se] = modified.sessions
        assert se.ratings() == {"knowledge": 0, "presentation": 0, "usefulness": 0, "overall": 0}
        assert se.comments == "taught"

    def test_unknown_code(self, conf):
        with pytest.raises(InvalidInputError) as exc_info:
            participant_evaluation(conf, conf.participant("jane"), "bogus", SESSION_RATINGS, NOW)
        assert exc_info.value.fields == ["evalCode"]


# ============================================
# Staff edits
# ============================================

class TestStaffEvaluation:

    @pytest.fixture
    def evaluation(self) -> Evaluation:
        return Evaluation(
            participant_id="jane",
            conference=ConferenceEvaluation(experience_rating=3, comments="fine"),
            sessions=[SessionEvaluation(session=0, class_number=101, overall_rating=4, comments="good")],
            note=EvaluationNote(text="arrived late"),
        )

    def test_form_values(self, conf, evaluation):
        form = staff_evaluation_form(conf, evaluation)

        assert form["class0"] == "101"
        assert form["overall0"] == "4"
        assert form["knowledge0"] == ""
        assert form["comments0"] == "good"
        assert form["hash0"] == evaluation.sessions[0].hash()
        assert form["class1"] == ""
        assert form["hash1"] == SessionEvaluation(session=1).hash()
        assert form["experience"] == "3"
        assert form["confComments"] == "fine"
        assert form["hashc"] == evaluation.conference.hash()
        assert form["note"] == "arrived late"
        assert form["noShow"] == ""
        assert form["hashn"] == evaluation.note.hash()

    def test_unchanged_form_has_no_changes(self, conf, evaluation):
        form = staff_evaluation_form(conf, evaluation)
        modified, changes = staff_evaluation_changes(form, NOW)
        assert changes == []
        assert modified.is_empty()

    def test_changed_sections(self, conf, evaluation):
        form = staff_evaluation_form(conf, evaluation)
        form["class2"] = "301"
        form["overall2"] = "2"
        form["noShow"] = "on"

        modified, changes = staff_evaluation_changes(form, NOW)

        assert changes == ["session 3", "staff notes"]
        [se] = modified.sessions
        assert se.session == 2
        assert se.class_number == 301
        assert se.overall_rating == 2
        assert se.source == SOURCE_STAFF
        assert se.updated == NOW
        assert modified.conference is None
        assert modified.note.no_show is True
        assert modified.note.text == "arrived late"

    def test_clearing_a_session(self, conf, evaluation):
        form = staff_evaluation_form(conf, evaluation)
        form["class0"] = ""
        form["overall0"] = ""
        form["comments0"] = ""

        modified, changes = staff_evaluation_changes(form, NOW)
        assert changes == ["session 1"]

        evaluation.merge(modified)
        assert evaluation.sessions == []

    def test_conference_change(self, conf, evaluation):
        form = staff_evaluation_form(conf, evaluation)
        form["website"] = "1"

        modified, changes = staff_evaluation_changes(form, NOW)
        assert changes == ["conference"]
        assert modified.conference.website_rating == 1
        assert modified.conference.experience_rating == 3
        assert modified.conference.source == SOURCE_STAFF

    def test_ratings_without_class_are_invalid(self, conf, evaluation):
        form = staff_evaluation_form(conf, evaluation)
        form["overall4"] = "3"
        form["experience"] = "7"

        with pytest.raises(InvalidInputError) as exc_info:
            staff_evaluation_changes(form, NOW)
        assert exc_info.value.fields == ["class4", "experience"]
