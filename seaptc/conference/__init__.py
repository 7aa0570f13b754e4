"""
seaptc/conference
Conference domain: configuration, classes, participants, evaluations and the
immutable Conference value.
"""
from .models import (
    LUNCH_SESSION,
    NUM_SESSION,
    TIME_ZONE,
    ConferenceClass,
    Configuration,
    Lunch,
    Participant,
)
from .conference import Conference
from .evaluation import Evaluation, SessionEvaluation, ConferenceEvaluation, EvaluationNote
from .identity import participant_id
