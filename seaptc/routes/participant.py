"""
seaptc/routes/participant.py
Participant pages: login, personal schedule and evaluations.

Login is allowed on the conference day; evaluations can be entered until the
end of the following day.
"""
import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from seaptc.conference.conference import Conference
from seaptc.conference.evaluation import ConferenceEvaluation, SessionEvaluation
from seaptc.conference.models import NUM_SESSION, Participant
from seaptc.conference.schedule import participant_schedule
from seaptc.config.settings import Settings
from seaptc.errors import ErrorCode, ForbiddenError, NotFoundError, UnauthorizedError
from seaptc.rate_limit import limiter
from seaptc.routes.dependencies import (
    get_conference,
    get_participant,
    get_settings,
    get_store,
    now,
    participant_state,
)
from seaptc.schemas.conference import LoginRequest, ParticipantEvaluationSubmit
from seaptc.services.conference_store import ConferenceStore
from seaptc.services.evaluation_service import (
    CONFERENCE_EVAL_CODE,
    STATE_LOGIN_EDIT,
    participant_evaluation,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/participant", tags=["Participant"])


@router.post("/login")
@limiter.limit("30/minute")
async def login(
    request: Request,  # Required by slowapi
    body: LoginRequest,
    conf: Conference = Depends(get_conference),
    settings: Settings = Depends(get_settings),
):
    if participant_state(conf, settings) != STATE_LOGIN_EDIT:
        raise ForbiddenError("Login is not open", code=ErrorCode.CLOSED)
    p = conf.participant_from_login_code(body.login_code.strip())
    if p is None:
        logger.info("Rejected login code")
        raise UnauthorizedError("Invalid login code", code=ErrorCode.LOGIN_INVALID)
    logger.info(f"Participant {p.id} logged in")
    return {
        "success": True,
        "participant_id": p.id,
        "name": p.name,
        "first_name": p.nickname_or_first_name,
    }


@router.get("/schedule")
async def schedule(
    p: Participant = Depends(get_participant),
    conf: Conference = Depends(get_conference),
):
    lunch = conf.participant_lunch(p)
    return {
        "participant_id": p.id,
        "name": p.name,
        "lunch": lunch.model_dump(by_alias=True),
        "items": [asdict(item) for item in participant_schedule(conf, p)],
    }


@router.get("/evaluation")
async def get_evaluation(
    eval_code: str = Query(..., alias="evalCode"),
    p: Participant = Depends(get_participant),
    conf: Conference = Depends(get_conference),
    store: ConferenceStore = Depends(get_store),
):
    """Current values for the evaluation form selected by eval_code."""
    evaluate_conference = eval_code == CONFERENCE_EVAL_CODE
    session_class = None
    if not evaluate_conference:
        session_class = conf.session_class_from_evaluation_code(eval_code)
        if session_class is None:
            raise NotFoundError("Evaluation code", eval_code)
        evaluate_conference = session_class.session == NUM_SESSION - 1

    evaluation = await store.get_evaluation(p.id)

    session: Optional[SessionEvaluation] = None
    is_instructor = False
    if session_class is not None:
        session = evaluation.session(session_class.session) or SessionEvaluation(session=session_class.session)
        taken = conf.participant_session_classes(p)[session_class.session]
        is_instructor = taken.number == session_class.number and taken.instructor

    conference: Optional[ConferenceEvaluation] = None
    if evaluate_conference:
        conference = evaluation.conference or ConferenceEvaluation()

    return {
        "class_number": session_class.number if session_class else 0,
        "title": session_class.cls.title if session_class else "",
        "is_instructor": is_instructor,
        "session": session.model_dump(by_alias=True, mode="json") if session else None,
        "conference": conference.model_dump(by_alias=True, mode="json") if conference else None,
    }


@router.post("/evaluation")
async def submit_evaluation(
    body: ParticipantEvaluationSubmit,
    p: Participant = Depends(get_participant),
    conf: Conference = Depends(get_conference),
    store: ConferenceStore = Depends(get_store),
):
    modified = participant_evaluation(conf, p, body.eval_code, body.form, now())
    await store.set_evaluation(p.id, modified)
    logger.info(f"Evaluation recorded for participant {p.id}")
    return {"success": True, "message": "Evaluation recorded."}
