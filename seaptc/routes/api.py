"""
seaptc/routes/api.py
JSON API used by the registration site to describe class session events.
"""
import logging
from datetime import timedelta
from typing import List

from fastapi import APIRouter, Depends

from seaptc.conference.conference import Conference
from seaptc.conference.models import ALL_PROGRAMS_MASK, NO_CLASS_CLASS_NUMBER, NUM_SESSION, ConferenceClass
from seaptc.conference.schedule import SESSION_TIMES
from seaptc.errors import ErrorCode, NotFoundError
from seaptc.routes.dependencies import get_conference
from seaptc.schemas.conference import SessionEvent

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["API"])


def _event_time(conf: Conference, offset: timedelta) -> List[int]:
    minutes = int(offset.total_seconds()) // 60
    if conf.date is None:
        year, month, day = 0, 0, 0
    else:
        year, month, day = conf.date.year, conf.date.month, conf.date.day
    return [year, month, day, minutes // 60, minutes % 60]


def session_event(conf: Conference, c: ConferenceClass) -> SessionEvent:
    programs = None
    if c.programs != ALL_PROGRAMS_MASK:
        programs = [pd.name for pd in c.program_descriptions()]
    return SessionEvent(
        number=c.number,
        title=c.title,
        title_new=c.new,
        title_note=c.title_note,
        description=c.description,
        start_session=c.start + 1,
        end_session=c.end + 1,
        start_time=_event_time(conf, SESSION_TIMES[c.start].start),
        end_time=_event_time(conf, SESSION_TIMES[c.end].end),
        capacity=c.capacity,
        programs=programs,
    )


def no_class_event(conf: Conference) -> SessionEvent:
    return SessionEvent(
        number=NO_CLASS_CLASS_NUMBER,
        title="No classes (select if not taking classes at the conference)",
        description="Select this activity to indicate that you are not taking classes at the conference.",
        start_time=_event_time(conf, SESSION_TIMES[0].start),
        end_time=_event_time(conf, SESSION_TIMES[NUM_SESSION - 1].end),
    )


@router.get("/sessionEvents/{number}")
async def get_session_event(number: str, conf: Conference = Depends(get_conference)):
    try:
        n = int(number)
    except ValueError:
        raise NotFoundError("Class", number, code=ErrorCode.CLASS_NOT_FOUND)

    if n == NO_CLASS_CLASS_NUMBER:
        event = no_class_event(conf)
    else:
        c = conf.get_class(n)
        if c is None or not (0 <= c.start <= c.end < NUM_SESSION):
            raise NotFoundError("Class", number, code=ErrorCode.CLASS_NOT_FOUND)
        event = session_event(conf, c)

    return {"result": event.model_dump(by_alias=True)}
