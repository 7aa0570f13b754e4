"""
seaptc/routes/dependencies.py
Request dependencies: the conference store and snapshot, staff and
participant identification.

Staff are identified by the X-Staff-ID header set by the fronting login proxy.
Participants send their login code in the X-Login-Code header.
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import Depends, Header, Request

from seaptc.conference.conference import Conference
from seaptc.conference.models import TIME_ZONE, Participant
from seaptc.config.settings import Settings
from seaptc.errors import ErrorCode, ForbiddenError, UnauthorizedError
from seaptc.services.conference_store import ConferenceStore
from seaptc.services.evaluation_service import STATE_EDIT, STATE_LOGIN_EDIT, availability_state

logger = logging.getLogger(__name__)


def get_store(request: Request) -> ConferenceStore:
    return request.app.state.store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_conference(store: ConferenceStore = Depends(get_store)) -> Conference:
    conf, _ = await store.get_conference()
    return conf


def now() -> datetime:
    return datetime.now(TIME_ZONE)


def participant_state(conf: Conference, settings: Settings) -> str:
    return availability_state(conf.date, now(), settings.time_override)


async def require_staff(
    x_staff_id: Optional[str] = Header(default=None),
    conf: Conference = Depends(get_conference),
) -> str:
    if not x_staff_id:
        raise UnauthorizedError("Staff login required")
    if not conf.is_staff(x_staff_id):
        logger.warning(f"Rejected non-staff user {x_staff_id}")
        raise ForbiddenError("Staff access required", code=ErrorCode.STAFF_REQUIRED)
    return x_staff_id


async def require_admin(
    staff_id: str = Depends(require_staff),
    conf: Conference = Depends(get_conference),
) -> str:
    if not conf.is_admin(staff_id):
        raise ForbiddenError("Admin access required", code=ErrorCode.ADMIN_REQUIRED)
    return staff_id


async def get_participant(
    x_login_code: Optional[str] = Header(default=None),
    conf: Conference = Depends(get_conference),
    settings: Settings = Depends(get_settings),
) -> Participant:
    """The logged-in participant, while data entry is open."""
    if participant_state(conf, settings) not in (STATE_LOGIN_EDIT, STATE_EDIT):
        raise ForbiddenError("Participant pages are not open", code=ErrorCode.CLOSED)
    if not x_login_code:
        raise UnauthorizedError("Login code required")
    p = conf.participant_from_login_code(x_login_code)
    if p is None:
        raise UnauthorizedError("Invalid login code", code=ErrorCode.LOGIN_INVALID)
    return p
