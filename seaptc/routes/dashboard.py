"""
seaptc/routes/dashboard.py
Staff dashboard: conference data management, forms and evaluation editing.

Every route requires a staff ID; configuration changes, instructor class
changes and blob deletion require an admin ID.
"""
import logging
from collections import Counter, defaultdict
from typing import Dict, List

from fastapi import APIRouter, Body, Depends, Query, Request

from seaptc.conference.conference import Conference
from seaptc.conference.models import ConferenceClass, Participant
from seaptc.conference.sorting import filter_participants, sort_classes, sort_participants
from seaptc.errors import BadRequestError, ErrorCode, NotFoundError
from seaptc.routes.dependencies import get_conference, get_store, now, require_admin, require_staff
from seaptc.schemas.conference import FormsPrinted, InstructorClassesUpdate, StaffEvaluationSubmit
from seaptc.services.blob_codecs import decode_configuration
from seaptc.services.conference_store import ConferenceStore
from seaptc.services.evaluation_service import staff_evaluation_changes, staff_evaluation_form

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", tags=["Dashboard"], dependencies=[Depends(require_staff)])

# Districts are only broken down for the home council
HOME_COUNCIL = "Chief Seattle"


def _participant_entry(conf: Conference, p: Participant) -> Dict:
    return {
        "id": p.id,
        "name": p.name,
        "type": p.type,
        "unit": p.unit,
        "council": p.council,
        "district": p.district,
        "classes": list(p.classes),
        "instructor_classes": list(conf.participant_instructor_classes(p)),
        "print_signature": conf.print_signature(p),
    }


def _get_participant(conf: Conference, participant_id: str) -> Participant:
    p = conf.participant(participant_id)
    if p is None:
        raise NotFoundError("Participant", participant_id, code=ErrorCode.PARTICIPANT_NOT_FOUND)
    return p


# ============================================
# Summary
# ============================================

@router.get("")
async def summary(conf: Conference = Depends(get_conference), store: ConferenceStore = Depends(get_store)):
    councils: Counter = Counter()
    types: Counter = Counter()
    districts: Dict[str, Counter] = defaultdict(Counter)
    for p in conf.participants:
        councils[p.council] += 1
        types[p.type] += 1
        if p.council == HOME_COUNCIL:
            districts[p.district][p.unit] += 1
            districts[p.district][""] += 1

    return {
        "total": sum(types.values()),
        "classes": len(conf.classes),
        "councils": dict(councils),
        "districts": {d: dict(units) for d, units in districts.items()},
        "types": dict(types),
        "versions": store.versions,
        "max_version": store.max_version,
    }


@router.get("/lunchCount")
async def lunch_count(conf: Conference = Depends(get_conference)):
    lunches: Counter = Counter()
    options: Counter = Counter()
    counts: Counter = Counter()
    for p in conf.participants:
        lunch = conf.participant_lunch(p)
        lunches[lunch.name] += 1
        options[p.lunch_option] += 1
        counts[f"{lunch.name}:{p.lunch_option}"] += 1
    return {
        "lunch": dict(lunches),
        "option": dict(options),
        "count": dict(counts),
        "total": sum(lunches.values()),
    }


@router.post("/reload")
async def reload(store: ConferenceStore = Depends(get_store)):
    conf, _ = await store.get_conference(no_cache=True)
    return {"success": True, "max_version": store.max_version, "classes": len(conf.classes),
            "participants": len(conf.participants)}


# ============================================
# Configuration
# ============================================

@router.get("/configuration")
async def get_configuration(conf: Conference = Depends(get_conference)):
    return conf.configuration.model_dump(by_alias=True)


@router.put("/configuration", dependencies=[Depends(require_admin)])
async def put_configuration(
    request: Request,
    strict: bool = Query(default=True),
    store: ConferenceStore = Depends(get_store),
):
    """Replace the configuration with the JSON document in the request body."""
    config = decode_configuration(await request.body(), strict=strict)
    config.validate_settings()
    version = await store.put_configuration(config)
    return {"success": True, "message": "Configuration updated.", "version": version}


# ============================================
# Classes
# ============================================

@router.put("/classes")
async def put_classes(
    classes: List[ConferenceClass] = Body(...),
    store: ConferenceStore = Depends(get_store),
):
    version = await store.put_classes(classes)
    return {"success": True, "count": len(classes), "version": version}


@router.get("/classes")
async def list_classes(sort: str = Query(default=""), conf: Conference = Depends(get_conference)):
    classes = conf.classes
    sort_classes(classes, sort)
    result = []
    for c in classes:
        lunch = conf.class_lunch(c)
        result.append({
            "number": c.number,
            "title": c.short_title,
            "length": c.length,
            "location": c.location,
            "responsibility": c.responsibility,
            "capacity": c.capacity,
            "registered": len(conf.class_participants(c)),
            "lunch": lunch.name if lunch else None,
        })
    return result


@router.get("/classes/{number}")
async def class_detail(number: int, conf: Conference = Depends(get_conference)):
    c = conf.get_class(number)
    if c is None:
        raise NotFoundError("Class", number, code=ErrorCode.CLASS_NOT_FOUND)
    participants = conf.class_participants(c)
    sort_participants(participants, "")
    instructors = [
        p.id for p in conf.participants
        if number in conf.participant_instructor_classes(p)
    ]
    return {
        "class": c.model_dump(by_alias=True),
        "participants": [_participant_entry(conf, p) for p in participants],
        "instructor_ids": instructors,
    }


# ============================================
# Participants
# ============================================

@router.put("/participants")
async def put_participants(
    participants: List[Participant] = Body(...),
    store: ConferenceStore = Depends(get_store),
):
    stored = await store.put_participants(participants)
    return {"success": True, "count": len(stored)}


@router.get("/participants")
async def list_participants(sort: str = Query(default=""), conf: Conference = Depends(get_conference)):
    participants = conf.participants
    sort_participants(participants, sort)
    return [_participant_entry(conf, p) for p in participants]


@router.get("/participants/{participant_id}")
async def participant_detail(participant_id: str, conf: Conference = Depends(get_conference)):
    p = _get_participant(conf, participant_id)
    session_classes, lunch = conf.participant_session_classes_and_lunch(p)
    return {
        **_participant_entry(conf, p),
        "participant": p.model_dump(by_alias=True, mode="json"),
        "login_code": p.login_code,
        "sessions": [
            {
                "session": sc.session,
                "number": sc.number,
                "number_dot_part": sc.number_dot_part,
                "title": sc.cls.title,
                "instructor": sc.instructor,
            }
            for sc in session_classes
        ],
        "lunch": lunch.model_dump(by_alias=True),
    }


@router.post("/participants/{participant_id}/instructorClasses", dependencies=[Depends(require_admin)])
async def set_instructor_classes(
    participant_id: str,
    body: InstructorClassesUpdate,
    conf: Conference = Depends(get_conference),
    store: ConferenceStore = Depends(get_store),
):
    _get_participant(conf, participant_id)
    unknown = [n for n in body.modifications.values() if n != 0 and conf.get_class(n) is None]
    if unknown:
        raise BadRequestError("Unknown class numbers", code=ErrorCode.CLASS_NOT_FOUND,
                              details={"classes": unknown})
    await store.modify_instructor_classes(participant_id, body.modifications)
    return {"success": True, "message": "Instructor classes updated"}


# ============================================
# Forms
# ============================================

@router.get("/forms")
async def forms(
    sort: str = Query(default=""),
    changed: bool = Query(default=True),
    limit: int = Query(default=0, ge=0),
    conf: Conference = Depends(get_conference),
    store: ConferenceStore = Depends(get_store),
):
    """Participants whose forms need printing, with their current signatures."""
    participants = conf.participants
    sort_participants(participants, sort)

    if changed:
        printed = await store.get_print_signatures()
        participants = filter_participants(
            participants,
            lambda p: conf.print_signature(p) != printed.get(p.id),
        )

    if limit and len(participants) > limit:
        participants = participants[:limit]

    return [_participant_entry(conf, p) for p in participants]


@router.post("/forms")
async def forms_printed(body: FormsPrinted, store: ConferenceStore = Depends(get_store)):
    await store.set_print_signatures(body.signatures)
    return {"success": True, "count": len(body.signatures)}


# ============================================
# Evaluations
# ============================================

@router.get("/evalCode")
async def eval_code(login_code: str = Query(..., alias="loginCode"), conf: Conference = Depends(get_conference)):
    p = conf.participant_from_login_code(login_code)
    if p is None:
        raise NotFoundError("Login code", login_code, code=ErrorCode.PARTICIPANT_NOT_FOUND)
    return {"participant_id": p.id, "name": p.name}


@router.get("/evaluations/{participant_id}")
async def get_evaluation(
    participant_id: str,
    conf: Conference = Depends(get_conference),
    store: ConferenceStore = Depends(get_store),
):
    p = _get_participant(conf, participant_id)
    evaluation = await store.get_evaluation(p.id)
    return {
        "participant_id": p.id,
        "name": p.name,
        "form": staff_evaluation_form(conf, evaluation),
    }


@router.post("/evaluations/{participant_id}")
async def post_evaluation(
    participant_id: str,
    body: StaffEvaluationSubmit,
    staff_id: str = Depends(require_staff),
    conf: Conference = Depends(get_conference),
    store: ConferenceStore = Depends(get_store),
):
    p = _get_participant(conf, participant_id)
    modified, changes = staff_evaluation_changes(body.form, now())
    if not changes:
        return {"success": True, "message": f"Updated evaluation for {p.name}: no changes", "changes": []}

    await store.set_evaluation(p.id, modified)
    logger.info(f"Staff {staff_id} updated evaluation for {p.id}: {'; '.join(changes)}")
    return {
        "success": True,
        "message": f"Updated evaluation for {p.name}: {'; '.join(changes)}",
        "changes": changes,
    }


# ============================================
# Admin
# ============================================

@router.delete("/blobs/{name}", dependencies=[Depends(require_admin)])
async def delete_blob(name: str, store: ConferenceStore = Depends(get_store)):
    await store.delete_blob(name)
    return {"success": True, "message": f"Deleted blob {name}"}
