"""
seaptc/routes/catalog.py
Public class catalog.
"""
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query

from seaptc.conference.catalog import create_catalog_grid
from seaptc.conference.conference import Conference
from seaptc.conference.models import NUM_PROGRAMS, PROGRAM_DESCRIPTIONS
from seaptc.conference.sorting import sort_classes
from seaptc.errors import BadRequestError
from seaptc.routes.dependencies import get_conference

router = APIRouter(prefix="/catalog", tags=["Catalog"])

_PROGRAM_INDEX = {pd.code: i for i, pd in enumerate(PROGRAM_DESCRIPTIONS)}


def _class_entry(c):
    return {
        **c.model_dump(by_alias=True, include={
            "number", "start", "end", "new", "title", "title_note", "description",
            "capacity", "location", "instructor_names",
        }),
        "length": c.length,
        "programs": [pd.model_dump() for pd in c.program_descriptions()],
    }


@router.get("/classes")
async def list_classes(
    sort: str = Query(default=""),
    program: Optional[str] = Query(default=None),
    conf: Conference = Depends(get_conference),
):
    """Classes sorted by key, optionally only those offered to one program."""
    classes = conf.classes
    if program and program != "all":
        i = _PROGRAM_INDEX.get(program)
        if i is None or i >= NUM_PROGRAMS:
            raise BadRequestError(f"Unknown program {program!r}")
        classes = [c for c in classes if c.programs & (1 << i)]
    sort_classes(classes, sort)
    return {
        "status_message": conf.configuration.catalog_status_message,
        "classes": [_class_entry(c) for c in classes],
    }


@router.get("/grid")
async def catalog_grid(conf: Conference = Depends(get_conference)):
    classes = conf.classes
    return {
        "status_message": conf.configuration.catalog_status_message,
        "morning": [[asdict(cell) for cell in row] for row in create_catalog_grid(classes, True)],
        "afternoon": [[asdict(cell) for cell in row] for row in create_catalog_grid(classes, False)],
    }
