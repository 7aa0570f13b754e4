"""
Conference API Schemas (Pydantic)
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SessionEvent(BaseModel):
    """Class session event, consumed by the registration site."""
    model_config = ConfigDict(populate_by_name=True)

    number: int
    title: str = ""
    title_new: str = Field(default="", alias="titleNew")
    title_note: str = Field(default="", alias="titleNote")
    description: str = ""
    start_session: int = Field(default=0, alias="startSession")
    end_session: int = Field(default=0, alias="endSession")
    start_time: List[int] = Field(default_factory=list, alias="startTime")   # year, month, day, hour, minute
    end_time: List[int] = Field(default_factory=list, alias="endTime")
    capacity: int = 0   # 0: no limit, -1: no space
    programs: Optional[List[str]] = None


class LoginRequest(BaseModel):
    """Request schema for participant login."""
    login_code: str = Field(..., min_length=1, max_length=16)


class ParticipantEvaluationSubmit(BaseModel):
    """Participant evaluation of one session, or of the conference."""
    eval_code: str = Field(..., min_length=1, max_length=32)
    form: Dict[str, str] = Field(default_factory=dict)


class StaffEvaluationSubmit(BaseModel):
    """Staff edit of all evaluation sections, with the hashes from the edit form."""
    form: Dict[str, str] = Field(default_factory=dict)


class InstructorClassesUpdate(BaseModel):
    """Session index -> class number. Class number 0 clears the slot."""
    modifications: Dict[int, int]


class FormsPrinted(BaseModel):
    """Participant ID -> signature of the printed form. An empty signature clears the entry."""
    signatures: Dict[str, str]
