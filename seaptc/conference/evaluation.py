"""
seaptc/conference/evaluation.py
Participant evaluations of sessions and of the conference, plus staff notes.

Evaluations are merged per section: a submitted conference section or note
replaces the stored one, session entries are keyed by session index and an
entry with class number 0 removes the stored entry for that session.

Each section has a hash() over a canonical byte layout. Editing forms carry the
hash of what was displayed; a section is written only if its hash changed.
"""
import hashlib
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Rating values: 0 - not specified, 1 - minimum, ..., MAX_EVAL_RATING - maximum
MAX_EVAL_RATING = 4

SOURCE_PARTICIPANT = "participant"
SOURCE_STAFF = "staff"

# Form input name -> model field
SESSION_RATING_FIELDS: Dict[str, str] = {
    "knowledge": "knowledge_rating",
    "presentation": "presentation_rating",
    "usefulness": "usefulness_rating",
    "overall": "overall_rating",
}

CONFERENCE_RATING_FIELDS: Dict[str, str] = {
    "experience": "experience_rating",
    "promotion": "promotion_rating",
    "registration": "registration_rating",
    "checkin": "checkin_rating",
    "midway": "midway_rating",
    "lunch": "lunch_rating",
    "facilities": "facilities_rating",
    "website": "website_rating",
    "signageWayfinding": "signage_wayfinding_rating",
}


def _md5_hex(buf: bytes) -> str:
    return hashlib.md5(buf).hexdigest()


class EvaluationModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def ratings(self) -> Dict[str, int]:
        return {name: getattr(self, field) for name, field in self._rating_fields().items()}

    @classmethod
    def _rating_fields(cls) -> Dict[str, str]:
        return {}


class SessionEvaluation(EvaluationModel):
    session: int
    class_number: int = Field(default=0, alias="class")
    knowledge_rating: int = Field(default=0, alias="knowledge")
    presentation_rating: int = Field(default=0, alias="presentation")
    usefulness_rating: int = Field(default=0, alias="usefulness")
    overall_rating: int = Field(default=0, alias="overall")
    comments: str = ""
    source: str = ""
    updated: Optional[datetime] = None

    @classmethod
    def _rating_fields(cls) -> Dict[str, str]:
        return SESSION_RATING_FIELDS

    def hash(self) -> str:
        buf = bytes([
            self.session & 0xFF,
            self.class_number & 0xFF,
            (self.class_number >> 8) & 0xFF,
            self.knowledge_rating & 0xFF,
            self.presentation_rating & 0xFF,
            self.usefulness_rating & 0xFF,
            self.overall_rating & 0xFF,
        ])
        return _md5_hex(buf + self.comments.encode("utf-8"))


class ConferenceEvaluation(EvaluationModel):
    experience_rating: int = Field(default=0, alias="experience")
    promotion_rating: int = Field(default=0, alias="promotion")
    registration_rating: int = Field(default=0, alias="registration")
    checkin_rating: int = Field(default=0, alias="checkin")
    midway_rating: int = Field(default=0, alias="midway")
    lunch_rating: int = Field(default=0, alias="lunch")
    facilities_rating: int = Field(default=0, alias="facilities")
    website_rating: int = Field(default=0, alias="website")
    signage_wayfinding_rating: int = Field(default=0, alias="signageWayfinding")
    learn_topics: str = ""
    teach_topics: str = ""
    comments: str = ""
    source: str = ""
    updated: Optional[datetime] = None

    @classmethod
    def _rating_fields(cls) -> Dict[str, str]:
        return CONFERENCE_RATING_FIELDS

    def hash(self) -> str:
        buf = bytes(getattr(self, field) & 0xFF for field in CONFERENCE_RATING_FIELDS.values())
        text = "\0".join([self.learn_topics, self.teach_topics, self.comments])
        return _md5_hex(buf + text.encode("utf-8"))


class EvaluationNote(EvaluationModel):
    """Staff-only note on a participant's evaluation."""
    text: str = Field(default="", alias="note")
    no_show: bool = False

    def hash(self) -> str:
        buf = bytes([1 if self.no_show else 0])
        return _md5_hex(buf + self.text.encode("utf-8"))


class Evaluation(EvaluationModel):
    participant_id: str = Field(default="", alias="participantID")
    conference: Optional[ConferenceEvaluation] = None
    sessions: List[SessionEvaluation] = Field(default_factory=list)
    note: Optional[EvaluationNote] = None

    def set_session(self, se: SessionEvaluation) -> None:
        """
        Overwrite, remove or append the entry for se.session.

        An entry with class number 0 is never stored; it removes any existing
        entry for the session.
        """
        for i, existing in enumerate(self.sessions):
            if existing.session == se.session:
                if se.class_number != 0:
                    self.sessions[i] = se
                else:
                    del self.sessions[i]
                return
        if se.class_number != 0:
            self.sessions.append(se)

    def session(self, session: int) -> Optional[SessionEvaluation]:
        for se in self.sessions:
            if se.session == session:
                return se
        return None

    def merge(self, modified: "Evaluation") -> None:
        """Apply a partial update: replace given sections, set each given session."""
        if modified.conference is not None:
            self.conference = modified.conference
        if modified.note is not None:
            self.note = modified.note
        for se in modified.sessions:
            self.set_session(se)

    def is_empty(self) -> bool:
        return self.conference is None and self.note is None and not self.sessions
