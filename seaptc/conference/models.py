"""
seaptc/conference/models.py
Typed records for the conference domain: configuration, lunches, classes, participants.

All records are frozen pydantic models. Collections are tuples so that a
published Conference value can share them without copying.
JSON keys are camelCase to stay compatible with stored configuration blobs.
"""
from datetime import datetime
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from seaptc.exceptions import ConfigurationInvalidError

NUM_SESSION = 6
LUNCH_SESSION = 2
NO_CLASS_CLASS_NUMBER = 999

# Conference date and user-visible timestamps are always in this zone
TIME_ZONE = ZoneInfo("America/Los_Angeles")


class DomainModel(BaseModel):
    """Base for immutable domain records serialized with camelCase keys."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# ============================================
# Configuration
# ============================================

class Lunch(DomainModel):
    """
    A lunch pickup location.

    If a participant takes one of `classes`, lunch is picked up here; else if
    the participant's unit type is in `unit_types`, lunch is picked up here;
    else at the general (first) lunch.
    """
    name: str = ""
    short_name: str = ""
    location: str = ""
    # 1: first seating, 2: second seating
    seating: int = 0
    classes: Tuple[int, ...] = ()
    unit_types: Tuple[str, ...] = ()


TBD_LUNCH = Lunch(seating=2, name="TBD", short_name="TBD", location="TBD")
PROGRAM_LUNCH = Lunch(
    seating=2,
    name="Lunch location depends on participant unit type",
    short_name="*",
)


class LoginClient(DomainModel):
    id: str = ""
    secret: str = ""


class SuggestedSchedule(DomainModel):
    name: str = ""
    classes: Tuple[int, ...] = ()


class Configuration(DomainModel):
    """Conference configuration, stored as the `configuration` blob."""
    year: int = 0
    month: int = Field(default=0, ge=0, le=12)
    day: int = Field(default=0, ge=0, le=31)

    login_client: LoginClient = Field(default_factory=LoginClient)

    classes_sheet_url: str = Field(default="", alias="classesSheetURL")

    # First lunch is the general default
    lunches: Tuple[Lunch, ...] = (TBD_LUNCH,)

    registration_url: str = Field(default="", alias="registrationURL")

    # Announces when registration opens or that the catalog is for the previous event
    catalog_status_message: str = ""

    staff_ids: Tuple[str, ...] = Field(default=(), alias="staffIDs")
    admin_ids: Tuple[str, ...] = Field(default=(), alias="adminIDs")

    # HMAC key for signed cookies
    cookie_key: str = ""

    doubleknot_export_page_url: str = Field(default="", alias="doubleknotExportPageURL")

    suggested_schedules: Tuple[SuggestedSchedule, ...] = ()

    def validate_settings(self) -> None:
        """Raise ConfigurationInvalidError if the configuration cannot be served."""
        if not self.cookie_key:
            raise ConfigurationInvalidError("config: CookieKey not set")
        if self.year or self.month or self.day:
            try:
                self.conference_date()
            except ValueError as e:
                raise ConfigurationInvalidError(f"config: invalid conference date: {e}")

    def conference_date(self) -> Optional[datetime]:
        """
        Midnight of the conference day in America/Los_Angeles.

        Returns None when the date is not configured. Raises ValueError for an
        impossible date.
        """
        if not (self.year and self.month and self.day):
            return None
        return datetime(self.year, self.month, self.day, tzinfo=TIME_ZONE)


# ============================================
# Classes
# ============================================

class ProgramDescription(BaseModel):
    code: str
    name: str

    @property
    def title_name(self) -> str:
        return self.name.title()


CUB_SCOUT_PROGRAM = 0
SCOUTS_BSA_PROGRAM = 1
VENTURING_PROGRAM = 2
SEA_SCOUT_PROGRAM = 3
COMMISSIONER_PROGRAM = 4
YOUTH_PROGRAM = 5
NUM_PROGRAMS = 6
ALL_PROGRAMS_MASK = (1 << NUM_PROGRAMS) - 1

# Order must match the program constants above; "all" must be last.
PROGRAM_DESCRIPTIONS: Tuple[ProgramDescription, ...] = (
    ProgramDescription(code="cub", name="Cub Pack adults"),
    ProgramDescription(code="bsa", name="Scout Troop adults"),
    ProgramDescription(code="ven", name="Venturing Crew adults"),
    ProgramDescription(code="sea", name="Sea Scout adults"),
    ProgramDescription(code="com", name="Commissioners"),
    ProgramDescription(code="you", name="youth"),
    ProgramDescription(code="all", name="everyone"),
)


def program_descriptions_for_mask(mask: int, reverse: bool = False) -> List[ProgramDescription]:
    if mask == ALL_PROGRAMS_MASK:
        return list(PROGRAM_DESCRIPTIONS[NUM_PROGRAMS:])
    result = [PROGRAM_DESCRIPTIONS[i] for i in range(NUM_PROGRAMS) if mask & (1 << i)]
    if reverse:
        result.reverse()
    return result


def is_valid_class_number(number: int) -> bool:
    return 100 <= number < (NUM_SESSION + 1) * 100


class ConferenceClass(DomainModel):
    """A class offered at the conference. Loaded from the planning spreadsheet."""
    number: int
    start: int = 0
    end: int = 0
    responsibility: str = ""
    new: str = ""
    title: str = ""
    title_note: str = ""
    description: str = ""
    programs: int = 0
    capacity: int = 0
    location: str = ""
    access_token: str = ""
    instructor_names: Tuple[str, ...] = ()
    instructor_emails: Tuple[str, ...] = ()
    evaluation_codes: Tuple[str, ...] = ()

    @property
    def length(self) -> int:
        """Length of the class in sessions."""
        return self.end - self.start + 1

    @property
    def short_title(self) -> str:
        i = self.title.find(" - ")
        if i > 0:
            return self.title[:i]
        if self.title.endswith(")"):
            i = self.title.find(" (")
            if i > 0:
                return self.title[:i]
        return self.title

    def program_descriptions(self, reverse: bool = False) -> List[ProgramDescription]:
        return program_descriptions_for_mask(self.programs, reverse)

    def spans_session(self, session: int) -> bool:
        return self.start <= session <= self.end


# Placeholder used for sessions where a participant has no class
NO_CLASS = ConferenceClass(number=0, title="No Class", start=0, end=0)


# ============================================
# Participants
# ============================================

class Participant(DomainModel):
    """A registered participant, imported from the registration system."""
    id: str = ""
    registration_number: str = ""
    registered_by_name: str = ""
    registered_by_email: str = ""
    registered_by_phone: str = ""
    registration_time: Optional[datetime] = None
    first_name: str = ""
    last_name: str = ""
    nickname: str = ""
    suffix: str = ""
    name_extra: str = ""
    staff: bool = False
    youth: bool = False
    phone: str = ""
    email: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    staff_role: str = ""
    council: str = ""
    district: str = ""
    unit_type: str = ""
    unit_number: str = ""
    lunch_option: str = ""
    marketing: str = ""
    scouting_years: str = ""
    show_qr_code: bool = Field(default=False, alias="showQRCode")
    bsa_number: str = Field(default="", alias="bsaNumber")
    classes: Tuple[int, ...] = ()
    staff_description: str = ""

    login_code: str = ""

    @property
    def type(self) -> str:
        """Short description of the registration type."""
        if self.staff:
            return "Staff"
        if self.youth:
            return "Youth"
        return "Adult"

    @property
    def unit(self) -> str:
        if not self.unit_number:
            return self.unit_type
        return f"{self.unit_type} {self.unit_number}"

    @property
    def name(self) -> str:
        if self.suffix:
            return f"{self.first_name} {self.last_name} {self.suffix}"
        return f"{self.first_name} {self.last_name}"

    @property
    def nickname_or_first_name(self) -> str:
        return self.nickname or self.first_name

    @property
    def firsts(self) -> str:
        """Possessive form of the nickname or first name."""
        n = self.nickname_or_first_name
        if not n:
            return ""
        if n.endswith("s"):
            return n + "'"
        return n + "'s"

    @property
    def emails(self) -> List[str]:
        if not self.youth or self.email == self.registered_by_email:
            return [self.email]
        return [self.registered_by_email, self.email]

    @property
    def sort_name(self) -> str:
        return f"{self.last_name}\n{self.first_name}\n{self.suffix}".lower()
