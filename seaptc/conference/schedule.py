"""
seaptc/conference/schedule.py
Conference day timetable and per-participant schedules.

The lunch session is split: first-seating participants eat before the class
meets, second-seating participants after.
"""
from dataclasses import dataclass
from datetime import timedelta
from typing import List

from seaptc.conference.conference import Conference
from seaptc.conference.models import LUNCH_SESSION, Participant
from seaptc.conference.session_class import SessionClass


def format_time(hour: int, minute: int) -> str:
    ampm = "AM"
    if hour >= 12:
        ampm = "PM"
        if hour > 12:
            hour -= 12
    return f"{hour}:{minute:02d} {ampm}"


@dataclass(frozen=True)
class ScheduleTime:
    start: timedelta  # from start of day
    end: timedelta
    start_text: str
    end_text: str

    @classmethod
    def of(cls, start_hour: int, start_minute: int, end_hour: int, end_minute: int) -> "ScheduleTime":
        return cls(
            start=timedelta(hours=start_hour, minutes=start_minute),
            end=timedelta(hours=end_hour, minutes=end_minute),
            start_text=format_time(start_hour, start_minute),
            end_text=format_time(end_hour, end_minute),
        )


@dataclass(frozen=True)
class ScheduleItem:
    time: ScheduleTime
    description: str
    location: str = ""
    kind: str = ""
    instructor: bool = False
    class_number: int = 0


SESSION_TIMES = (
    ScheduleTime.of(9, 0, 10, 0),
    ScheduleTime.of(10, 10, 11, 10),
    ScheduleTime.of(11, 20, 13, 15),
    ScheduleTime.of(13, 25, 14, 25),
    ScheduleTime.of(14, 35, 15, 35),
    ScheduleTime.of(15, 45, 16, 45),
)

SEATING1_LUNCH_TIME = ScheduleTime.of(11, 10, 12, 15)
SEATING1_CLASS_TIME = ScheduleTime.of(12, 15, 13, 15)
SEATING2_CLASS_TIME = ScheduleTime.of(11, 20, 12, 20)
SEATING2_LUNCH_TIME = ScheduleTime.of(12, 20, 13, 25)

_BREAK = "Break – Visit the Midway or Scout Shop"

CHECKIN_ITEM = ScheduleItem(ScheduleTime.of(7, 40, 8, 15), "Check-in and Registration", "Wellness Center")
OPENING_CEREMONY_ITEM = ScheduleItem(ScheduleTime.of(8, 15, 8, 45), "Opening Ceremony", "Wellness Center")
BREAK_01_ITEM = ScheduleItem(ScheduleTime.of(10, 0, 10, 10), _BREAK, kind="break")
BREAK_12_ITEM = ScheduleItem(ScheduleTime.of(11, 10, 11, 20), _BREAK, kind="break")
BREAK_23_ITEM = ScheduleItem(ScheduleTime.of(13, 15, 13, 25), _BREAK, kind="break")
BREAK_34_ITEM = ScheduleItem(ScheduleTime.of(14, 25, 14, 35), _BREAK, kind="break")
BREAK_45_ITEM = ScheduleItem(ScheduleTime.of(15, 35, 15, 45), _BREAK, kind="break")


def class_schedule_item(t: ScheduleTime, sc: SessionClass) -> ScheduleItem:
    description = sc.cls.title
    if sc.number != 0:
        description = f"{sc.number}: {sc.cls.short_title}{sc.i_of_n}"
    return ScheduleItem(
        time=t,
        description=description,
        location=sc.cls.location,
        kind="session",
        instructor=sc.instructor,
        class_number=sc.number,
    )


def participant_schedule(conf: Conference, p: Participant) -> List[ScheduleItem]:
    session_classes, lunch = conf.participant_session_classes_and_lunch(p)

    lunch_description = "Lunch"
    if p.lunch_option:
        lunch_description = f"Lunch: {p.lunch_option}"

    if lunch.seating == 1:
        middle = [
            ScheduleItem(SEATING1_LUNCH_TIME, lunch_description, lunch.location),
            class_schedule_item(SEATING1_CLASS_TIME, session_classes[LUNCH_SESSION]),
            BREAK_23_ITEM,
        ]
    else:
        middle = [
            BREAK_12_ITEM,
            class_schedule_item(SEATING2_CLASS_TIME, session_classes[LUNCH_SESSION]),
            ScheduleItem(SEATING2_LUNCH_TIME, lunch_description, lunch.location),
        ]

    return [
        CHECKIN_ITEM,
        OPENING_CEREMONY_ITEM,
        class_schedule_item(SESSION_TIMES[0], session_classes[0]),
        BREAK_01_ITEM,
        class_schedule_item(SESSION_TIMES[1], session_classes[1]),
        *middle,
        class_schedule_item(SESSION_TIMES[3], session_classes[3]),
        BREAK_34_ITEM,
        class_schedule_item(SESSION_TIMES[4], session_classes[4]),
        BREAK_45_ITEM,
        class_schedule_item(SESSION_TIMES[5], session_classes[5]),
    ]
