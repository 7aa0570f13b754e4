"""
seaptc/conference/sorting.py
Sorting and filtering of class and participant lists for dashboards.

Sort keys may be prefixed with "-" to reverse the order.
"""
from typing import Callable, List, Tuple

from seaptc.conference.models import ConferenceClass, Participant


def sort_key_reverse(key: str) -> Tuple[str, bool]:
    if key.startswith("-"):
        return key[1:], True
    return key, False


def sort_classes(classes: List[ConferenceClass], key: str = "") -> None:
    """Sort classes in place by location, responsibility, capacity or number."""
    key, reverse = sort_key_reverse(key)
    if key == "location":
        classes.sort(key=lambda c: (c.location, c.number), reverse=reverse)
    elif key == "responsibility":
        classes.sort(key=lambda c: (c.responsibility, c.number), reverse=reverse)
    elif key == "capacity":
        classes.sort(key=lambda c: (c.capacity, c.number), reverse=reverse)
    else:
        classes.sort(key=lambda c: c.number, reverse=reverse)


def _type_key(p: Participant):
    # Youth first, then adults, then staff by role.
    return (not p.youth, p.staff, p.staff_role, p.sort_name)


def _unit_key(p: Participant):
    return (p.council, p.district, p.unit_number, p.unit_type, p.sort_name)


def sort_participants(participants: List[Participant], key: str = "") -> None:
    """Sort participants in place by type, unit (district, council) or name."""
    key, reverse = sort_key_reverse(key)
    if key == "type":
        participants.sort(key=_type_key, reverse=reverse)
    elif key in ("unit", "district", "council"):
        participants.sort(key=_unit_key, reverse=reverse)
    else:
        participants.sort(key=lambda p: p.sort_name, reverse=reverse)


def filter_participants(participants: List[Participant], fn: Callable[[Participant], bool]) -> List[Participant]:
    return [p for p in participants if fn(p)]
