"""
seaptc/conference/session_class.py
A class as it occurs in one session.
"""
from dataclasses import dataclass

from seaptc.conference.models import ConferenceClass


@dataclass(frozen=True)
class SessionClass:
    cls: ConferenceClass
    session: int
    instructor: bool = False

    @property
    def number(self) -> int:
        return self.cls.number

    @property
    def part(self) -> int:
        return self.session - self.cls.start + 1

    @property
    def number_dot_part(self) -> str:
        if self.cls.start >= self.cls.end:
            return str(self.cls.number)
        return f"{self.cls.number}.{self.part}"

    @property
    def i_of_n(self) -> str:
        if self.cls.start >= self.cls.end:
            return ""
        return f" ({self.part} of {self.cls.length})"

    @property
    def evaluation_code(self) -> str:
        i = self.session - self.cls.start
        if 0 <= i < len(self.cls.evaluation_codes):
            return self.cls.evaluation_codes[i]
        return ""
