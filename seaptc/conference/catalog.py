"""
seaptc/conference/catalog.py
Catalog grid: classes laid out in rows by the last two digits of the class
number, with one column per session of the morning (sessions 0-2) or the
afternoon (sessions 3-5).
"""
from dataclasses import dataclass
from typing import Dict, List, Optional

from seaptc.conference.models import NUM_SESSION, ConferenceClass

_SESSIONS_PER_HALF = 3


@dataclass
class CatalogCell:
    number: int = 0
    length: int = 1
    title: str = ""
    title_note: str = ""
    # Set when the class continues into the other half of the day
    flag: bool = False


def create_catalog_grid(classes: List[ConferenceClass], morning: bool) -> List[List[CatalogCell]]:
    rows: Dict[int, List[Optional[CatalogCell]]] = {}
    for c in classes:
        start, end = c.start, c.end
        if start < 0 or end >= NUM_SESSION:
            continue

        cell = CatalogCell(number=c.number, length=c.length, title=c.title, title_note=c.title_note)

        if morning:
            if start >= _SESSIONS_PER_HALF:
                continue
            if end >= _SESSIONS_PER_HALF:
                cell.length = _SESSIONS_PER_HALF - start
                cell.flag = True
            column = start
        else:
            if end < _SESSIONS_PER_HALF:
                continue
            if start < _SESSIONS_PER_HALF:
                cell.length = end - _SESSIONS_PER_HALF + 1
                cell.flag = True
                start = _SESSIONS_PER_HALF
            column = start - _SESSIONS_PER_HALF

        row = rows.setdefault(c.number % 100, [None] * _SESSIONS_PER_HALF)
        row[column] = cell

    grid = []
    for _, row in sorted(rows.items()):
        filled: List[CatalogCell] = []
        j = 0
        while j < len(row):
            cell = row[j]
            if cell is None:
                filled.append(CatalogCell())
                j += 1
            else:
                filled.append(cell)
                j += cell.length
        grid.append(filled)
    return grid
