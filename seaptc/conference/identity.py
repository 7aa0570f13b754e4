"""
seaptc/conference/identity.py
Stable participant identifiers.

A participant keeps the same ID across registration re-imports as long as the
name fields, registration number and youth flag do not change.
"""
import hashlib

from seaptc.conference.models import Participant


def participant_id(p: Participant) -> str:
    """
    Return the hex MD5 of the participant's identifying fields.

    Layout, lowercased before hashing:
        last \\0 first \\0 suffix \\0 [nickname \\0] registration_number
        [\\0 \\x01 \\0 if youth] name_extra
    """
    parts = [p.last_name, "\0", p.first_name, "\0", p.suffix, "\0"]
    if p.nickname:
        parts += [p.nickname, "\0"]
    parts.append(p.registration_number)
    if p.youth:
        parts.append("\0\x01\0")
    parts.append(p.name_extra)
    buf = "".join(parts).lower().encode("utf-8")
    return hashlib.md5(buf).hexdigest()


def with_participant_id(p: Participant) -> Participant:
    """Return p with its ID filled in when the importer left it empty."""
    if p.id:
        return p
    return p.model_copy(update={"id": participant_id(p)})
