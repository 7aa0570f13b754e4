"""
Participant ID derivation tests.
"""
import hashlib

from seaptc.conference.identity import participant_id, with_participant_id
from seaptc.tests.conftest import make_participant


def test_participant_id_layout():
    p = make_participant("Jane", "Doe", suffix="Jr", nickname="JD", registration_number="R1",
                         youth=True, name_extra="x")
    expected = hashlib.md5("doe\0jane\0jr\0jd\0r1\0\x01\0x".encode("utf-8")).hexdigest()
    assert participant_id(p) == expected


def test_participant_id_without_nickname_or_youth():
    p = make_participant("Jane", "Doe", registration_number="R1")
    expected = hashlib.md5("doe\0jane\0\0r1".encode("utf-8")).hexdigest()
    assert participant_id(p) == expected


def test_participant_id_ignores_case():
    a = make_participant("Jane", "Doe", nickname="JD")
    b = make_participant("JANE", "doe", nickname="jd")
    assert participant_id(a) == participant_id(b)


def test_participant_id_ignores_other_fields():
    a = make_participant("Jane", "Doe")
    b = make_participant("Jane", "Doe", email="jane@example.org", classes=(101, 201), council="Other",
                         staff=True, login_code="123456")
    assert participant_id(a) == participant_id(b)


def test_participant_id_depends_on_identifying_fields():
    base = make_participant("Jane", "Doe")
    variants = [
        make_participant("Janet", "Doe"),
        make_participant("Jane", "Dough"),
        make_participant("Jane", "Doe", suffix="Sr"),
        make_participant("Jane", "Doe", nickname="JJ"),
        make_participant("Jane", "Doe", registration_number="R200"),
        make_participant("Jane", "Doe", youth=True),
        make_participant("Jane", "Doe", name_extra="2"),
    ]
    ids = {participant_id(v) for v in variants}
    assert participant_id(base) not in ids
    assert len(ids) == len(variants)


def test_with_participant_id_keeps_existing_id():
    p = make_participant("Jane", "Doe", id="given")
    assert with_participant_id(p) is p

    q = with_participant_id(make_participant("Jane", "Doe"))
    assert q.id == participant_id(q)
