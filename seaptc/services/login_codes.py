"""
seaptc/services/login_codes.py
Assignment of six digit login codes to participants.

A participant keeps its code across re-imports because the code map is keyed
by participant ID and entries are never removed. Codes are unique across
everything ever assigned, including participants no longer registered.
"""
import logging
import secrets
from typing import List, MutableMapping

from seaptc.conference.models import Participant
from seaptc.exceptions import LoginCodeExhaustedError

logger = logging.getLogger(__name__)

MAX_LOGIN_CODE_ATTEMPTS = 10000


def new_login_code() -> str:
    n = int.from_bytes(secrets.token_bytes(4), "little")
    return str(n % 899999 + 100000)


def assign_login_codes(
    login_codes: MutableMapping[str, str],
    participants: List[Participant],
) -> List[Participant]:
    """
    Return participants with login_code set, adding new codes to login_codes.

    The caller persists login_codes in the same transaction as the
    participants.
    """
    assigned = set(login_codes.values())
    result = []
    added = 0
    for p in participants:
        code = login_codes.get(p.id, "")
        if not code:
            for _ in range(MAX_LOGIN_CODE_ATTEMPTS):
                candidate = new_login_code()
                if candidate in assigned:
                    continue
                assigned.add(candidate)
                login_codes[p.id] = candidate
                code = candidate
                added += 1
                break
        if not code:
            raise LoginCodeExhaustedError(p.id)
        result.append(p if p.login_code == code else p.model_copy(update={"login_code": code}))

    if added:
        logger.info(f"Assigned {added} new login codes ({len(login_codes)} total)")
    return result
