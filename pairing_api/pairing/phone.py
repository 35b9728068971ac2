"""
Phone number and pairing code helpers.
"""

from __future__ import annotations

import re
from typing import Optional

from pairing_api.exceptions import InvalidPhoneNumberError

MIN_PHONE_DIGITS = 7
MAX_PHONE_DIGITS = 15
CODE_GROUP_SIZE = 4

_NON_DIGITS = re.compile(r"[^0-9]")


def clean_phone(raw: str) -> str:
    """Strip everything that is not a digit (spaces, +, dashes, brackets)."""
    return _NON_DIGITS.sub("", raw)


def validate_phone(raw: Optional[str]) -> str:
    """Return the digits of ``raw`` or raise InvalidPhoneNumberError."""
    if not raw:
        raise InvalidPhoneNumberError("Phone number is required!")

    phone = clean_phone(raw)
    if not MIN_PHONE_DIGITS <= len(phone) <= MAX_PHONE_DIGITS:
        raise InvalidPhoneNumberError("Invalid phone number!")
    return phone


def format_pairing_code(code: Optional[str]) -> Optional[str]:
    """ABCD1234 -> ABCD-1234. Codes already grouped are returned unchanged."""
    if not code or "-" in code:
        return code
    groups = [code[i:i + CODE_GROUP_SIZE] for i in range(0, len(code), CODE_GROUP_SIZE)]
    return "-".join(groups)
