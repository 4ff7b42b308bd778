"""Destination normalization into WhatsApp chat IDs."""

from __future__ import annotations

import re

_NON_DIGITS = re.compile(r"\D")

# A bare national number; anything else is passed through with its digits only
_NATIONAL_NUMBER_LENGTH = 10


def normalize_address(
    raw: str,
    *,
    country_code: str = "91",
    suffix: str = "@c.us",
) -> str:
    """Turn a loosely typed phone number into a chat ID.

    ``"+91 98765-43210"`` and ``"9876543210"`` both become
    ``"919876543210@c.us"``.  Input that already carries *suffix* is returned
    as is.  Nothing is validated: a malformed result simply fails at send time.
    """
    if raw.endswith(suffix):
        return raw
    digits = _NON_DIGITS.sub("", raw)
    if len(digits) == _NATIONAL_NUMBER_LENGTH and not digits.startswith(country_code):
        digits = country_code + digits
    return digits + suffix
