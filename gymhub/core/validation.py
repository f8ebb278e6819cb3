from __future__ import annotations

import re

_PHONE_REGEX = re.compile(r"^\+?\d{7,15}$")
_PHONE_SEPARATORS = re.compile(r"[\s\-().]")
_EMAIL_REGEX = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_phone(raw: str) -> str | None:
    """
    Strip separators from a member or inquiry phone number.

    Spaces, dashes, dots and parentheses are dropped; what remains must be
    7-15 digits with an optional leading '+'. Returns None otherwise.
    """

    value = _PHONE_SEPARATORS.sub("", raw.strip())
    if not _PHONE_REGEX.match(value):
        return None
    return value


def normalize_email(raw: str) -> str | None:
    """Lower-cased, trimmed email, or None if it does not look like one."""

    value = raw.strip().lower()
    if not _EMAIL_REGEX.match(value):
        return None
    return value
