"""Input checks applied before any user or request row is written.

Each check returns a human-readable reason on failure and ``None`` when the
input is acceptable. ``validate_registration`` runs them in a fixed order and
stops at the first violation.
"""

import re

from backend.core import config
from backend.models.request import RequestCategory


USERID_PATTERN = re.compile(r'[0-9]{8}')
NAME_PATTERN = re.compile(r'[a-zA-Z\s]+')
PASSWORD_SYMBOLS = '@$!%*?&'
PASSWORD_PATTERN = re.compile(r'(?=.*[A-Za-z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}')
PHONE_PATTERN = re.compile(r'[0-9]{8}')
LETTERS_PATTERN = re.compile(r'[a-zA-Z]+')


def institutional_email(userid: str) -> str:
    return f'{userid}@{config.INSTITUTION_EMAIL_DOMAIN}'


def check_userid(userid: str | None) -> str | None:
    if not userid or not USERID_PATTERN.fullmatch(userid):
        return 'UserID must be exactly 8 digits'
    return None


def check_name(name: str | None) -> str | None:
    if not name or not NAME_PATTERN.fullmatch(name):
        return 'Name must contain only upper or lower case letters'
    return None


def check_password(password: str | None) -> str | None:
    if not password or not PASSWORD_PATTERN.fullmatch(password):
        return (
            'Password must be at least 8 characters with letters, digits, '
            f'and a special character ({PASSWORD_SYMBOLS})'
        )
    return None


def check_email(userid: str, email: str | None) -> str | None:
    if email != institutional_email(userid):
        return f'Email must be in the format 8-digit UserID followed by @{config.INSTITUTION_EMAIL_DOMAIN}'
    return None


def check_phone(phone: str | None) -> str | None:
    if not phone or not PHONE_PATTERN.fullmatch(phone):
        return 'Phone number must be exactly 8 digits'
    return None


def check_major(major: str | None) -> str | None:
    if not major or not LETTERS_PATTERN.fullmatch(major):
        return 'Major must contain only upper or lower case letters'
    return None


def validate_registration(
    userid: str | None,
    name: str | None,
    password: str | None,
    email: str | None,
    phone: str | None,
    major: str | None,
) -> str | None:
    checks = (
        lambda: check_userid(userid),
        lambda: check_name(name),
        lambda: check_password(password),
        lambda: check_email(userid or '', email),
        lambda: check_phone(phone),
        lambda: check_major(major),
    )
    for check in checks:
        reason = check()
        if reason is not None:
            return reason
    return None


def parse_category(raw: str | RequestCategory | None) -> RequestCategory | None:
    """Map a category name onto the closed set, or ``None`` if it is not a member."""
    if isinstance(raw, RequestCategory):
        return raw
    if not raw or not LETTERS_PATTERN.fullmatch(raw.strip()):
        return None
    try:
        return RequestCategory(raw.strip())
    except ValueError:
        return None
