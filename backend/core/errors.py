"""Outcome types shared by the auth and request services.

Business conditions come back as one of the frozen failure records below so
callers can branch on them; only ``StoreUnavailable`` is raised.
"""

from dataclasses import dataclass


GENERIC_AUTH_MESSAGE = 'Your username or password is incorrect'


class StoreUnavailable(Exception):
    """The persistence layer could not complete an operation."""


@dataclass(frozen=True)
class ValidationError:
    reason: str


@dataclass(frozen=True)
class AuthFailure:
    message: str = GENERIC_AUTH_MESSAGE


@dataclass(frozen=True)
class CsrfMismatch:
    message: str = 'CSRF TOKEN MISMATCH'


@dataclass(frozen=True)
class IllegalTransition:
    request_id: int
    status: str

    @property
    def message(self) -> str:
        return f'Request {self.request_id} is already {self.status} and cannot change.'


@dataclass(frozen=True)
class NotFound:
    message: str = 'Request not found.'


@dataclass(frozen=True)
class Authorized:
    """Proof that a session passed the CSRF check."""

    session_key: str
    userid: str


FAILURE_TYPES = (ValidationError, AuthFailure, CsrfMismatch, IllegalTransition, NotFound)


def is_failure(outcome: object) -> bool:
    return isinstance(outcome, FAILURE_TYPES)
