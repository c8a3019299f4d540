"""Password, session and CSRF handling.

Raw verification and reset keys are handed to the user by email and never
stored; the users table only holds ``hash_secret("reset: " + raw_key)``.
"""

import hashlib
import hmac
import logging
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Callable

from backend.core import config
from backend.core.errors import Authorized, AuthFailure, CsrfMismatch, ValidationError
from backend.models.session import UserSession
from backend.models.user import User, UserRole
from backend.services import validation
from backend.services.notifications import Notifier
from backend.stores.credential_store import CredentialStore


logger = logging.getLogger(__name__)

CHALLENGE_PREFIX = 'reset: '
VERIFY_FIELD = 'verify_key'
RESET_FIELD = 'reset_key'
CSRF_TOKEN_BYTES = 32


def hash_secret(plaintext: str) -> str:
    return hashlib.sha256(plaintext.encode('utf-8')).hexdigest()


def challenge_hash(raw_key: str) -> str:
    return hash_secret(CHALLENGE_PREFIX + raw_key)


def generate_csrf_token() -> str:
    return secrets.token_hex(CSRF_TOKEN_BYTES)


class AuthEngine:
    def __init__(
        self,
        credentials: CredentialStore,
        notifier: Notifier,
        clock: Callable[[], datetime] = datetime.now,
        session_ttl: timedelta | None = None,
    ) -> None:
        self.credentials = credentials
        self.notifier = notifier
        self.clock = clock
        self.session_ttl = session_ttl or timedelta(minutes=config.SESSION_TTL_MINUTES)

    # Registration

    def register(
        self,
        userid: str,
        name: str,
        password: str,
        email: str,
        phone: str,
        major: str,
    ) -> User | ValidationError:
        reason = validation.validate_registration(userid, name, password, email, phone, major)
        if reason is not None:
            return ValidationError(reason)

        if self.credentials.get_user(userid) is not None:
            return ValidationError('An account with this UserID already exists')

        user = self.credentials.create_user(
            User(
                userid=userid,
                name=name.strip(),
                password_hash=hash_secret(password),
                email=email,
                phone=phone,
                major=major,
                role=UserRole.STUDENT,
                verified=False,
            )
        )
        logger.info('Registered student %s', userid)
        self.issue_verification_challenge(user)
        return user

    # Login sessions

    def authenticate(self, userid: str, plaintext: str) -> UserSession | AuthFailure:
        user = self.credentials.get_user(userid) if userid else None
        if user is None or not hmac.compare_digest(hash_secret(plaintext or ''), user.password_hash):
            logger.info('Failed login attempt for %r', userid)
            return AuthFailure()

        session = UserSession(
            key=secrets.token_urlsafe(32),
            userid=user.userid,
            expiry=self.clock() + self.session_ttl,
            csrf_token=generate_csrf_token(),
        )
        return self.credentials.create_session(session)

    def validate_session(self, session_key: str | None) -> UserSession | None:
        """Look up a session without checking or purging expiry."""
        if not session_key:
            return None
        return self.credentials.get_session(session_key)

    def is_live(self, session: UserSession | None, now: datetime | None = None) -> bool:
        if session is None:
            return False
        return session.is_live(now or self.clock())

    def current_user(self, session_key: str | None) -> User | AuthFailure:
        session = self.validate_session(session_key)
        if not self.is_live(session):
            return AuthFailure('Please login to access this page')
        user = self.credentials.get_user(session.userid)
        if user is None:
            return AuthFailure('Please login to access this page')
        return user

    def require_csrf(self, session: UserSession | None, supplied_token: str | None) -> Authorized | CsrfMismatch:
        if session is None:
            return CsrfMismatch()
        expected = session.csrf_token
        if not expected or not supplied_token:
            return CsrfMismatch()
        if not hmac.compare_digest(expected.encode('utf-8'), supplied_token.encode('utf-8')):
            logger.warning('CSRF token mismatch for session owned by %s', session.userid)
            return CsrfMismatch()
        return Authorized(session_key=session.key, userid=session.userid)

    def clear_csrf_token(self, session_key: str) -> None:
        self.credentials.clear_csrf_token(session_key)

    def terminate_session(self, session_key: str | None) -> None:
        if not session_key:
            return
        self.credentials.delete_session(session_key)

    # Verification and password reset

    def _issue_challenge(self, user: User, field: str) -> str:
        raw_key = str(uuid.uuid4())
        self.credentials.update_user(user.userid, {field: challenge_hash(raw_key)})
        return raw_key

    def issue_verification_challenge(self, user: User) -> str:
        raw_key = self._issue_challenge(user, VERIFY_FIELD)
        self.notifier.send(
            user.email,
            'Verify your email',
            f'email verification link: {config.PUBLIC_BASE_URL}/auth/verify?key={raw_key}',
        )
        return raw_key

    def issue_reset_challenge(self, user: User) -> str:
        raw_key = self._issue_challenge(user, RESET_FIELD)
        self.notifier.send(
            user.email,
            'Password reset',
            f'Password reset email link: {config.PUBLIC_BASE_URL}/auth/reset-password?key={raw_key}',
        )
        return raw_key

    def resolve_challenge(self, raw_key: str | None, field: str) -> User | None:
        if not raw_key:
            return None
        key_hash = challenge_hash(raw_key)
        if field == VERIFY_FIELD:
            return self.credentials.get_user_by_verify_key(key_hash)
        if field == RESET_FIELD:
            return self.credentials.get_user_by_reset_key(key_hash)
        raise ValueError(f'Unknown challenge field: {field}')

    def confirm_verification(self, raw_key: str | None) -> User | AuthFailure:
        user = self.resolve_challenge(raw_key, VERIFY_FIELD)
        if user is None:
            return AuthFailure('Invalid or expired verification email, please try again')
        self.credentials.mark_verified(user.userid)
        return user

    def request_password_reset(self, email: str | None) -> bool:
        user = self.credentials.get_user_by_email(email) if email else None
        if user is None:
            return False
        self.issue_reset_challenge(user)
        return True

    def reset_password(
        self,
        raw_key: str | None,
        password: str | None,
        repeat_password: str | None,
    ) -> User | ValidationError | AuthFailure:
        user = self.resolve_challenge(raw_key, RESET_FIELD)
        if user is None:
            return AuthFailure('Invalid or expired password reset email, please try again')
        if password != repeat_password:
            return ValidationError('Your passwords do not match')
        reason = validation.check_password(password)
        if reason is not None:
            return ValidationError(reason)

        self.credentials.update_password(user.userid, hash_secret(password))
        logger.info('Password reset completed for %s', user.userid)
        return user
