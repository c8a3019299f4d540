from datetime import datetime, time

import pytest

from backend.database import Database
from backend.models.user import User, UserRole
from backend.services.auth_engine import AuthEngine, hash_secret
from backend.services.queue_estimator import BusinessCalendar, QueueEstimator
from backend.services.request_lifecycle import RequestLifecycle
from backend.stores.credential_store import CredentialStore
from backend.stores.request_store import RequestStore

STUDENT_ID = '60012345'
OTHER_STUDENT_ID = '60054321'
STAFF_ID = '90000001'
PASSWORD = 'Passw0rd!'


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []

    def send(self, to: str, subject: str, message: str) -> None:
        self.sent.append((to, subject, message))

    def last_key(self) -> str:
        return self.sent[-1][2].rsplit('key=', 1)[1]


@pytest.fixture
def database():
    database = Database('sqlite:///:memory:')
    database.connect()
    database.create_schema()
    try:
        yield database
    finally:
        database.close()


@pytest.fixture
def db(database):
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock() -> FixedClock:
    # Monday
    return FixedClock(datetime(2026, 1, 5, 9, 0))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def credentials(db) -> CredentialStore:
    return CredentialStore(db)


@pytest.fixture
def request_store(db) -> RequestStore:
    return RequestStore(db)


@pytest.fixture
def estimator() -> QueueEstimator:
    calendar = BusinessCalendar(open_time=time(8, 0), close_time=time(15, 0), working_days=frozenset({0, 1, 2, 3, 4}))
    return QueueEstimator(calendar, minutes_per_request=20)


@pytest.fixture
def auth_engine(credentials, notifier, clock) -> AuthEngine:
    return AuthEngine(credentials, notifier, clock=clock)


@pytest.fixture
def lifecycle(request_store, credentials, estimator, notifier, clock) -> RequestLifecycle:
    return RequestLifecycle(request_store, credentials, estimator, notifier, clock=clock)


def make_user(credentials: CredentialStore, userid: str, role: UserRole = UserRole.STUDENT, password: str = PASSWORD) -> User:
    return credentials.create_user(
        User(
            userid=userid,
            name='Staff Member' if role == UserRole.STAFF else 'Test Student',
            password_hash=hash_secret(password),
            email=f'{userid}@udst.edu.qa',
            phone='55551234',
            major='Computing',
            role=role,
            verified=True,
        )
    )


@pytest.fixture
def student(credentials) -> User:
    return make_user(credentials, STUDENT_ID)


@pytest.fixture
def other_student(credentials) -> User:
    return make_user(credentials, OTHER_STUDENT_ID)


@pytest.fixture
def staff(credentials) -> User:
    return make_user(credentials, STAFF_ID, role=UserRole.STAFF)
