from fastapi import Cookie, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from backend.core import config
from backend.models.session import UserSession
from backend.models.user import User, UserRole
from backend.services.auth_engine import AuthEngine
from backend.services.notifications import Notifier
from backend.services.queue_estimator import QueueEstimator
from backend.services.request_lifecycle import RequestLifecycle
from backend.stores.credential_store import CredentialStore
from backend.stores.request_store import RequestStore


def get_db(request: Request):
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def get_estimator(request: Request) -> QueueEstimator:
    return request.app.state.estimator


def get_auth_engine(
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> AuthEngine:
    return AuthEngine(CredentialStore(db), notifier)


def get_request_lifecycle(
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    estimator: QueueEstimator = Depends(get_estimator),
) -> RequestLifecycle:
    return RequestLifecycle(RequestStore(db), CredentialStore(db), estimator, notifier)


def get_current_session(
    session_key: str | None = Cookie(default=None, alias=config.SESSION_COOKIE_NAME),
    auth: AuthEngine = Depends(get_auth_engine),
) -> UserSession:
    session = auth.validate_session(session_key)
    if not auth.is_live(session):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Please login to access this page')
    return session


def get_current_user(
    session: UserSession = Depends(get_current_session),
    auth: AuthEngine = Depends(get_auth_engine),
) -> User:
    outcome = auth.current_user(session.key)
    if not isinstance(outcome, User):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=outcome.message)
    return outcome


def require_staff(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.STAFF:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Staff privileges required.')
    return current_user


def require_student(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.STUDENT:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Only students can manage their own requests.')
    return current_user
