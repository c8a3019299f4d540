"""Shared plumbing for the SQLAlchemy-backed stores."""

from functools import wraps

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core.errors import StoreUnavailable


def store_operation(method):
    """Roll back and re-raise database errors as StoreUnavailable."""

    @wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreUnavailable(f'{type(self).__name__}.{method.__name__} failed') from exc

    return wrapper


class BaseStore:
    def __init__(self, db: Session) -> None:
        self.db = db
