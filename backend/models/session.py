"""Login session model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, String
from backend.database import Base


class UserSession(Base):
    """A login session; expiry is checked by the caller at use time."""
    __tablename__ = "sessions"

    key = Column(String, primary_key=True)
    userid = Column(String(8), index=True, nullable=False)
    expiry = Column(DateTime, nullable=False)
    csrf_token = Column(String(64))

    def is_live(self, now: datetime) -> bool:
        return self.expiry is not None and self.expiry > now
