"""User model definitions."""

import enum

from sqlalchemy import Boolean, Column, Enum, String
from backend.database import Base


class UserRole(str, enum.Enum):
    STUDENT = "Student"
    STAFF = "Staff"


class User(Base):
    """Represents a registered student or staff member."""
    __tablename__ = "users"

    userid = Column(String(8), primary_key=True)
    name = Column(String, nullable=False)
    password_hash = Column(String(64), nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone = Column(String(8))
    major = Column(String)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=lambda roles: [role.value for role in roles]),
        nullable=False,
        default=UserRole.STUDENT,
    )
    verified = Column(Boolean, nullable=False, default=False)
    verify_key = Column(String(64), index=True)
    reset_key = Column(String(64), index=True)

    @property
    def is_staff(self) -> bool:
        return self.role == UserRole.STAFF

    def __repr__(self) -> str:
        return f"<User {self.userid} role={self.role}>"
