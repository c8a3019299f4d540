"""Student request model definitions."""

import enum

from sqlalchemy import Column, DateTime, Enum, Index, Integer, String, Text
from backend.database import Base


class RequestCategory(str, enum.Enum):
    COURSE_REGISTRATION = "CourseRegistration"
    CAPSTONE = "Capstone"
    COMPLAINT = "Complaint"
    OTHER = "Other"


class RequestStatus(str, enum.Enum):
    PENDING = "Pending"
    RESOLVED = "Resolved"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.PENDING


STAFF_ACTIONS = (RequestStatus.RESOLVED, RequestStatus.REJECTED)


def _enum_values(members):
    return [member.value for member in members]


class StudentRequest(Base):
    """A categorized request submitted by a student."""
    __tablename__ = "requests"
    __table_args__ = (
        Index("idx_requests_category_status", "category", "status"),
        Index("idx_requests_userid", "userid"),
    )

    id = Column(Integer, primary_key=True)
    userid = Column(String(8), nullable=False)
    username = Column(String)
    email = Column(String)
    phone = Column(String(8))
    category = Column(
        Enum(RequestCategory, name="request_category", values_callable=_enum_values),
        nullable=False,
    )
    body = Column(Text, nullable=False)
    semester = Column(String)
    submitted_at = Column(DateTime, nullable=False)
    status = Column(
        Enum(RequestStatus, name="request_status", values_callable=_enum_values),
        nullable=False,
        default=RequestStatus.PENDING,
    )
    estimated_completion = Column(DateTime, nullable=False)
    note = Column(Text)
    acted_by = Column(String(8))

    def __repr__(self) -> str:
        return f"<StudentRequest id={self.id} category={self.category} status={self.status}>"
