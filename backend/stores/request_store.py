"""Persistence for student requests."""

from backend.models.request import RequestCategory, RequestStatus, StudentRequest
from backend.stores.base import BaseStore, store_operation


class RequestStore(BaseStore):

    @store_operation
    def insert_request(self, request: StudentRequest) -> StudentRequest:
        self.db.add(request)
        self.db.commit()
        self.db.refresh(request)
        return request

    @store_operation
    def get_request(self, request_id: int) -> StudentRequest | None:
        return self.db.query(StudentRequest).filter(StudentRequest.id == request_id).first()

    @store_operation
    def get_requests_by_user(self, userid: str) -> list[StudentRequest]:
        return (
            self.db.query(StudentRequest)
            .filter(StudentRequest.userid == userid)
            .order_by(StudentRequest.submitted_at.asc(), StudentRequest.id.asc())
            .all()
        )

    @store_operation
    def get_all_requests(self) -> list[StudentRequest]:
        return (
            self.db.query(StudentRequest)
            .order_by(StudentRequest.submitted_at.asc(), StudentRequest.id.asc())
            .all()
        )

    @store_operation
    def get_requests_by_category(self, category: RequestCategory) -> list[StudentRequest]:
        return (
            self.db.query(StudentRequest)
            .filter(StudentRequest.category == category)
            .order_by(StudentRequest.submitted_at.asc(), StudentRequest.id.asc())
            .all()
        )

    @store_operation
    def get_pending_requests(self, category: RequestCategory | None = None) -> list[StudentRequest]:
        query = self.db.query(StudentRequest).filter(StudentRequest.status == RequestStatus.PENDING)
        if category is not None:
            query = query.filter(StudentRequest.category == category)
        return query.order_by(StudentRequest.submitted_at.asc(), StudentRequest.id.asc()).all()

    @store_operation
    def update_request_status(
        self,
        request_id: int,
        status: RequestStatus,
        note: str | None = None,
        acted_by: str | None = None,
    ) -> StudentRequest | None:
        """Move a Pending request to ``status``; returns None if it was no longer Pending."""
        changes = {StudentRequest.status: status}
        if note is not None:
            changes[StudentRequest.note] = note
        if acted_by is not None:
            changes[StudentRequest.acted_by] = acted_by

        updated = (
            self.db.query(StudentRequest)
            .filter(StudentRequest.id == request_id, StudentRequest.status == RequestStatus.PENDING)
            .update(changes, synchronize_session='fetch')
        )
        self.db.commit()
        if not updated:
            return None
        return self.get_request(request_id)

    @store_operation
    def set_request_note(self, request_id: int, note: str) -> StudentRequest | None:
        """Attach a note to a request that has none; returns None if a note was already set."""
        updated = (
            self.db.query(StudentRequest)
            .filter(StudentRequest.id == request_id, StudentRequest.note.is_(None))
            .update({StudentRequest.note: note}, synchronize_session='fetch')
        )
        self.db.commit()
        if not updated:
            return None
        return self.get_request(request_id)
