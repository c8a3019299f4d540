"""Request state machine: Pending -> Resolved | Rejected | Cancelled.

All three targets are terminal. Every status write goes through this module.
"""

import logging
import random
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock
from typing import Callable

from backend.core.errors import AuthFailure, IllegalTransition, NotFound, ValidationError
from backend.models.request import STAFF_ACTIONS, RequestCategory, RequestStatus, StudentRequest
from backend.services import validation
from backend.services.notifications import Notifier
from backend.services.queue_estimator import QueueEstimator, format_completion
from backend.stores.credential_store import CredentialStore
from backend.stores.request_store import RequestStore


logger = logging.getLogger(__name__)

MAX_REQUEST_BODY_LENGTH = 2000
MAX_NOTE_LENGTH = 600

# One lock per category serializes the backlog read and the insert that follows it.
_category_locks: dict[RequestCategory, Lock] = {category: Lock() for category in RequestCategory}


@dataclass
class StatusPartition:
    pending: list[StudentRequest] = field(default_factory=list)
    actioned: list[StudentRequest] = field(default_factory=list)
    cancelled: list[StudentRequest] = field(default_factory=list)


class RequestLifecycle:
    def __init__(
        self,
        requests: RequestStore,
        credentials: CredentialStore,
        estimator: QueueEstimator,
        notifier: Notifier,
        clock: Callable[[], datetime] = datetime.now,
        rng: random.Random | None = None,
    ) -> None:
        self.requests = requests
        self.credentials = credentials
        self.estimator = estimator
        self.notifier = notifier
        self.clock = clock
        self.rng = rng or random.Random()

    def submit(
        self,
        owner_id: str,
        category: str | RequestCategory,
        body: str,
        semester: str | None = None,
    ) -> StudentRequest | ValidationError:
        parsed_category = validation.parse_category(category)
        if parsed_category is None:
            return ValidationError('Unknown request category')

        text = (body or '').strip()
        if not text:
            return ValidationError('Request details are required')
        if len(text) > MAX_REQUEST_BODY_LENGTH:
            return ValidationError(f'Request details must be {MAX_REQUEST_BODY_LENGTH} characters or fewer')

        owner = self.credentials.get_user(owner_id)
        if owner is None:
            return ValidationError('Unknown student')

        with _category_locks[parsed_category]:
            submitted_at = self.clock()
            backlog = self.requests.get_pending_requests(parsed_category)
            estimated = self.estimator.estimate(parsed_category, submitted_at, backlog)
            request = self.requests.insert_request(
                StudentRequest(
                    userid=owner.userid,
                    username=owner.name,
                    email=owner.email,
                    phone=owner.phone,
                    category=parsed_category,
                    body=text,
                    semester=(semester or '').strip() or None,
                    submitted_at=submitted_at,
                    status=RequestStatus.PENDING,
                    estimated_completion=estimated,
                )
            )

        logger.info(
            'Request %s queued in %s behind %d pending, estimated %s',
            request.id,
            parsed_category.value,
            len(backlog),
            format_completion(estimated),
        )
        return request

    def cancel(self, request_id: int, requester_id: str) -> StudentRequest | IllegalTransition | AuthFailure | NotFound:
        request = self.requests.get_request(request_id)
        if request is None:
            return NotFound()
        if request.userid != requester_id:
            return AuthFailure('Only the student who submitted this request can cancel it.')
        return self._transition(request, RequestStatus.CANCELLED)

    def act(
        self,
        request_id: int,
        action: RequestStatus | str,
        note: str | None,
        acting_staff_id: str,
    ) -> StudentRequest | ValidationError | IllegalTransition | AuthFailure | NotFound:
        """Resolve or reject a request. The caller must already have passed the CSRF check."""
        try:
            status = RequestStatus(action)
        except ValueError:
            status = None
        if status not in STAFF_ACTIONS:
            return ValidationError('Action must be Resolved or Rejected')

        cleaned_note = (note or '').strip() or None
        if cleaned_note and len(cleaned_note) > MAX_NOTE_LENGTH:
            return ValidationError(f'Notes must be {MAX_NOTE_LENGTH} characters or fewer')

        staff = self.credentials.get_user(acting_staff_id)
        if staff is None or not staff.is_staff:
            return AuthFailure('Only staff can action requests.')

        request = self.requests.get_request(request_id)
        if request is None:
            return NotFound()

        outcome = self._transition(request, status, note=cleaned_note, acted_by=staff.userid)
        if isinstance(outcome, StudentRequest):
            self._notify_owner(outcome)
        return outcome

    def annotate(self, request_id: int, note: str) -> StudentRequest | ValidationError | IllegalTransition | NotFound:
        cleaned_note = (note or '').strip()
        if not cleaned_note:
            return ValidationError('Note is required')
        if len(cleaned_note) > MAX_NOTE_LENGTH:
            return ValidationError(f'Notes must be {MAX_NOTE_LENGTH} characters or fewer')

        request = self.requests.get_request(request_id)
        if request is None:
            return NotFound()
        if request.status == RequestStatus.CANCELLED:
            return IllegalTransition(request.id, request.status.value)

        updated = self.requests.set_request_note(request_id, cleaned_note)
        if updated is None:
            return IllegalTransition(request.id, 'annotated')
        return updated

    def _transition(
        self,
        request: StudentRequest,
        status: RequestStatus,
        note: str | None = None,
        acted_by: str | None = None,
    ) -> StudentRequest | IllegalTransition:
        if request.status.is_terminal:
            return IllegalTransition(request.id, request.status.value)

        updated = self.requests.update_request_status(request.id, status, note=note, acted_by=acted_by)
        if updated is None:
            # Another writer moved it out of Pending between the read and the write.
            current = self.requests.get_request(request.id)
            return IllegalTransition(request.id, current.status.value if current else 'missing')

        logger.info('Request %s moved to %s', updated.id, status.value)
        return updated

    def _notify_owner(self, request: StudentRequest) -> None:
        recipient = request.email or request.username or request.userid
        try:
            self.notifier.send(
                recipient,
                'Request Actioned',
                f'Your {request.category.value} request has been {request.status.value.lower()}.',
            )
        except Exception:
            logger.exception('Notification for request %s failed', request.id)

    # Queries

    def get(self, request_id: int) -> StudentRequest | None:
        return self.requests.get_request(request_id)

    def list_by_category(self, category: str | RequestCategory) -> list[StudentRequest] | ValidationError:
        parsed_category = validation.parse_category(category)
        if parsed_category is None:
            return ValidationError('Unknown request category')
        return self.requests.get_requests_by_category(parsed_category)

    def list_pending_in_category(self, category: str | RequestCategory) -> list[StudentRequest] | ValidationError:
        parsed_category = validation.parse_category(category)
        if parsed_category is None:
            return ValidationError('Unknown request category')
        return self.requests.get_pending_requests(parsed_category)

    def list_by_user(self, userid: str) -> list[StudentRequest]:
        return self.requests.get_requests_by_user(userid)

    def list_all_pending(self) -> list[StudentRequest]:
        return self.requests.get_pending_requests()

    def pending_by_category(self) -> dict[RequestCategory, list[StudentRequest]]:
        partition: dict[RequestCategory, list[StudentRequest]] = defaultdict(list)
        for request in self.list_all_pending():
            partition[request.category].append(request)
        return {category: partition.get(category, []) for category in RequestCategory}

    def pending_counts_by_category(self) -> dict[RequestCategory, int]:
        return {category: len(requests) for category, requests in self.pending_by_category().items()}

    def pick_random_pending(self) -> StudentRequest | None:
        pending = self.list_all_pending()
        if not pending:
            return None
        return self.rng.choice(pending)


def partition_by_status(requests: list[StudentRequest], semester: str | None = None) -> StatusPartition:
    """Split a student's requests into pending, actioned and cancelled groups.

    A blank semester or ``allSemesters`` keeps every request.
    """
    partition = StatusPartition()
    keep_all = not semester or semester == 'allSemesters'
    for request in requests:
        if not keep_all and request.semester != semester:
            continue
        if request.status == RequestStatus.PENDING:
            partition.pending.append(request)
        elif request.status == RequestStatus.CANCELLED:
            partition.cancelled.append(request)
        else:
            partition.actioned.append(request)
    return partition
