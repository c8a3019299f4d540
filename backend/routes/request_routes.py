from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator

from backend.auth.dependencies import (
    get_auth_engine,
    get_current_session,
    get_request_lifecycle,
    require_staff,
    require_student,
)
from backend.models.request import STAFF_ACTIONS, RequestCategory, RequestStatus, StudentRequest
from backend.models.session import UserSession
from backend.models.user import User
from backend.routes.http_errors import raise_for_failure
from backend.services.auth_engine import AuthEngine
from backend.services.queue_estimator import format_completion
from backend.services.request_lifecycle import RequestLifecycle, partition_by_status

router = APIRouter(tags=['requests'])


class SubmitRequest(BaseModel):
    category: str
    body: str
    semester: str | None = None

    @field_validator('category', 'body', mode='before')
    @classmethod
    def strip_whitespace(cls, value: str | None) -> str:
        return (value or '').strip()


class ActionRequest(BaseModel):
    action: RequestStatus
    note: str | None = None
    csrf_token: str | None = None

    @field_validator('action')
    @classmethod
    def validate_action(cls, value: RequestStatus) -> RequestStatus:
        if value not in STAFF_ACTIONS:
            raise ValueError('Action must be Resolved or Rejected.')
        return value


class NoteRequest(BaseModel):
    note: str
    csrf_token: str | None = None


class RequestResponse(BaseModel):
    id: int
    userid: str
    username: str | None = None
    category: RequestCategory
    body: str
    semester: str | None = None
    submitted_at: datetime
    status: RequestStatus
    estimated_completion: datetime
    estimated_completion_display: str
    note: str | None = None


class MyRequestsResponse(BaseModel):
    userid: str
    selected_semester: str | None = None
    pending: list[RequestResponse]
    actioned: list[RequestResponse]
    cancelled: list[RequestResponse]


class QueueResponse(BaseModel):
    category: RequestCategory
    requests: list[RequestResponse]
    csrf_token: str | None = None


class DashboardResponse(BaseModel):
    userid: str
    name: str
    queues: dict[RequestCategory, int]


def to_response(request: StudentRequest) -> RequestResponse:
    return RequestResponse(
        id=request.id,
        userid=request.userid,
        username=request.username,
        category=request.category,
        body=request.body,
        semester=request.semester,
        submitted_at=request.submitted_at,
        status=request.status,
        estimated_completion=request.estimated_completion,
        estimated_completion_display=format_completion(request.estimated_completion),
        note=request.note,
    )


def _require_csrf(session: UserSession, token: str | None, auth: AuthEngine) -> None:
    raise_for_failure(auth.require_csrf(session, token))


@router.post('', response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
def submit_request(
    data: SubmitRequest,
    current_user: User = Depends(require_student),
    lifecycle: RequestLifecycle = Depends(get_request_lifecycle),
):
    outcome = lifecycle.submit(current_user.userid, data.category, data.body, data.semester)
    raise_for_failure(outcome)
    return to_response(outcome)


@router.get('/mine', response_model=MyRequestsResponse)
def list_my_requests(
    semester: str | None = Query(default=None),
    current_user: User = Depends(require_student),
    lifecycle: RequestLifecycle = Depends(get_request_lifecycle),
):
    partition = partition_by_status(lifecycle.list_by_user(current_user.userid), semester=semester)
    return MyRequestsResponse(
        userid=current_user.userid,
        selected_semester=semester,
        pending=[to_response(request) for request in partition.pending],
        actioned=[to_response(request) for request in partition.actioned],
        cancelled=[to_response(request) for request in partition.cancelled],
    )


@router.post('/{request_id}/cancel', response_model=RequestResponse)
def cancel_request(
    request_id: int,
    current_user: User = Depends(require_student),
    lifecycle: RequestLifecycle = Depends(get_request_lifecycle),
):
    outcome = lifecycle.cancel(request_id, current_user.userid)
    raise_for_failure(outcome, auth_status=status.HTTP_403_FORBIDDEN)
    return to_response(outcome)


@router.get('/dashboard', response_model=DashboardResponse)
def staff_dashboard(
    current_user: User = Depends(require_staff),
    lifecycle: RequestLifecycle = Depends(get_request_lifecycle),
):
    return DashboardResponse(
        userid=current_user.userid,
        name=current_user.name,
        queues=lifecycle.pending_counts_by_category(),
    )


@router.get('/queue/{category}', response_model=QueueResponse, dependencies=[Depends(require_staff)])
def category_queue(
    category: str,
    session: UserSession = Depends(get_current_session),
    lifecycle: RequestLifecycle = Depends(get_request_lifecycle),
):
    pending = lifecycle.list_pending_in_category(category)
    raise_for_failure(pending)
    return QueueResponse(
        category=category,
        requests=[to_response(request) for request in pending],
        csrf_token=session.csrf_token,
    )


@router.post('/{request_id}/action', response_model=RequestResponse)
def action_request(
    request_id: int,
    data: ActionRequest,
    current_user: User = Depends(require_staff),
    session: UserSession = Depends(get_current_session),
    auth: AuthEngine = Depends(get_auth_engine),
    lifecycle: RequestLifecycle = Depends(get_request_lifecycle),
):
    _require_csrf(session, data.csrf_token, auth)
    outcome = lifecycle.act(request_id, data.action, data.note, current_user.userid)
    raise_for_failure(outcome, auth_status=status.HTTP_403_FORBIDDEN)
    return to_response(outcome)


@router.post('/{request_id}/note', response_model=RequestResponse, dependencies=[Depends(require_staff)])
def annotate_request(
    request_id: int,
    data: NoteRequest,
    session: UserSession = Depends(get_current_session),
    auth: AuthEngine = Depends(get_auth_engine),
    lifecycle: RequestLifecycle = Depends(get_request_lifecycle),
):
    _require_csrf(session, data.csrf_token, auth)
    outcome = lifecycle.annotate(request_id, data.note)
    raise_for_failure(outcome)
    return to_response(outcome)


@router.get('/random', response_model=RequestResponse, dependencies=[Depends(require_staff)])
def random_pending_request(lifecycle: RequestLifecycle = Depends(get_request_lifecycle)):
    request = lifecycle.pick_random_pending()
    if request is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='There are no pending requests.')
    return to_response(request)
