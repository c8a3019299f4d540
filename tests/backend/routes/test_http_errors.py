import json

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from backend.core.errors import (
    AuthFailure,
    CsrfMismatch,
    IllegalTransition,
    NotFound,
    StoreUnavailable,
    ValidationError,
    is_failure,
)
from backend.main import store_unavailable_handler
from backend.routes.http_errors import raise_for_failure


def _request(path: str = '/requests/mine') -> Request:
    return Request(
        {
            'type': 'http',
            'method': 'GET',
            'scheme': 'http',
            'server': ('testserver', 80),
            'path': path,
            'root_path': '',
            'query_string': b'',
            'headers': [],
        }
    )


def test_store_unavailable_handler_returns_503() -> None:
    response = store_unavailable_handler(_request(), StoreUnavailable('RequestStore.get_request failed'))

    assert response.status_code == 503
    assert json.loads(response.body) == {
        'detail': 'Database unavailable. Verify DATABASE_URL and database credentials.'
    }


@pytest.mark.parametrize(
    ('outcome', 'status_code', 'detail'),
    [
        (ValidationError('Unknown request category'), 400, 'Unknown request category'),
        (AuthFailure(), 401, 'Your username or password is incorrect'),
        (CsrfMismatch(), 419, 'CSRF TOKEN MISMATCH'),
        (NotFound(), 404, 'Request not found.'),
        (IllegalTransition(7, 'Resolved'), 409, 'Request 7 is already Resolved and cannot change.'),
    ],
)
def test_raise_for_failure_maps_each_failure(outcome, status_code, detail) -> None:
    assert is_failure(outcome)

    with pytest.raises(HTTPException) as exception_info:
        raise_for_failure(outcome)

    assert exception_info.value.status_code == status_code
    assert exception_info.value.detail == detail


def test_raise_for_failure_uses_route_auth_status() -> None:
    with pytest.raises(HTTPException) as exception_info:
        raise_for_failure(AuthFailure('Only staff can action requests.'), auth_status=403)

    assert exception_info.value.status_code == 403


@pytest.mark.parametrize('outcome', [None, object(), ['a request'], 'Pending'])
def test_raise_for_failure_ignores_successful_outcomes(outcome) -> None:
    assert not is_failure(outcome)
    assert raise_for_failure(outcome) is None
