from fastapi import HTTPException, status

from backend.core.errors import AuthFailure, CsrfMismatch, IllegalTransition, NotFound, ValidationError, is_failure


HTTP_419_CSRF_MISMATCH = 419


def raise_for_failure(outcome: object, auth_status: int = status.HTTP_401_UNAUTHORIZED) -> None:
    """Translate a tagged failure into the HTTPException the routes return."""
    if not is_failure(outcome):
        return
    if isinstance(outcome, ValidationError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=outcome.reason)
    if isinstance(outcome, AuthFailure):
        raise HTTPException(status_code=auth_status, detail=outcome.message)
    if isinstance(outcome, CsrfMismatch):
        raise HTTPException(status_code=HTTP_419_CSRF_MISMATCH, detail=outcome.message)
    if isinstance(outcome, NotFound):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=outcome.message)
    if isinstance(outcome, IllegalTransition):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=outcome.message)
