from fastapi import APIRouter, Cookie, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, field_validator

from backend.auth.dependencies import get_auth_engine, get_current_user
from backend.core import config
from backend.models.session import UserSession
from backend.models.user import User, UserRole
from backend.routes.http_errors import raise_for_failure
from backend.services.auth_engine import RESET_FIELD, AuthEngine

router = APIRouter(tags=['auth'])

DASHBOARDS = {
    UserRole.STAFF: '/requests/dashboard',
    UserRole.STUDENT: '/requests/mine',
}


def _strip(value: str | None) -> str:
    return (value or '').strip()


class RegisterRequest(BaseModel):
    userid: str
    name: str
    password: str
    email: str
    phone: str
    major: str

    @field_validator('userid', 'name', 'email', 'phone', 'major', mode='before')
    @classmethod
    def strip_whitespace(cls, value: str | None) -> str:
        return _strip(value)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()


class LoginRequest(BaseModel):
    userid: str
    password: str

    @field_validator('userid', mode='before')
    @classmethod
    def strip_userid(cls, value: str | None) -> str:
        return _strip(value)


class ForgotPasswordRequest(BaseModel):
    email: str

    @field_validator('email', mode='before')
    @classmethod
    def normalize_email(cls, value: str | None) -> str:
        return _strip(value).lower()


class ResetPasswordRequest(BaseModel):
    reset_key: str
    password: str
    repeat_password: str


class UserResponse(BaseModel):
    userid: str
    name: str
    email: str
    phone: str | None = None
    major: str | None = None
    role: UserRole
    verified: bool

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    userid: str
    role: UserRole
    dashboard: str


class MessageResponse(BaseModel):
    message: str


def _set_session_cookie(response: Response, session: UserSession) -> None:
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=session.key,
        max_age=config.SESSION_TTL_MINUTES * 60,
        httponly=True,
        secure=config.SESSION_COOKIE_SECURE,
        samesite='lax',
    )


@router.post('/register', response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, auth: AuthEngine = Depends(get_auth_engine)):
    outcome = auth.register(data.userid, data.name, data.password, data.email, data.phone, data.major)
    raise_for_failure(outcome)
    return outcome


@router.post('/login', response_model=LoginResponse)
def login(data: LoginRequest, response: Response, auth: AuthEngine = Depends(get_auth_engine)):
    session = auth.authenticate(data.userid, data.password)
    raise_for_failure(session)

    user = auth.current_user(session.key)
    raise_for_failure(user)

    _set_session_cookie(response, session)
    return LoginResponse(userid=user.userid, role=user.role, dashboard=DASHBOARDS[user.role])


@router.post('/logout', response_model=MessageResponse)
def logout(
    response: Response,
    session_key: str | None = Cookie(default=None, alias=config.SESSION_COOKIE_NAME),
    auth: AuthEngine = Depends(get_auth_engine),
):
    auth.terminate_session(session_key)
    response.delete_cookie(config.SESSION_COOKIE_NAME)
    return MessageResponse(message='You have been logged out.')


@router.get('/verify', response_model=MessageResponse)
def verify_email(key: str = Query(default=''), auth: AuthEngine = Depends(get_auth_engine)):
    outcome = auth.confirm_verification(key)
    raise_for_failure(outcome, auth_status=status.HTTP_400_BAD_REQUEST)
    return MessageResponse(message='Thank you for verifying. You can log in')


@router.post('/forgot-password', response_model=MessageResponse)
def forgot_password(data: ForgotPasswordRequest, auth: AuthEngine = Depends(get_auth_engine)):
    if not auth.request_password_reset(data.email):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='This email does not exist')
    return MessageResponse(message='Password reset email sent, Check your inbox')


@router.get('/reset-password', response_model=MessageResponse)
def check_reset_key(key: str = Query(default=''), auth: AuthEngine = Depends(get_auth_engine)):
    if auth.resolve_challenge(key, RESET_FIELD) is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Invalid or expired password reset email, please try again',
        )
    return MessageResponse(message='Reset key accepted.')


@router.post('/reset-password', response_model=MessageResponse)
def reset_password(data: ResetPasswordRequest, auth: AuthEngine = Depends(get_auth_engine)):
    outcome = auth.reset_password(data.reset_key, data.password, data.repeat_password)
    raise_for_failure(outcome, auth_status=status.HTTP_400_BAD_REQUEST)
    return MessageResponse(message='Password changed successfully!')


@router.get('/me', response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user
