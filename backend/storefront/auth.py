"""Authentication helpers and FastAPI security dependencies.

Tokens are JWTs issued by `services.issue_token`. API clients send them
as a bearer token; browsers carry the same token in the HttpOnly
`access_token` cookie set by the login page. Token verification raises
HTTPExceptions on failure so the helpers can be used directly inside
route dependencies.
"""

from typing import Optional
from urllib.parse import quote

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from sqlmodel import Session

from .config import settings
from .database import get_session
from . import models, repositories

COOKIE_NAME = "access_token"

bearer_scheme = HTTPBearer(auto_error=False)


class LoginRequired(Exception):
    """Raised by HTML dependencies; turned into a redirect to the login page."""
    def __init__(self, next_url: str = "/"):
        self.next_url = next_url

    @property
    def login_url(self) -> str:
        return f"/accounts/login/?next={quote(self.next_url, safe='/')}"


def decode_token(token: str):
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises an HTTPException
    with status 401 on failure.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail='token expired')
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail='invalid token')


def _token_from_request(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(COOKIE_NAME)


def _user_for_token(token: str, session: Session) -> models.User:
    payload = decode_token(token)
    user_id = payload.get('user_id')
    if not user_id:
        raise HTTPException(status_code=401, detail='invalid token payload')
    user = repositories.UserRepository(session).get(user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail='user not found')
    return user


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    session: Session = Depends(get_session),
) -> models.User:
    """FastAPI dependency that returns the authenticated user.

    The bearer token wins over the cookie. Raises HTTPException(401) for
    any authentication issue.
    """
    token = _token_from_request(request, credentials)
    if not token:
        raise HTTPException(status_code=401, detail='not authenticated', headers={'WWW-Authenticate': 'Bearer'})
    return _user_for_token(token, session)


def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    session: Session = Depends(get_session),
) -> Optional[models.User]:
    """Like `get_current_user` but returns `None` for anonymous requests."""
    token = _token_from_request(request, credentials)
    if not token:
        return None
    try:
        return _user_for_token(token, session)
    except HTTPException:
        return None


def login_required(request: Request, user: Optional[models.User] = Depends(get_optional_user)) -> models.User:
    """HTML variant of `get_current_user`: anonymous users are sent to login."""
    if user is None:
        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"
        raise LoginRequired(target)
    return user


def require_staff(user: models.User = Depends(login_required)) -> models.User:
    """Only staff users may pass; others get 403."""
    if not user.is_staff:
        raise HTTPException(status_code=403, detail='staff access required')
    return user
