"""Browser login, registration and logout pages.

A successful login stores the JWT in an HttpOnly cookie so the regular
`get_current_user` dependency authenticates subsequent page requests.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlmodel import Session

from . import models, services
from .auth import COOKIE_NAME, get_optional_user
from .config import settings
from .database import get_session
from .forms import LoginForm
from .templating import render
from .utils.rate_limit import LoginThrottle

router = APIRouter(prefix='/accounts')
logger = logging.getLogger("storefront.accounts")

login_throttle = LoginThrottle(lambda: settings.LOGIN_RATE_LIMIT_PER_MIN)

DEFAULT_REDIRECT = '/products/'


def client_key(request: Request) -> str:
    return request.client.host if request.client else 'unknown'


def enforce_login_rate_limit(request: Request) -> None:
    """Raise 429 once a client exceeds the per-minute login attempt budget."""
    allowed, retry_after = login_throttle.hit(client_key(request))
    if not allowed:
        logger.warning("login_throttled client=%s retry_after=%s", client_key(request), retry_after)
        raise HTTPException(
            status_code=429,
            detail=f"too many login attempts; retry after {retry_after}s",
            headers={"Retry-After": str(retry_after)},
        )


def safe_next(url: Optional[str]) -> str:
    """Only allow same-site relative redirect targets."""
    if not url or not url.startswith('/') or url.startswith('//') or '\\' in url:
        return DEFAULT_REDIRECT
    return url


def credentials(username: Optional[str], password: Optional[str]) -> dict:
    return {k: v for k, v in (('username', username), ('password', password)) if v is not None}


def login_response(user: models.User, next_url: Optional[str]) -> RedirectResponse:
    response = RedirectResponse(url=safe_next(next_url), status_code=303)
    response.set_cookie(
        COOKIE_NAME,
        services.issue_token(user),
        max_age=settings.JWT_EXPIRE_HOURS * 3600,
        httponly=True,
        secure=not settings.is_dev,
        samesite='lax',
    )
    return response


@router.get('/login/')
def login_page(request: Request, next: Optional[str] = None, user: Optional[models.User] = Depends(get_optional_user)):
    return render(request, 'accounts/login.html', {'form': LoginForm(), 'next': next or ''}, user=user)


@router.post('/login/')
def login_submit(request: Request, username: Optional[str] = Form(default=None), password: Optional[str] = Form(default=None),
                 next: Optional[str] = Form(default=None), db: Session = Depends(get_session)):
    enforce_login_rate_limit(request)
    form = LoginForm(data=credentials(username, password))
    if form.is_valid():
        user = services.AuthService(db).check_credentials(form.cleaned_data['username'], form.cleaned_data['password'])
        if user:
            login_throttle.clear(client_key(request))
            logger.info("login_ok user=%s via=form", user.id)
            return login_response(user, next)
        form.add_error('__all__', 'Please enter a correct username and password.')
    return render(request, 'accounts/login.html', {'form': form, 'next': next or ''}, status_code=400)


@router.get('/register/')
def register_page(request: Request, user: Optional[models.User] = Depends(get_optional_user)):
    return render(request, 'accounts/register.html', {'form': LoginForm()}, user=user)


@router.post('/register/')
def register_submit(request: Request, username: Optional[str] = Form(default=None),
                    password: Optional[str] = Form(default=None), db: Session = Depends(get_session)):
    form = LoginForm(data=credentials(username, password))
    if form.is_valid():
        try:
            user = services.AuthService(db).register(form.cleaned_data['username'], form.cleaned_data['password'])
        except ValueError as e:
            form.add_error('__all__', str(e))
        else:
            return login_response(user, DEFAULT_REDIRECT)
    return render(request, 'accounts/register.html', {'form': form}, status_code=400)


@router.post('/logout/')
def logout():
    response = RedirectResponse(url=DEFAULT_REDIRECT, status_code=303)
    response.delete_cookie(COOKIE_NAME)
    return response
