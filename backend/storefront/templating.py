"""Jinja2 template environment shared by the HTML routers.

Sets up template loading from the package `templates/` directory, the
`currency` and `date` filters and the `STATIC_URL` / `MEDIA_URL`
globals.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from fastapi import Request
from fastapi.templating import Jinja2Templates

from .config import settings

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


def _currency_filter(value: Any, symbol: str = "$") -> str:
    """Format a price with two decimal places and thousands separators."""
    if value is None:
        return ""
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return str(value)
    return f"{symbol}{amount:,.2f}"


def _date_filter(value: Any, fmt: str = "%d %b %Y") -> str:
    """Format a date or datetime."""
    if value is None:
        return ""
    if isinstance(value, (date, datetime)):
        return value.strftime(fmt)
    return str(value)


templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.filters["currency"] = _currency_filter
templates.env.filters["date"] = _date_filter
templates.env.globals["STATIC_URL"] = settings.STATIC_URL
templates.env.globals["MEDIA_URL"] = settings.MEDIA_URL


def render(request: Request, name: str, context: dict | None = None, status_code: int = 200, user=None):
    """Render `name` with the current user exposed as `user`."""
    ctx = {"user": user}
    ctx.update(context or {})
    return templates.TemplateResponse(request, name, ctx, status_code=status_code)
