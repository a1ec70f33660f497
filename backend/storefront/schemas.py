"""Pydantic request/response schemas used by the JSON API.

Schemas keep API input/output shapes stable; field-level product rules
live in `forms.ProductFields` so the HTML and JSON paths agree.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class RegisterIn(BaseModel):
    """Payload for user registration/login endpoints."""
    username: str
    password: str


class TokenOut(BaseModel):
    """Authentication response containing an access token."""
    access_token: str
    token_type: str = "bearer"


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    is_staff: bool = False


class ProductIn(BaseModel):
    """Request body for creating a product."""
    name: str
    price: Decimal
    description: Optional[str] = None


class ProductPatch(BaseModel):
    """Partial update; omitted fields are left unchanged."""
    name: Optional[str] = None
    price: Optional[Decimal] = None
    description: Optional[str] = None


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    image_url: Optional[str] = None
    owner_id: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class ProductPage(BaseModel):
    """A page of products plus the total number of matches."""
    count: int
    results: List[ProductOut]
