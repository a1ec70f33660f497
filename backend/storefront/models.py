"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Each class maps to a table; products optionally point at the user who
created them.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlmodel import SQLModel, Field, Relationship

from .config import settings


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """A registered user.

    Fields:
    - `username`: unique login name
    - `password_hash`: hashed password string (never store plaintext)
    - `is_staff`: grants access to the admin pages
    - `is_active`: inactive users cannot log in
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, nullable=False, unique=True, max_length=150)
    password_hash: str
    is_staff: bool = False
    is_active: bool = True
    created_at: datetime = Field(default_factory=_utcnow)
    products: List['Product'] = Relationship(back_populates='owner')


class Product(SQLModel, table=True):
    """A catalog entry with a name, a price and a creation timestamp."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, max_length=200)
    description: Optional[str] = None
    price: Decimal = Field(default=Decimal("0.00"), max_digits=10, decimal_places=2)
    image: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: Optional[datetime] = None
    owner_id: Optional[int] = Field(default=None, foreign_key='user.id')
    owner: Optional[User] = Relationship(back_populates='products')

    def __str__(self):
        return self.name

    @property
    def image_url(self) -> Optional[str]:
        """Public URL of the uploaded image, served under `MEDIA_URL`."""
        if not self.image:
            return None
        return f"{settings.MEDIA_URL}{self.image}"

    def touch(self):
        self.updated_at = _utcnow()
