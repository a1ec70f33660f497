"""Business logic services used by HTTP controllers and management commands.

Services are intentionally thin: they perform validation, enforce
ownership rules and persist aggregates via repositories. Validation
failures raise `ValueError`; ownership violations raise
`PermissionError`.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from passlib.context import CryptContext
from sqlmodel import Session

from . import models, repositories
from .config import settings
from .forms import ProductForm, ProductFields
from .utils.media import save_upload, delete_media
from .utils.parsers import parse_products_csv

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
MIN_PASSWORD_LENGTH = 4

logger = logging.getLogger("storefront.services")


def issue_token(user: models.User) -> str:
    """Return a signed JWT for `user` valid for `JWT_EXPIRE_HOURS`."""
    expire = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRE_HOURS)
    payload = {"user_id": user.id, "username": user.username, "exp": int(expire.timestamp())}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


class AuthService:
    """Authentication related operations (register, authenticate, superusers)."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def register(self, username: str, password: str, is_staff: bool = False) -> models.User:
        """Create a new user with a hashed password.

        Raises ValueError for an empty username, a short password or a
        username that is already taken.
        """
        username = (username or "").strip()
        if not username:
            raise ValueError("username is required")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValueError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
        if self.user_repo.get_by_username(username):
            raise ValueError("username already taken")
        hashed = PWD_CTX.hash(password)
        u = models.User(username=username, password_hash=hashed, is_staff=is_staff)
        user = self.user_repo.create(u)
        logger.info("user_registered id=%s staff=%s", user.id, user.is_staff)
        return user

    def check_credentials(self, username: str, password: str) -> Optional[models.User]:
        """Return the active user matching the credentials, else `None`."""
        user = self.user_repo.get_by_username((username or "").strip())
        if not user or not user.is_active:
            return None
        if not PWD_CTX.verify(password, user.password_hash):
            return None
        return user

    def authenticate(self, username: str, password: str) -> Optional[str]:
        """Verify credentials and return a signed JWT token on success.

        Returns `None` if authentication fails.
        """
        user = self.check_credentials(username, password)
        if not user:
            return None
        return issue_token(user)

    def create_superuser(self, username: str, password: str) -> models.User:
        """Create a staff user, or promote and re-password an existing one."""
        existing = self.user_repo.get_by_username((username or "").strip())
        if existing is None:
            return self.register(username, password, is_staff=True)
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValueError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
        existing.is_staff = True
        existing.is_active = True
        existing.password_hash = PWD_CTX.hash(password)
        logger.info("user_promoted id=%s", existing.id)
        return self.user_repo.save(existing)


def can_modify(user: Optional[models.User], product: models.Product) -> bool:
    """Staff may change anything; other users only what they own."""
    if user is None:
        return False
    return user.is_staff or (product.owner_id is not None and product.owner_id == user.id)


class ProductService:
    """Product creation, updates and deletion with ownership checks."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ProductRepository(session)

    def get(self, product_id: int) -> Optional[models.Product]:
        return self.repo.get(product_id)

    def create(self, data: dict, owner: Optional[models.User] = None) -> models.Product:
        """Validate `data` like the HTML form does and persist it."""
        form = ProductForm(data={k: v for k, v in data.items() if v is not None})
        if not form.is_valid():
            raise ValueError(_format_errors(form.errors))
        product = form.save(self.session, owner=owner)
        logger.info("product_created id=%s owner=%s", product.id, product.owner_id)
        return product

    def update(self, product: models.Product, changes: dict, user: Optional[models.User]) -> models.Product:
        """Apply a partial update; only keys present in `changes` are touched."""
        self._check_owner(product, user)
        merged = {
            'name': product.name,
            'price': product.price,
            'description': product.description,
        }
        merged.update({k: v for k, v in changes.items() if k in merged})
        fields = _validate_fields(merged)
        product.name = fields.name
        product.price = fields.price
        product.description = fields.description
        return self.repo.save(product)

    def set_image(self, product: models.Product, payload: bytes, filename: str, user: Optional[models.User]) -> models.Product:
        self._check_owner(product, user)
        stored = save_upload(payload, filename)
        old = product.image
        product.image = stored
        try:
            product = self.repo.save(product)
        except Exception:
            product.image = old
            delete_media(stored)
            raise
        delete_media(old)
        return product

    def delete(self, product: models.Product, user: Optional[models.User]) -> None:
        self._check_owner(product, user)
        image = product.image
        pid = product.id
        self.repo.delete(product)
        delete_media(image)
        logger.info("product_deleted id=%s by=%s", pid, user.id if user else None)

    def import_csv(self, file_bytes: bytes, deduplicate: bool = True, owner: Optional[models.User] = None,
                   dry_run: bool = False) -> dict:
        """Create products from CSV rows.

        Returns a summary with the number of created rows, skipped
        duplicates (by exact name, when `deduplicate` is set) and per-row
        validation `errors`.
        """
        rows = parse_products_csv(file_bytes)
        seen = set()
        created = 0
        skipped = 0
        errors = []
        for idx, row in enumerate(rows):
            try:
                fields = _validate_fields(row)
            except ValueError as e:
                errors.append({'index': idx, 'error': str(e), 'item': row})
                continue
            if deduplicate and (fields.name in seen or self.repo.exists_by_name(fields.name)):
                skipped += 1
                continue
            seen.add(fields.name)
            if not dry_run:
                self.repo.create(models.Product(
                    name=fields.name,
                    price=fields.price,
                    description=fields.description,
                    owner_id=owner.id if owner else None,
                ))
            created += 1
        return {'created': created, 'skipped': skipped, 'errors': errors}

    def _check_owner(self, product: models.Product, user: Optional[models.User]):
        if not can_modify(user, product):
            raise PermissionError("you do not have permission to modify this product")


def _validate_fields(data: dict) -> ProductFields:
    form = ProductForm(data={
        'name': data.get('name'),
        'price': data.get('price'),
        'description': data.get('description'),
    })
    if not form.is_valid():
        raise ValueError(_format_errors(form.errors))
    return ProductFields.model_construct(**form.cleaned_data)


def _format_errors(errors: dict) -> str:
    return "; ".join(f"{field}: {' '.join(msgs)}" for field, msgs in errors.items())
