"""HTML form handling on top of pydantic validation.

Forms bind raw submitted data (strings from `request.form()` plus any
uploaded files), validate it with a pydantic model and expose the
classic `is_valid()` / `errors` / `cleaned_data` trio to views.
"""

from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ValidationError, field_validator
from sqlmodel import Session

from . import models, repositories
from .utils.media import validate_image, save_upload, delete_media

NAME_MAX_LENGTH = 200
PRICE_MAX = Decimal("99999999.99")


def _error_messages(exc: ValidationError) -> Dict[str, List[str]]:
    """Flatten pydantic errors into `{field: [message, ...]}`."""
    out: Dict[str, List[str]] = {}
    for err in exc.errors():
        field = str(err['loc'][0]) if err.get('loc') else '__all__'
        ctx_error = (err.get('ctx') or {}).get('error')
        msg = str(ctx_error) if ctx_error is not None else err['msg']
        out.setdefault(field, []).append(msg)
    return out


def parse_price(raw) -> Decimal:
    """Parse a user-entered price into a 2-place Decimal."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValueError('This field is required.')
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        raise ValueError('Enter a number.')
    if not value.is_finite():
        raise ValueError('Enter a number.')
    if value < 0:
        raise ValueError('Ensure this value is greater than or equal to 0.')
    if value > PRICE_MAX:
        raise ValueError(f'Ensure this value is less than or equal to {PRICE_MAX}.')
    if value.as_tuple().exponent < -2:
        raise ValueError('Ensure that there are no more than 2 decimal places.')
    return value.quantize(Decimal("0.01"))


class ProductFields(BaseModel):
    """Validated product attributes."""
    name: str
    price: Decimal
    description: Optional[str] = None

    @field_validator('name', mode='before')
    @classmethod
    def _clean_name(cls, v):
        v = '' if v is None else str(v).strip()
        if not v:
            raise ValueError('This field is required.')
        if len(v) > NAME_MAX_LENGTH:
            raise ValueError(f'Ensure this value has at most {NAME_MAX_LENGTH} characters (it has {len(v)}).')
        return v

    @field_validator('price', mode='before')
    @classmethod
    def _clean_price(cls, v):
        return parse_price(v)

    @field_validator('description', mode='before')
    @classmethod
    def _clean_description(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None


class ProductForm:
    """Create or edit a `Product` from submitted form data.

    `files` maps field names to `(payload, filename)` tuples; only
    `image` is recognised. Pass `instance` to edit an existing product.
    """

    def __init__(self, data: Optional[dict] = None, files: Optional[Dict[str, Tuple[bytes, str]]] = None,
                 instance: Optional[models.Product] = None):
        self.instance = instance
        self.is_bound = data is not None
        self.data = dict(data or {})
        self.files = {k: v for k, v in (files or {}).items() if v and v[0]}
        self.errors: Dict[str, List[str]] = {}
        self.cleaned_data: dict = {}
        self._validated = False

    @property
    def initial(self) -> dict:
        """Values to pre-fill the form with when rendering."""
        if self.is_bound:
            return self.data
        if self.instance is not None:
            return {
                'name': self.instance.name,
                'price': f"{self.instance.price:.2f}" if self.instance.price is not None else '',
                'description': self.instance.description or '',
            }
        return {}

    def is_valid(self) -> bool:
        if not self.is_bound:
            return False
        self.errors = {}
        self.cleaned_data = {}
        try:
            fields = ProductFields(
                name=self.data.get('name'),
                price=self.data.get('price'),
                description=self.data.get('description'),
            )
            self.cleaned_data = fields.model_dump()
        except ValidationError as exc:
            self.errors.update(_error_messages(exc))
        image = self.files.get('image')
        if image:
            payload, filename = image
            try:
                validate_image(payload, filename)
                self.cleaned_data['image'] = image
            except ValueError as e:
                self.errors.setdefault('image', []).append(str(e))
        self._validated = not self.errors
        return self._validated

    def save(self, session: Session, owner: Optional[models.User] = None) -> models.Product:
        """Persist the validated data and return the product."""
        if not self._validated:
            raise ValueError('cannot save a form that has not been validated')
        repo = repositories.ProductRepository(session)
        image = self.cleaned_data.get('image')
        stored_image = save_upload(*image) if image else None
        old_image = None
        try:
            if self.instance is None:
                product = models.Product(
                    name=self.cleaned_data['name'],
                    price=self.cleaned_data['price'],
                    description=self.cleaned_data.get('description'),
                    image=stored_image,
                    owner_id=owner.id if owner else None,
                )
                return repo.create(product)
            product = self.instance
            product.name = self.cleaned_data['name']
            product.price = self.cleaned_data['price']
            product.description = self.cleaned_data.get('description')
            if stored_image:
                old_image = product.image
                product.image = stored_image
            product = repo.save(product)
        except Exception:
            # the row was never written; drop the orphaned upload
            if stored_image:
                if self.instance is not None:
                    self.instance.image = old_image
                delete_media(stored_image)
            raise
        if old_image:
            delete_media(old_image)
        return product


class LoginForm:
    """Username/password form shared by the login and register pages."""

    def __init__(self, data: Optional[dict] = None):
        self.data = dict(data or {})
        self.errors: Dict[str, List[str]] = {}
        self.cleaned_data: dict = {}

    @property
    def initial(self) -> dict:
        return {'username': self.data.get('username', '')}

    def is_valid(self) -> bool:
        self.errors = {}
        username = (self.data.get('username') or '').strip()
        password = self.data.get('password') or ''
        if not username:
            self.errors['username'] = ['This field is required.']
        if not password:
            self.errors['password'] = ['This field is required.']
        if not self.errors:
            self.cleaned_data = {'username': username, 'password': password}
        return not self.errors

    def add_error(self, field: str, message: str):
        self.errors.setdefault(field, []).append(message)
