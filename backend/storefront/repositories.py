"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
products). Repositories return SQLModel objects and perform
commits/refreshes where appropriate.
"""

from typing import List, Optional, Tuple
from sqlmodel import Session, select
from sqlalchemy import func
from . import models


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def save(self, user: models.User) -> models.User:
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_by_username(self, username: str) -> Optional[models.User]:
        """Return a `User` by username or `None` if not found."""
        stmt = select(models.User).where(models.User.username == username)
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)

    def list(self) -> List[models.User]:
        stmt = select(models.User).order_by(models.User.username)
        return self.session.exec(stmt).all()

    def count(self) -> int:
        return self.session.exec(select(func.count()).select_from(models.User)).one()


class ProductRepository:
    """CRUD and listing queries for `Product` records."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, product: models.Product) -> models.Product:
        """Persist a new product and return the managed instance."""
        self.session.add(product)
        self.session.commit()
        self.session.refresh(product)
        return product

    def save(self, product: models.Product) -> models.Product:
        """Flush pending changes on an already managed product."""
        product.touch()
        self.session.add(product)
        self.session.commit()
        self.session.refresh(product)
        return product

    def delete(self, product: models.Product) -> None:
        self.session.delete(product)
        self.session.commit()

    def get(self, product_id: int) -> Optional[models.Product]:
        """Fetch a product by id."""
        return self.session.get(models.Product, product_id)

    def exists_by_name(self, name: str) -> bool:
        """Return True if a product with exactly this name already exists."""
        stmt = select(models.Product.id).where(models.Product.name == name)
        return self.session.exec(stmt).first() is not None

    def search(self, q: Optional[str] = None, limit: int = 20, offset: int = 0) -> Tuple[int, List[models.Product]]:
        """Return `(total, page)` for products whose name contains `q`.

        Matching is case-insensitive; results are ordered newest first
        with the id as tie breaker so pagination is stable.
        """
        stmt = select(models.Product)
        count_stmt = select(func.count()).select_from(models.Product)
        if q:
            cond = models.Product.name.icontains(q.strip(), autoescape=True)
            stmt = stmt.where(cond)
            count_stmt = count_stmt.where(cond)
        stmt = stmt.order_by(models.Product.created_at.desc(), models.Product.id.desc()).offset(offset).limit(limit)
        total = self.session.exec(count_stmt).one()
        return total, self.session.exec(stmt).all()

    def latest(self, limit: int = 5) -> List[models.Product]:
        return self.search(limit=limit)[1]

    def count(self) -> int:
        return self.session.exec(select(func.count()).select_from(models.Product)).one()
