"""JSON API controllers.

Controllers are intentionally thin: they accept requests, delegate to
services, and map service errors onto HTTP status codes.

Endpoints implemented:
- POST   /auth/register
- POST   /auth/login
- GET    /api/products
- GET    /api/products/{id}
- POST   /api/products
- PATCH  /api/products/{id}
- DELETE /api/products/{id}
- POST   /api/products/{id}/image
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, Response, UploadFile
from sqlmodel import Session

from . import models, repositories, services
from .accounts import client_key, enforce_login_rate_limit, login_throttle
from .auth import get_current_user
from .config import settings
from .database import get_session
from .schemas import ProductIn, ProductOut, ProductPage, ProductPatch, RegisterIn, TokenOut, UserOut

router = APIRouter()
logger = logging.getLogger("storefront.api")

MAX_OFFSET = 2 ** 31


def _get_product(db: Session, product_id: int) -> models.Product:
    product = repositories.ProductRepository(db).get(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail='product not found')
    return product


@router.post('/auth/register', response_model=UserOut, status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_session)):
    """Register a new user; a taken username is a 400."""
    try:
        return services.AuthService(db).register(payload.username, payload.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post('/auth/login', response_model=TokenOut)
def login(payload: RegisterIn, request: Request, db: Session = Depends(get_session)):
    """Authenticate a user and return a short-lived JWT token.

    The returned token contains `user_id` and `username` and is signed
    using the configured JWT secret.
    """
    enforce_login_rate_limit(request)
    token = services.AuthService(db).authenticate(payload.username, payload.password)
    if not token:
        raise HTTPException(status_code=401, detail='invalid credentials')
    login_throttle.clear(client_key(request))
    return {'access_token': token}


@router.get('/api/products', response_model=ProductPage)
def list_products(q: Optional[str] = None, limit: int = Query(20, ge=1, le=100), offset: int = Query(0, ge=0, le=MAX_OFFSET),
                  db: Session = Depends(get_session)):
    total, products = repositories.ProductRepository(db).search(q=q, limit=limit, offset=offset)
    return {'count': total, 'results': products}


@router.get('/api/products/{product_id}', response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_session)):
    return _get_product(db, product_id)


@router.post('/api/products', response_model=ProductOut, status_code=201)
def create_product(payload: ProductIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    try:
        return services.ProductService(db).create(payload.model_dump(), owner=user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch('/api/products/{product_id}', response_model=ProductOut)
def update_product(product_id: int, payload: ProductPatch, db: Session = Depends(get_session),
                   user: models.User = Depends(get_current_user)):
    product = _get_product(db, product_id)
    try:
        return services.ProductService(db).update(product, payload.model_dump(exclude_unset=True), user)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete('/api/products/{product_id}', status_code=204)
def delete_product(product_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    product = _get_product(db, product_id)
    try:
        services.ProductService(db).delete(product, user)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return Response(status_code=204)


@router.post('/api/products/{product_id}/image', response_model=ProductOut)
def upload_product_image(product_id: int, file: UploadFile = File(...), db: Session = Depends(get_session),
                         user: models.User = Depends(get_current_user)):
    """Attach an image to a product, replacing any previous one."""
    product = _get_product(db, product_id)
    if not file.filename:
        raise HTTPException(status_code=400, detail='no file')
    payload = file.file.read(settings.MAX_UPLOAD_BYTES + 1)
    try:
        return services.ProductService(db).set_image(product, payload, file.filename, user)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
