"""Catalog pages: server-rendered product list, detail and edit forms.

Routes:
- GET  /                         -> redirect to the product list
- GET  /products/                -> paginated list with `q` search
- GET  /products/new/            -> empty product form (login required)
- POST /products/new/            -> create
- GET  /products/{id}/           -> detail
- GET  /products/{id}/edit/      -> edit form (owner or staff)
- POST /products/{id}/edit/      -> update
- POST /products/{id}/delete/    -> delete (owner or staff)
"""

import logging
import math
from typing import Dict, Optional, Tuple

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import RedirectResponse
from sqlmodel import Session

from . import models, repositories, services
from .auth import get_optional_user, login_required
from .config import settings
from .database import get_session
from .forms import ProductForm
from .templating import render

router = APIRouter()
logger = logging.getLogger("storefront.views")

PAGE_SIZE = 20
MAX_PAGE = 10 ** 6


def product_form_input(name: Optional[str], price: Optional[str], description: Optional[str],
                       image: Optional[UploadFile]) -> Tuple[Dict[str, str], Dict[str, Tuple[bytes, str]]]:
    """Bundle submitted product fields and the image into `ProductForm` input.

    The upload is read at most one byte past `MAX_UPLOAD_BYTES` so an
    oversized file is rejected without buffering all of it.
    """
    data = {k: v for k, v in (('name', name), ('price', price), ('description', description)) if v is not None}
    files = {}
    if image is not None and image.filename:
        files['image'] = (image.file.read(settings.MAX_UPLOAD_BYTES + 1), image.filename)
    return data, files


def get_product_or_404(session: Session, product_id: int) -> models.Product:
    product = repositories.ProductRepository(session).get(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail='product not found')
    return product


def _check_can_modify(user: models.User, product: models.Product):
    if not services.can_modify(user, product):
        raise HTTPException(status_code=403, detail='you do not have permission to modify this product')


@router.get('/')
def index():
    return RedirectResponse(url='/products/', status_code=302)


@router.get('/products/')
def product_list(request: Request, q: Optional[str] = None, page: int = Query(1, ge=1, le=MAX_PAGE),
                 db: Session = Depends(get_session), user: Optional[models.User] = Depends(get_optional_user)):
    """Newest products first, `PAGE_SIZE` per page."""
    total, products = repositories.ProductRepository(db).search(q=q, limit=PAGE_SIZE, offset=(page - 1) * PAGE_SIZE)
    num_pages = max(1, math.ceil(total / PAGE_SIZE))
    return render(request, 'catalog/product_list.html', {
        'products': products,
        'q': q or '',
        'page': page,
        'num_pages': num_pages,
        'total': total,
    }, user=user)


@router.get('/products/new/')
def product_create_form(request: Request, user: models.User = Depends(login_required)):
    return render(request, 'catalog/product_form.html', {'form': ProductForm(), 'product': None}, user=user)


@router.post('/products/new/')
def product_create(request: Request, name: Optional[str] = Form(default=None), price: Optional[str] = Form(default=None),
                   description: Optional[str] = Form(default=None), image: Optional[UploadFile] = File(default=None),
                   db: Session = Depends(get_session), user: models.User = Depends(login_required)):
    data, files = product_form_input(name, price, description, image)
    form = ProductForm(data=data, files=files)
    if not form.is_valid():
        return render(request, 'catalog/product_form.html', {'form': form, 'product': None}, status_code=400, user=user)
    product = form.save(db, owner=user)
    logger.info("product_created id=%s owner=%s via=form", product.id, user.id)
    return RedirectResponse(url=f'/products/{product.id}/', status_code=303)


@router.get('/products/{product_id}/')
def product_detail(request: Request, product_id: int, db: Session = Depends(get_session),
                   user: Optional[models.User] = Depends(get_optional_user)):
    product = get_product_or_404(db, product_id)
    return render(request, 'catalog/product_detail.html', {
        'product': product,
        'can_modify': services.can_modify(user, product),
    }, user=user)


@router.get('/products/{product_id}/edit/')
def product_edit_form(request: Request, product_id: int, db: Session = Depends(get_session),
                      user: models.User = Depends(login_required)):
    product = get_product_or_404(db, product_id)
    _check_can_modify(user, product)
    return render(request, 'catalog/product_form.html', {'form': ProductForm(instance=product), 'product': product}, user=user)


@router.post('/products/{product_id}/edit/')
def product_edit(request: Request, product_id: int, name: Optional[str] = Form(default=None),
                 price: Optional[str] = Form(default=None), description: Optional[str] = Form(default=None),
                 image: Optional[UploadFile] = File(default=None), db: Session = Depends(get_session),
                 user: models.User = Depends(login_required)):
    product = get_product_or_404(db, product_id)
    _check_can_modify(user, product)
    data, files = product_form_input(name, price, description, image)
    form = ProductForm(data=data, files=files, instance=product)
    if not form.is_valid():
        return render(request, 'catalog/product_form.html', {'form': form, 'product': product}, status_code=400, user=user)
    form.save(db)
    return RedirectResponse(url=f'/products/{product.id}/', status_code=303)


@router.post('/products/{product_id}/delete/')
def product_delete(product_id: int, db: Session = Depends(get_session), user: models.User = Depends(login_required)):
    product = get_product_or_404(db, product_id)
    try:
        services.ProductService(db).delete(product, user)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return RedirectResponse(url='/products/', status_code=303)
