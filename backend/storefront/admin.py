"""Staff-only management pages for products and users."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import RedirectResponse
from sqlmodel import Session

from . import models, repositories, services
from .auth import require_staff
from .database import get_session
from .forms import ProductForm
from .templating import render
from .views import get_product_or_404, product_form_input

router = APIRouter(prefix='/admin', dependencies=[Depends(require_staff)])
logger = logging.getLogger("storefront.admin")

ADMIN_PAGE_SIZE = 50


@router.get('/')
def dashboard(request: Request, db: Session = Depends(get_session), user: models.User = Depends(require_staff)):
    products = repositories.ProductRepository(db)
    return render(request, 'admin/index.html', {
        'product_count': products.count(),
        'user_count': repositories.UserRepository(db).count(),
        'latest': products.latest(5),
    }, user=user)


@router.get('/products/')
def product_changelist(request: Request, q: Optional[str] = None, db: Session = Depends(get_session),
                       user: models.User = Depends(require_staff)):
    total, products = repositories.ProductRepository(db).search(q=q, limit=ADMIN_PAGE_SIZE)
    return render(request, 'admin/product_list.html', {'products': products, 'total': total, 'q': q or ''}, user=user)


@router.get('/products/add/')
def product_add_form(request: Request, user: models.User = Depends(require_staff)):
    return render(request, 'admin/product_form.html', {'form': ProductForm(), 'product': None}, user=user)


@router.post('/products/add/')
def product_add(request: Request, name: Optional[str] = Form(default=None), price: Optional[str] = Form(default=None),
                description: Optional[str] = Form(default=None), image: Optional[UploadFile] = File(default=None),
                db: Session = Depends(get_session), user: models.User = Depends(require_staff)):
    data, files = product_form_input(name, price, description, image)
    form = ProductForm(data=data, files=files)
    if not form.is_valid():
        return render(request, 'admin/product_form.html', {'form': form, 'product': None}, status_code=400, user=user)
    product = form.save(db, owner=user)
    logger.info("admin_product_added id=%s by=%s", product.id, user.id)
    return RedirectResponse(url='/admin/products/', status_code=303)


@router.get('/products/{product_id}/change/')
def product_change_form(request: Request, product_id: int, db: Session = Depends(get_session),
                        user: models.User = Depends(require_staff)):
    product = get_product_or_404(db, product_id)
    return render(request, 'admin/product_form.html', {'form': ProductForm(instance=product), 'product': product}, user=user)


@router.post('/products/{product_id}/change/')
def product_change(request: Request, product_id: int, name: Optional[str] = Form(default=None),
                   price: Optional[str] = Form(default=None), description: Optional[str] = Form(default=None),
                   image: Optional[UploadFile] = File(default=None), db: Session = Depends(get_session),
                   user: models.User = Depends(require_staff)):
    product = get_product_or_404(db, product_id)
    data, files = product_form_input(name, price, description, image)
    form = ProductForm(data=data, files=files, instance=product)
    if not form.is_valid():
        return render(request, 'admin/product_form.html', {'form': form, 'product': product}, status_code=400, user=user)
    form.save(db)
    logger.info("admin_product_changed id=%s by=%s", product.id, user.id)
    return RedirectResponse(url='/admin/products/', status_code=303)


@router.get('/products/{product_id}/delete/')
def product_delete_confirm(request: Request, product_id: int, db: Session = Depends(get_session),
                           user: models.User = Depends(require_staff)):
    product = get_product_or_404(db, product_id)
    return render(request, 'admin/confirm_delete.html', {'product': product}, user=user)


@router.post('/products/{product_id}/delete/')
def product_delete(product_id: int, db: Session = Depends(get_session), user: models.User = Depends(require_staff)):
    product = get_product_or_404(db, product_id)
    services.ProductService(db).delete(product, user)
    return RedirectResponse(url='/admin/products/', status_code=303)


@router.get('/users/')
def user_list(request: Request, db: Session = Depends(get_session), user: models.User = Depends(require_staff)):
    return render(request, 'admin/user_list.html', {'users': repositories.UserRepository(db).list()}, user=user)
