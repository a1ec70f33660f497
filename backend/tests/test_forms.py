from decimal import Decimal

import pytest

from storefront.config import settings
from storefront.forms import LoginForm, ProductForm
from storefront import models, repositories, services

from conftest import make_png


def test_valid_form_cleans_values():
    form = ProductForm(data={'name': '  Mug  ', 'price': '3.5', 'description': ''})
    assert form.is_valid()
    assert form.cleaned_data['name'] == 'Mug'
    assert form.cleaned_data['price'] == Decimal('3.50')
    assert form.cleaned_data['description'] is None


@pytest.mark.parametrize('price, message', [
    ('', 'This field is required.'),
    ('abc', 'Enter a number.'),
    ('-1', 'greater than or equal to 0'),
    ('1.234', 'no more than 2 decimal places'),
])
def test_bad_price_reports_error(price, message):
    form = ProductForm(data={'name': 'Mug', 'price': price})
    assert not form.is_valid()
    assert any(message in m for m in form.errors['price'])


def test_name_required_and_length_limited():
    form = ProductForm(data={'name': '   ', 'price': '1'})
    assert not form.is_valid()
    assert form.errors['name'] == ['This field is required.']
    form = ProductForm(data={'name': 'x' * 201, 'price': '1'})
    assert not form.is_valid()
    assert 'at most 200 characters' in form.errors['name'][0]


def test_unbound_form_is_invalid_and_cannot_save(db_session):
    form = ProductForm()
    assert not form.is_valid()
    with pytest.raises(ValueError):
        form.save(db_session)


def test_invalid_image_is_rejected():
    form = ProductForm(data={'name': 'Mug', 'price': '1'}, files={'image': (b'not an image', 'mug.png')})
    assert not form.is_valid()
    assert 'image' in form.errors


def test_save_creates_then_updates(db_session):
    form = ProductForm(data={'name': 'Form Mug', 'price': '2.00'}, files={'image': (make_png(), 'mug.png')})
    assert form.is_valid()
    product = form.save(db_session)
    assert product.id is not None
    assert product.image.startswith('products/')

    edit = ProductForm(data={'name': 'Form Mug v2', 'price': '2.50'}, instance=product)
    assert edit.initial['name'] == 'Form Mug v2'
    assert edit.is_valid()
    updated = edit.save(db_session)
    assert updated.id == product.id
    assert updated.price == Decimal('2.50')
    assert updated.image == product.image
    assert db_session.get(models.Product, product.id).name == 'Form Mug v2'


def test_initial_from_instance():
    product = models.Product(name='Kettle', price=Decimal('7'), description='Steel')
    form = ProductForm(instance=product)
    assert form.initial == {'name': 'Kettle', 'price': '7.00', 'description': 'Steel'}


def test_login_form_requires_both_fields():
    form = LoginForm(data={'username': ' bob ', 'password': ''})
    assert not form.is_valid()
    assert 'password' in form.errors
    form = LoginForm(data={'username': ' bob ', 'password': 'pw'})
    assert form.is_valid()
    assert form.cleaned_data['username'] == 'bob'


def _stored_images():
    folder = settings.MEDIA_ROOT / 'products'
    return set(p.name for p in folder.iterdir()) if folder.exists() else set()


def _failing_save(self, product):
    raise RuntimeError('database is locked')


def test_failed_edit_keeps_old_image_and_drops_new_upload(db_session, monkeypatch):
    form = ProductForm(data={'name': 'Kept Mug', 'price': '2.00'}, files={'image': (make_png(), 'old.png')})
    assert form.is_valid()
    product = form.save(db_session)
    old_image = product.image
    before = _stored_images()

    monkeypatch.setattr(repositories.ProductRepository, 'save', _failing_save)
    edit = ProductForm(data={'name': 'Kept Mug', 'price': '2.00'}, files={'image': (make_png((8, 8)), 'new.png')},
                       instance=product)
    assert edit.is_valid()
    with pytest.raises(RuntimeError):
        edit.save(db_session)
    assert _stored_images() == before
    assert (settings.MEDIA_ROOT / old_image).exists()
    assert product.image == old_image


def test_failed_set_image_keeps_old_image(db_session, user, monkeypatch):
    form = ProductForm(data={'name': 'Kept Plate', 'price': '2.00'}, files={'image': (make_png(), 'old.png')})
    assert form.is_valid()
    product = form.save(db_session, owner=user)
    old_image = product.image
    before = _stored_images()

    monkeypatch.setattr(repositories.ProductRepository, 'save', _failing_save)
    with pytest.raises(RuntimeError):
        services.ProductService(db_session).set_image(product, make_png((8, 8)), 'new.png', user)
    assert _stored_images() == before
    assert (settings.MEDIA_ROOT / old_image).exists()
    assert product.image == old_image
