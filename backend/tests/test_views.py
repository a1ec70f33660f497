from decimal import Decimal

from fastapi.testclient import TestClient
from sqlmodel import Session

from storefront import models, repositories
from storefront.config import settings
from storefront.database import engine
from storefront.main import app

from conftest import PASSWORD, make_png, unique_name


def _browser(user=None):
    """A fresh client with its own cookie jar, optionally logged in."""
    c = TestClient(app)
    if user is not None:
        r = c.post('/accounts/login/', data={'username': user.username, 'password': PASSWORD},
                   follow_redirects=False)
        assert r.status_code == 303
    return c


def _product(name=None, owner=None):
    with Session(engine) as session:
        return repositories.ProductRepository(session).create(models.Product(
            name=name or unique_name(), price=Decimal('4.20'), owner_id=owner.id if owner else None))


def test_root_redirects_to_catalog():
    r = _browser().get('/', follow_redirects=False)
    assert r.status_code == 302
    assert r.headers['location'] == '/products/'


def test_list_and_detail_render():
    product = _product('Rendered Saucepan')
    c = _browser()
    r = c.get('/products/', params={'q': 'saucepan'})
    assert r.status_code == 200
    assert 'text/html' in r.headers['content-type']
    assert 'Rendered Saucepan' in r.text
    assert '$4.20' in r.text
    r = c.get(f'/products/{product.id}/')
    assert r.status_code == 200
    assert '<h1>Rendered Saucepan</h1>' in r.text
    assert 'Edit' not in r.text


def test_missing_product_renders_404_page():
    r = _browser().get('/products/999999/')
    assert r.status_code == 404
    assert 'Page not found' in r.text


def test_unknown_path_renders_404_page():
    r = _browser().get('/no/such/page/')
    assert r.status_code == 404
    assert 'Page not found' in r.text


def test_static_css_is_served():
    r = _browser().get('/static/css/site.css')
    assert r.status_code == 200
    assert 'font-family' in r.text


def test_anonymous_create_redirects_to_login():
    r = _browser().get('/products/new/', follow_redirects=False)
    assert r.status_code == 303
    assert r.headers['location'] == '/accounts/login/?next=/products/new/'


def test_login_sets_cookie_and_honours_next(user):
    c = TestClient(app)
    r = c.post('/accounts/login/', data={'username': user.username, 'password': PASSWORD, 'next': '/products/new/'},
               follow_redirects=False)
    assert r.status_code == 303
    assert r.headers['location'] == '/products/new/'
    assert 'access_token' in r.cookies
    assert 'httponly' in r.headers['set-cookie'].lower()
    r = c.get('/products/new/')
    assert r.status_code == 200
    assert 'New product' in r.text


def test_login_rejects_offsite_next(user):
    r = TestClient(app).post('/accounts/login/', data={
        'username': user.username, 'password': PASSWORD, 'next': '//evil.example/'}, follow_redirects=False)
    assert r.headers['location'] == '/products/'


def test_failed_login_rerenders_form(user):
    r = _browser().post('/accounts/login/', data={'username': user.username, 'password': 'nope'})
    assert r.status_code == 400
    assert 'correct username and password' in r.text


def test_register_logs_in():
    c = TestClient(app)
    name = unique_name('reg').replace(' ', '-')
    r = c.post('/accounts/register/', data={'username': name, 'password': PASSWORD}, follow_redirects=False)
    assert r.status_code == 303
    assert 'access_token' in r.cookies
    r = c.post('/accounts/register/', data={'username': name, 'password': PASSWORD})
    assert r.status_code == 400
    assert 'already taken' in r.text


def test_create_via_form_with_image(user):
    c = _browser(user)
    files = {'image': ('cup.png', make_png(), 'image/png')}
    r = c.post('/products/new/', data={'name': 'Form Cup', 'price': '3.00', 'description': 'Blue'},
               files=files, follow_redirects=False)
    assert r.status_code == 303
    detail = c.get(r.headers['location'])
    assert 'Form Cup' in detail.text
    assert '/media/products/' in detail.text
    assert 'Edit' in detail.text


def test_create_via_form_shows_errors(user):
    c = _browser(user)
    r = c.post('/products/new/', data={'name': '', 'price': 'cheap'})
    assert r.status_code == 400
    assert 'This field is required.' in r.text
    assert 'Enter a number.' in r.text


def test_edit_and_delete_by_owner_only(user, other_user):
    product = _product(owner=user)
    stranger = _browser(other_user)
    assert stranger.get(f'/products/{product.id}/edit/').status_code == 403
    assert stranger.post(f'/products/{product.id}/delete/').status_code == 403

    owner = _browser(user)
    r = owner.post(f'/products/{product.id}/edit/', data={'name': 'Edited name', 'price': '9.00'},
                   follow_redirects=False)
    assert r.status_code == 303
    assert 'Edited name' in owner.get(f'/products/{product.id}/').text
    r = owner.post(f'/products/{product.id}/delete/', follow_redirects=False)
    assert r.status_code == 303
    assert owner.get(f'/products/{product.id}/').status_code == 404


def test_logout_clears_cookie(user):
    c = _browser(user)
    r = c.post('/accounts/logout/', follow_redirects=False)
    assert r.status_code == 303
    assert c.get('/products/new/', follow_redirects=False).status_code == 303


def test_page_out_of_range_is_rejected():
    c = _browser()
    assert c.get('/products/', params={'page': 10 ** 20}).status_code == 422
    assert c.get('/products/', params={'page': 0}).status_code == 422
    assert c.get('/products/', params={'page': 1000}).status_code == 200


def test_oversized_form_upload_is_rejected(user, monkeypatch):
    monkeypatch.setattr(settings, 'MAX_UPLOAD_BYTES', 10)
    c = _browser(user)
    name = unique_name('Too big')
    r = c.post('/products/new/', data={'name': name, 'price': '1.00'},
               files={'image': ('big.png', make_png(), 'image/png')})
    assert r.status_code == 400
    assert 'file too large' in r.text
    with Session(engine) as session:
        assert not repositories.ProductRepository(session).exists_by_name(name)


def test_login_cookie_is_secure_outside_dev(user, monkeypatch):
    monkeypatch.setattr(settings, 'ENV', 'prod')
    r = TestClient(app).post('/accounts/login/', data={'username': user.username, 'password': PASSWORD},
                             follow_redirects=False)
    assert r.status_code == 303
    assert 'secure' in r.headers['set-cookie'].lower()


def test_html_login_is_rate_limited(user, monkeypatch):
    monkeypatch.setattr(settings, 'LOGIN_RATE_LIMIT_PER_MIN', 2)
    c = _browser()
    bad = {'username': user.username, 'password': 'wrong'}
    codes = [c.post('/accounts/login/', data=bad).status_code for _ in range(3)]
    assert codes == [400, 400, 429]
    r = c.post('/accounts/login/', data={'username': user.username, 'password': PASSWORD}, follow_redirects=False)
    assert r.status_code == 429
    assert int(r.headers['Retry-After']) >= 1
