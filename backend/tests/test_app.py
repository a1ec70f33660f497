import pytest
from fastapi.testclient import TestClient

from storefront.config import Settings
from storefront.main import create_app
from storefront.scaffold import start_app


def test_collected_static_root_is_served_without_debug(tmp_path, monkeypatch):
    (tmp_path / 'css').mkdir()
    (tmp_path / 'css' / 'site.css').write_text('body { color: teal; }')
    monkeypatch.setenv('DEBUG', 'false')
    monkeypatch.setenv('STATIC_ROOT', str(tmp_path))
    client = TestClient(create_app(Settings()))
    r = client.get('/static/css/site.css')
    assert r.status_code == 200
    assert 'color: teal' in r.text


def test_package_static_is_served_in_debug(tmp_path, monkeypatch):
    (tmp_path / 'css').mkdir()
    (tmp_path / 'css' / 'site.css').write_text('body { color: teal; }')
    monkeypatch.setenv('DEBUG', 'true')
    monkeypatch.setenv('STATIC_ROOT', str(tmp_path))
    r = TestClient(create_app(Settings())).get('/static/css/site.css')
    assert r.status_code == 200
    assert 'color: teal' not in r.text


def test_allowed_hosts_rejects_other_hosts(monkeypatch):
    monkeypatch.setenv('ALLOWED_HOSTS', 'shop.example.com')
    app = create_app(Settings())
    assert TestClient(app).get('/health').status_code == 400
    r = TestClient(app, base_url='http://shop.example.com').get('/health')
    assert r.status_code == 200
    assert r.json() == {'status': 'ok'}


def test_scaffolded_app_can_be_installed(tmp_path, monkeypatch):
    start_app('pressroom', tmp_path)
    monkeypatch.syspath_prepend(str(tmp_path))
    monkeypatch.setenv('INSTALLED_APPS', 'catalog,pressroom')
    client = TestClient(create_app(Settings()))
    r = client.get('/pressroom/')
    assert r.status_code == 200
    assert 'Pressroom' in r.text
    assert client.get('/api/products').status_code == 404


def test_unimportable_app_fails_at_startup(monkeypatch):
    monkeypatch.setenv('INSTALLED_APPS', 'catalog,no_such_storefront_app')
    with pytest.raises(RuntimeError, match='no_such_storefront_app'):
        create_app(Settings())
