import pytest

from storefront.config import Settings


def test_dev_defaults(monkeypatch):
    monkeypatch.setenv('ENV', 'dev')
    monkeypatch.delenv('DEBUG', raising=False)
    s = Settings()
    assert s.DEBUG is True
    assert s.STATIC_URL == '/static/'
    assert s.MEDIA_URL == '/media/'
    assert s.INSTALLED_APPS == ['catalog', 'accounts', 'admin', 'api']


def test_prod_requires_real_secret(monkeypatch):
    monkeypatch.setenv('ENV', 'prod')
    monkeypatch.setenv('DEBUG', 'false')
    monkeypatch.delenv('JWT_SECRET', raising=False)
    with pytest.raises(RuntimeError, match='JWT_SECRET'):
        Settings()
    monkeypatch.setenv('JWT_SECRET', 's3cret-for-prod')
    assert Settings().DEBUG is False


def test_prod_refuses_debug(monkeypatch):
    monkeypatch.setenv('ENV', 'prod')
    monkeypatch.setenv('JWT_SECRET', 's3cret-for-prod')
    monkeypatch.setenv('DEBUG', 'true')
    with pytest.raises(RuntimeError, match='DEBUG'):
        Settings()


@pytest.mark.parametrize('env, value', [
    ('STATIC_URL', 'static'),
    ('MEDIA_URL', '/media'),
    ('MEDIA_URL', '/static/'),
    ('INSTALLED_APPS', 'catalog,not-valid'),
    ('INSTALLED_APPS', 'catalog,blog..views'),
])
def test_invalid_settings_rejected(monkeypatch, env, value):
    monkeypatch.setenv('ENV', 'dev')
    monkeypatch.setenv(env, value)
    with pytest.raises(RuntimeError):
        Settings()


def test_extra_apps_are_accepted(monkeypatch):
    monkeypatch.setenv('ENV', 'dev')
    monkeypatch.setenv('INSTALLED_APPS', 'catalog,blog,shop.reviews')
    assert Settings().INSTALLED_APPS == ['catalog', 'blog', 'shop.reviews']
