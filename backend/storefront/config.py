"""Application settings and validation."""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

KNOWN_APPS = ("catalog", "accounts", "admin", "api")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str):
    return [p.strip() for p in os.getenv(name, default).split(",") if p.strip()]


class Settings:
    ENV: str
    DEBUG: bool
    JWT_SECRET: str
    JWT_ALGORITHM: str
    JWT_EXPIRE_HOURS: int
    DATABASE_URL: str
    STATIC_URL: str
    STATIC_ROOT: Path
    MEDIA_URL: str
    MEDIA_ROOT: Path
    MAX_UPLOAD_BYTES: int
    ALLOWED_HOSTS: list
    ALLOW_INSECURE_JWT: bool
    ALLOW_DEV_CORS: bool
    LOG_LEVEL: str
    LOGIN_RATE_LIMIT_PER_MIN: int
    INSTALLED_APPS: list

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.DEBUG = _env_bool("DEBUG", "true" if self.ENV == "dev" else "false")
        self.JWT_SECRET = os.getenv("JWT_SECRET", "change_me_for_prod")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_EXPIRE_HOURS = int(os.getenv("JWT_EXPIRE_HOURS", "24"))
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'app.db'}")
        self.STATIC_URL = os.getenv("STATIC_URL", "/static/")
        self.STATIC_ROOT = Path(os.getenv("STATIC_ROOT", str(BASE_DIR / "staticfiles"))).expanduser()
        self.MEDIA_URL = os.getenv("MEDIA_URL", "/media/")
        self.MEDIA_ROOT = Path(os.getenv("MEDIA_ROOT", str(BASE_DIR / "media"))).expanduser()
        self.MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))  # 5 MB default
        self.ALLOWED_HOSTS = _env_list("ALLOWED_HOSTS", "*")
        self.ALLOW_INSECURE_JWT = _env_bool("ALLOW_INSECURE_JWT", "false")
        self.ALLOW_DEV_CORS = _env_bool("ALLOW_DEV_CORS", "true")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.LOGIN_RATE_LIMIT_PER_MIN = int(os.getenv("LOGIN_RATE_LIMIT_PER_MIN", "10"))
        self.INSTALLED_APPS = _env_list("INSTALLED_APPS", ",".join(KNOWN_APPS))
        self._validate()

    @property
    def is_dev(self) -> bool:
        return self.ENV == "dev"

    def _validate(self):
        if not self.is_dev and not self.ALLOW_INSECURE_JWT and self.JWT_SECRET == "change_me_for_prod":
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")
        if not self.is_dev and self.DEBUG:
            raise RuntimeError("DEBUG must be disabled in non-dev environments")
        for name in ("STATIC_URL", "MEDIA_URL"):
            url = getattr(self, name)
            if not (url.startswith("/") and url.endswith("/")):
                raise RuntimeError(f"{name} must start and end with '/' (got {url!r})")
        if self.STATIC_URL == self.MEDIA_URL:
            raise RuntimeError("STATIC_URL and MEDIA_URL must differ")
        # built-in names, or importable packages exposing `views.router`
        invalid = [a for a in self.INSTALLED_APPS if not all(p.isidentifier() for p in a.split("."))]
        if invalid:
            raise RuntimeError(f"invalid app names in INSTALLED_APPS: {', '.join(invalid)}")


settings = Settings()
