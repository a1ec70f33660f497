"""Boilerplate generator behind `manage.py startapp`.

A new feature app is a package holding a model module, a router module,
an index template and a starter test. Mount it by adding `<name>` to
`INSTALLED_APPS` with the package importable.
"""

import keyword
import logging
from pathlib import Path
from typing import Dict, List

_LOGGER = logging.getLogger("storefront.scaffold")

INIT_PY = '"""{title} app."""\n'

MODELS_PY = '''"""SQLModel tables for the {name} app."""

from typing import Optional

from sqlmodel import SQLModel, Field


class {model}(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
'''

VIEWS_PY = '''"""HTTP routes for the {name} app."""

from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.templating import Jinja2Templates

router = APIRouter(prefix='/{name}')
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))


@router.get('/')
def index(request: Request):
    return templates.TemplateResponse(request, '{name}/index.html', {{'title': '{title}'}})
'''

INDEX_HTML = '''<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8" /><title>{{{{ title }}}}</title></head>
<body>
  <h1>{{{{ title }}}}</h1>
</body>
</html>
'''

TEST_PY = '''from fastapi import FastAPI
from fastapi.testclient import TestClient

from {name}.models import {model}
from {name}.views import router

app = FastAPI()
app.include_router(router)
client = TestClient(app)


def test_index_renders():
    r = client.get('/{name}/')
    assert r.status_code == 200
    assert '{title}' in r.text


def test_model_keeps_name():
    assert {model}(name='example').name == 'example'
'''


def validate_app_name(name: str) -> None:
    if not name or not name.isidentifier() or keyword.iskeyword(name):
        raise ValueError(f"'{name}' is not a valid app name; use a Python identifier")
    if name != name.lower():
        raise ValueError(f"'{name}' must be lowercase")


def app_files(name: str) -> Dict[str, str]:
    """Return `{relative_path: content}` for a new app called `name`."""
    ctx = {
        'name': name,
        'title': name.replace('_', ' ').title(),
        'model': ''.join(part.title() for part in name.split('_') if part) or name.title(),
    }
    return {
        '__init__.py': INIT_PY.format(**ctx),
        'models.py': MODELS_PY.format(**ctx),
        'views.py': VIEWS_PY.format(**ctx),
        f'templates/{name}/index.html': INDEX_HTML.format(**ctx),
        'tests/__init__.py': '',
        f'tests/test_{name}.py': TEST_PY.format(**ctx),
    }


def start_app(name: str, directory: Path) -> List[Path]:
    """Create the app package `directory/name`; refuse to overwrite."""
    validate_app_name(name)
    target = Path(directory) / name
    if target.exists():
        raise FileExistsError(f"'{target}' already exists")
    written = []
    for rel, content in app_files(name).items():
        path = target / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding='utf-8')
        written.append(path)
    _LOGGER.info("startapp %s -> %s (%d files)", name, target, len(written))
    return written
