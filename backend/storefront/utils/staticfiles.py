"""Collect static assets into a single deployable directory.

Assets are discovered by a recursive scan of each source root, sorted
for deterministic output.
"""

import logging
import shutil
from pathlib import Path
from typing import Iterable, List, Optional

PACKAGE_STATIC = Path(__file__).resolve().parent.parent / "static"
IGNORED_NAMES = {".DS_Store", "Thumbs.db"}

_LOGGER = logging.getLogger("storefront.staticfiles")


def find_static_files(root: Path) -> List[Path]:
    """Return every collectable file under `root`, sorted."""
    if not root.exists():
        return []
    return sorted(
        f for f in root.rglob('*')
        if f.is_file() and f.name not in IGNORED_NAMES and not f.name.startswith('.')
    )


def _is_unmodified(src: Path, dst: Path) -> bool:
    if not dst.exists():
        return False
    s, d = src.stat(), dst.stat()
    return s.st_size == d.st_size and d.st_mtime >= s.st_mtime


def collect_static(destination: Path, sources: Optional[Iterable[Path]] = None, clear: bool = False) -> dict:
    """Copy static files from `sources` into `destination`.

    The package `static/` directory is always the first source. When two
    sources provide the same relative path the first one wins and the
    later file is counted as skipped. Files already present and not older
    than their source are left alone.
    """
    destination = Path(destination)
    roots = [PACKAGE_STATIC] + [Path(s) for s in (sources or [])]
    if clear and destination.exists():
        shutil.rmtree(destination)
    destination.mkdir(parents=True, exist_ok=True)
    copied, unmodified, skipped = 0, 0, 0
    claimed = set()
    for root in roots:
        for f in find_static_files(root):
            rel = f.relative_to(root)
            if rel in claimed:
                skipped += 1
                _LOGGER.debug("static_skipped %s from %s", rel, root)
                continue
            claimed.add(rel)
            target = destination / rel
            if _is_unmodified(f, target):
                unmodified += 1
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(f, target)
            copied += 1
    _LOGGER.info("collectstatic copied=%d unmodified=%d skipped=%d dest=%s", copied, unmodified, skipped, destination)
    return {'copied': copied, 'unmodified': unmodified, 'skipped': skipped, 'destination': str(destination)}
