"""CSV parsing for bulk product imports.

`parse_products_csv` returns a list of dictionaries with keys `name`,
`price` and `description`; values are raw strings so validation stays in
one place (`ProductForm`).
"""

import csv
import io
from typing import Dict, List


def parse_products_csv(b: bytes) -> List[Dict]:
    """Parse a CSV with a header row.

    Expected columns: `name` (or `title`), `price` and an optional
    `description`. A UTF-8 BOM is tolerated since spreadsheet exports
    often add one.
    """
    text = b.decode('utf-8-sig')
    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise ValueError('CSV has no header row')
    headers = {h.strip().lower() for h in reader.fieldnames if h}
    if not ({'name', 'title'} & headers) or 'price' not in headers:
        raise ValueError('CSV must have name and price columns')
    out = []
    for row in reader:
        # extra unnamed cells land under the None key as a list
        row = {k.strip().lower(): (v or '').strip() for k, v in row.items() if k is not None}
        if not any(row.values()):
            continue
        out.append({
            'name': row.get('name') or row.get('title') or '',
            'price': row.get('price', ''),
            'description': row.get('description') or None,
        })
    return out
