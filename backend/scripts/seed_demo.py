"""Populate a local database with a demo staff account and a few products.
Usage: python scripts/seed_demo.py [--username demo] [--password demo]
"""
import argparse
import sys
import pathlib
from decimal import Decimal
# Ensure `backend/` is on sys.path so `storefront` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from storefront.database import engine, create_db_and_tables
from storefront import repositories, services

DEMO_PRODUCTS = [
    ('Espresso cup', Decimal('4.50'), 'Porcelain, 90 ml.'),
    ('Pour-over kettle', Decimal('39.00'), 'Gooseneck spout, 1 l.'),
    ('Burr grinder', Decimal('129.99'), None),
]


def main(username: str, password: str):
    """Create the demo staff user and any demo product not already present.

    Results are printed to stdout for a quick CLI feedback loop.
    """
    create_db_and_tables()
    with Session(engine) as session:
        user = services.AuthService(session).create_superuser(username, password)
        print(f'Staff user: {user.username} (id {user.id})')
        svc = services.ProductService(session)
        repo = repositories.ProductRepository(session)
        created = 0
        for name, price, description in DEMO_PRODUCTS:
            if repo.exists_by_name(name):
                continue
            svc.create({'name': name, 'price': price, 'description': description}, owner=user)
            created += 1
        print(f'Created {created} demo products, {repo.count()} in total')


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--username', default='demo')
    parser.add_argument('--password', default='demo')
    args = parser.parse_args()
    main(args.username, args.password)
