"""Simple migration runner for SQLite using the SQL files in storefront/migrations/"""
import logging

from storefront.migrations import run

if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    applied = run()
    print("Migrations applied:", ", ".join(applied) if applied else "none pending")
