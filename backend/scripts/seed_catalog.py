"""CLI script to load the demo catalog (categories, packages, add-ons).
Usage: python scripts/seed_catalog.py
"""
import sys
import pathlib
# Ensure `backend/` is on sys.path so `handrest` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from handrest.database import engine, create_db_and_tables
from handrest.utils.catalog_seed import seed_catalog


def main():
    """Create tables if needed and insert any missing catalog rows."""
    create_db_and_tables()
    with Session(engine) as session:
        created = seed_catalog(session)
    print(f"Created {created['categories']} categories, {created['packages']} packages, {created['addons']} add-ons")


if __name__ == '__main__':
    main()
