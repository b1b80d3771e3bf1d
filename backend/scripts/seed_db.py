"""CLI script to (re)create the schema and insert the sample shop data.
Usage: python scripts/seed_db.py [--reset]
"""
import sys
import argparse
import pathlib
# Ensure `backend/` is on sys.path so `shopapi` package imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from shopapi.database import engine, create_db_and_tables, drop_db_and_tables
from shopapi.utils.sample_data import init_db


def main(reset: bool = False):
    """Create tables and seed the sample members, books and orders.

    With `reset` every table is dropped first. Results are printed to
    stdout for a quick CLI feedback loop.
    """
    if reset:
        drop_db_and_tables()
        print('Dropped all tables')
    create_db_and_tables()
    with Session(engine) as session:
        if init_db(session):
            print(f'Sample data inserted into {engine.url}')
        else:
            print('Database already has members; nothing inserted (use --reset)')


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--reset', action='store_true', help='Drop all tables before seeding')
    args = parser.parse_args()
    main(reset=args.reset)
