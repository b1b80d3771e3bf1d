"""Run a quick request against every order listing using FastAPI's TestClient.

Prints the status code and the number of SELECT statements each version
issued, which makes the difference between loading plans visible.
"""

import sys
import os

# Ensure backend folder is on sys.path so `shopapi` package can be imported
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from fastapi.testclient import TestClient
from shopapi.database import engine
from shopapi.main import app
from shopapi.utils.sql_logging import count_statements

PATHS = [
    '/api/v1/simple-orders',
    '/api/v2/simple-orders',
    '/api/v3/simple-orders',
    '/api/v4/simple-orders',
    '/api/v1/orders',
    '/api/v2/orders',
    '/api/v3/orders',
    '/api/v3.1/orders',
    '/api/v4/orders',
    '/api/v5/orders',
    '/api/v6/orders',
]


def run_testclient():
    client = TestClient(app)
    for path in PATHS:
        with count_statements(engine) as counter:
            resp = client.get(path)
        print(f'{path:<24} STATUS: {resp.status_code}  SELECTS: {counter.select_count}')


if __name__ == '__main__':
    run_testclient()
