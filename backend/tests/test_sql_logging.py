import logging
import re
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from shopapi.database import engine
from shopapi.main import app
from shopapi.utils.sql_logging import _connection_id, count_statements, format_message, format_sql, install_sql_logging

client = TestClient(app)


def test_format_select_breaks_clauses_and_columns():
    sql = ("SELECT orders.id, member.name FROM orders JOIN member ON member.id = orders.member_id "
           "WHERE orders.status = ? ORDER BY orders.id LIMIT ? OFFSET ?")
    assert format_sql(sql) == (
        "\n    SELECT"
        "\n        orders.id,"
        "\n        member.name"
        "\n    FROM orders"
        "\n    JOIN member ON member.id = orders.member_id"
        "\n    WHERE orders.status = ?"
        "\n    ORDER BY orders.id"
        "\n    LIMIT ?"
        "\n    OFFSET ?"
    )


def test_format_keeps_outer_joins_on_one_line():
    sql = "SELECT a.id FROM orders LEFT OUTER JOIN order_item ON orders.id = order_item.order_id"
    lines = format_sql(sql).strip().splitlines()
    assert lines[-1].strip() == "LEFT OUTER JOIN order_item ON orders.id = order_item.order_id"


def test_format_ddl_puts_each_column_on_its_own_line():
    sql = "\nCREATE TABLE member (\n\tid INTEGER NOT NULL, \n\tname VARCHAR NOT NULL, \n\tPRIMARY KEY (id)\n)\n\n"
    assert format_sql(sql) == (
        "\n    CREATE TABLE member ("
        "\n        id INTEGER NOT NULL,"
        "\n        name VARCHAR NOT NULL,"
        "\n        PRIMARY KEY (id)"
        "\n    )"
    )


def test_format_message_layout():
    message = format_message(1.234, "statement", 7, "SELECT 1", (5,))
    assert message.startswith("1.23ms | statement | connection 7 |\n    SELECT")
    assert message.endswith("-- params: (5,)")
    assert format_sql("   ") == ""


def test_statements_are_logged(caplog):
    install_sql_logging(engine)
    install_sql_logging(engine)
    caplog.set_level(logging.INFO, logger="shopapi.sql")
    with count_statements(engine) as counter:
        r = client.get('/api/v4/simple-orders')
    assert r.status_code == 200
    logged = [rec.getMessage() for rec in caplog.records if rec.name == "shopapi.sql"]
    # installing twice must not log every statement twice
    assert len(logged) == len(counter)
    assert "FROM orders" in logged[0]
    assert "| statement | connection" in logged[0]


def test_counter_separates_selects():
    with count_statements(engine) as counter:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    assert counter.select_count == 1
    assert len(counter) >= 1


def test_connection_id_is_stable_per_connection(caplog):
    install_sql_logging(engine)
    caplog.set_level(logging.INFO, logger="shopapi.sql")
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
        conn.execute(text("SELECT 2"))
    ids = {re.search(r"connection \d+", rec.getMessage()).group() for rec in caplog.records if rec.name == "shopapi.sql"}
    assert len(ids) == 1


def test_failed_statement_leaves_no_start_time():
    install_sql_logging(engine)
    with engine.connect() as conn:
        with pytest.raises(OperationalError):
            conn.execute(text("SELECT * FROM no_such_table"))
        assert conn.info.get("query_start_time") == []


def test_nothing_is_formatted_when_info_is_off(caplog, monkeypatch):
    install_sql_logging(engine)
    caplog.set_level(logging.WARNING, logger="shopapi.sql")
    calls = []
    monkeypatch.setattr("shopapi.utils.sql_logging.format_message", lambda *args: calls.append(args))
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    assert calls == []


def test_connection_ids_are_consecutive():
    first, second = SimpleNamespace(info={}), SimpleNamespace(info={})
    a = _connection_id(first)
    assert _connection_id(first) == a
    assert _connection_id(second) == a + 1
