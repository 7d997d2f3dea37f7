"""Shared fakes for the PostgreSQL and Elasticsearch seams."""

import json
from datetime import datetime, timezone

import pytest

from docbench.generate_data import generate_documents

FIXED_NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else json.dumps(body if body is not None else {})

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._body is None:
            return json.loads(self.text)
        return self._body


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self._rows = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=None):
        self.conn.executed.append((sql, params))
        if self.conn.execute_error is not None:
            raise self.conn.execute_error
        self._rows = list(self.conn.rows)

    def fetchall(self):
        return self._rows

    def fetchone(self):
        return self._rows[0] if self._rows else None

    def copy_expert(self, sql, file):
        self.conn.copies.append(sql)
        if self.conn.copy_error is not None:
            raise self.conn.copy_error
        if "TO STDOUT" in sql:
            file.write(self.conn.copy_out)
        else:
            self.conn.copied.append(file.read())


class FakeConnection:
    """Records what a psycopg2 connection was asked to do."""

    def __init__(self, rows=(), execute_error=None, copy_error=None):
        self.rows = rows
        self.execute_error = execute_error
        self.copy_error = copy_error
        self.executed = []
        self.copies = []
        self.copied = []
        self.copy_out = b""
        self.notices = []
        self.closed = 0
        self.autocommit = True

    def cursor(self):
        return FakeCursor(self)

    def get_transaction_status(self):
        return 0

    def close(self):
        self.closed = 1


@pytest.fixture
def docs():
    return generate_documents(40, seed=7, progress=False, now=FIXED_NOW)


@pytest.fixture
def fake_conn():
    return FakeConnection()
