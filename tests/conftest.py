from __future__ import annotations

import pytest

import app.db.connection as connection


class FakeCursor:
    def __init__(self, conn: "FakeConnection"):
        self._conn = conn
        self._rows: list = []
        self.description = None
        self.rowcount = -1

    def execute(self, sql, params=()):
        statement = " ".join(sql.split())
        self._conn.executed.append((statement, params))
        columns, rows, rowcount = (), [], 0
        for fragment, result in self._conn.responses:
            if fragment in statement:
                if isinstance(result, Exception):
                    raise result
                columns, rows, rowcount = result
                break
        self.description = [(column,) for column in columns] if columns else None
        self._rows = list(rows)
        self.rowcount = len(self._rows) if rowcount is None else rowcount

    def fetchone(self):
        return self._rows.pop(0) if self._rows else None

    def fetchall(self):
        rows, self._rows = self._rows, []
        return rows

    def close(self):
        pass


class FakeConnection:
    """Scripted stand-in for a pg8000 connection.

    Responses are matched by SQL fragment, first registered wins.
    """

    def __init__(self):
        self.executed: list[tuple[str, object]] = []
        self.responses: list[tuple[str, object]] = []
        self.autocommit = True
        self.committed = False
        self.rolled_back = False
        self.closed = False

    def respond(self, fragment, columns=(), rows=(), rowcount=None):
        self.responses.append((fragment, (tuple(columns), list(rows), rowcount)))

    def fail(self, fragment, exc):
        self.responses.append((fragment, exc))

    def statements(self, fragment):
        return [(sql, params) for sql, params in self.executed if fragment in sql]

    def cursor(self):
        return FakeCursor(self)

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


@pytest.fixture
def fake_conn(monkeypatch):
    conn = FakeConnection()
    monkeypatch.setattr(connection, "_connect", lambda: conn)
    monkeypatch.setattr(connection, "get_conn", lambda: conn)
    return conn
