import pytest

import app.db.connection as connection


def test_transaction_commits_and_closes(fake_conn):
    def handler(conn):
        cur = conn.cursor()
        cur.execute("UPDATE raffles SET title = %s", ("x",))
        return "done"

    assert connection.run_transaction(handler) == "done"
    assert fake_conn.autocommit is False
    assert fake_conn.committed
    assert not fake_conn.rolled_back
    assert fake_conn.closed


def test_transaction_rolls_back_on_error(fake_conn):
    def handler(conn):
        raise LookupError("boom")

    with pytest.raises(LookupError):
        connection.run_transaction(handler)

    assert fake_conn.rolled_back
    assert not fake_conn.committed
    assert fake_conn.closed


def test_fetch_one_maps_columns(fake_conn):
    fake_conn.respond("FROM users", columns=("id", "name"), rows=[(1, "Ana")])
    assert connection.fetch_one("SELECT id, name FROM users WHERE id = %s", (1,)) == {
        "id": 1,
        "name": "Ana",
    }


def test_fetch_one_without_row(fake_conn):
    fake_conn.respond("FROM users", columns=("id",), rows=[])
    assert connection.fetch_one("SELECT id FROM users WHERE id = %s", (1,)) is None


def test_fetch_all(fake_conn):
    fake_conn.respond("FROM rooms", columns=("id",), rows=[(1,), (2,)])
    assert connection.fetch_all("SELECT id FROM rooms") == [{"id": 1}, {"id": 2}]


def test_stale_connection_is_replaced(monkeypatch):
    class Broken:
        def cursor(self):
            raise ConnectionError("server closed the connection")

    class Fresh:
        autocommit = False

    fresh = Fresh()
    monkeypatch.setattr(connection._DB_LOCAL, "conn", Broken(), raising=False)
    monkeypatch.setattr(connection, "_connect", lambda: fresh)

    assert connection.get_conn() is fresh
    assert fresh.autocommit is True
