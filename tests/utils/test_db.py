"""Tests for schema management helpers and the management CLI."""

import pytest
from bakery import manage
from bakery.domain import bakery
from bakery.utils.db import drop_db, setup_db


def test_memory_provider_needs_no_schema():
    assert setup_db(bakery) == []
    assert drop_db(bakery) == []


@pytest.mark.parametrize(
    "argv,expected",
    [(["setup-db"], "setup"), (["drop-db"], "drop")],
)
def test_manage_dispatches_commands(monkeypatch, argv, expected):
    calls = []
    monkeypatch.setattr(manage, "setup_databases", lambda: calls.append("setup"))
    monkeypatch.setattr(manage, "drop_databases", lambda: calls.append("drop"))

    manage.main(argv)

    assert calls == [expected]


def test_manage_serve_passes_options(monkeypatch):
    received = {}
    monkeypatch.setattr(manage, "serve", lambda host, port, reload: received.update(host=host, port=port, reload=reload))

    manage.main(["serve", "--port", "9000", "--reload"])

    assert received == {"host": "0.0.0.0", "port": 9000, "reload": True}


def test_manage_requires_a_command():
    with pytest.raises(SystemExit):
        manage.main([])
