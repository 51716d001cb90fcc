"""Translation of driver errors into store errors."""

from __future__ import annotations

import sqlite3

from sqlalchemy.exc import OperationalError, ProgrammingError

from app.services.store import missing_relation, translate_error
from finance_cloud.errors import PersistenceFailed, SchemaMissing


class _PostgresError(Exception):
    def __init__(self, message: str, sqlstate: str):
        super().__init__(message)
        self.sqlstate = sqlstate


def test_undefined_table_sqlstate_names_the_queried_relation():
    exc = ProgrammingError("SELECT 1", {}, _PostgresError('relation "investments" does not exist', "42P01"))

    assert missing_relation(exc, "investments") == "investments"
    assert isinstance(translate_error(exc, "investments"), SchemaMissing)


def test_sqlite_unknown_table_is_recognised():
    exc = OperationalError("SELECT 1", {}, sqlite3.OperationalError("no such table: cards"))

    assert missing_relation(exc, "transactions") == "cards"


def test_message_alone_is_not_a_missing_table():
    exc = OperationalError("SELECT 1", {}, RuntimeError("no such table: cards"))
    other_state = ProgrammingError("SELECT 1", {}, _PostgresError("syntax error", "42601"))

    assert missing_relation(exc, "cards") is None
    assert missing_relation(other_state, "cards") is None
    assert isinstance(translate_error(other_state, "cards"), PersistenceFailed)
