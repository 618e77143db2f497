import sqlite3

import crudsql
import pytest
from crudsql.exceptions import ExecutionError, TransactionStateError
from tests import config


def test_begin_twice_fails(sqlite_db):
    assert sqlite_db.begin_transaction()
    result = sqlite_db.begin_transaction()
    assert isinstance(result.error, TransactionStateError)
    assert sqlite_db.last_error == 'Transaction Error: Transaction already active'
    assert sqlite_db.in_transaction is True
    assert sqlite_db.rollback()


def test_commit_and_rollback_require_transaction(sqlite_db):
    assert isinstance(sqlite_db.commit().error, TransactionStateError)
    assert isinstance(sqlite_db.rollback().error, TransactionStateError)
    assert sqlite_db.in_transaction is False


def test_rollback_discards_writes(sqlite_db):
    sqlite_db.begin_transaction().unwrap()
    sqlite_db.insert('users', {'name': 'Eve'}).unwrap()
    sqlite_db.delete('users', {'name': 'Alice'}).unwrap()
    assert sqlite_db.count('users').unwrap() == 4
    sqlite_db.rollback().unwrap()
    assert sqlite_db.in_transaction is False
    assert sqlite_db.exists('users', {'name': 'Alice'}).unwrap()
    assert not sqlite_db.exists('users', {'name': 'Eve'}).unwrap()


def test_commit_persists_writes(sqlite_file_db):
    db, path = sqlite_file_db
    db.begin_transaction().unwrap()
    db.update('users', {'age': 26}, {'name': 'Bob'}).unwrap()
    db.commit().unwrap()
    assert db.in_transaction is False

    other = crudsql.connect(config.sqlite, database=str(path)).unwrap()
    try:
        assert other.select_one('users', ['age'], {'name': 'Bob'}).unwrap() == {'age': 26}
    finally:
        other.close()


def test_uncommitted_writes_invisible_to_other_handles(sqlite_file_db):
    db, path = sqlite_file_db
    db.begin_transaction().unwrap()
    db.insert('users', {'name': 'Eve'}).unwrap()

    other = crudsql.connect(config.sqlite, database=str(path)).unwrap()
    try:
        assert other.count('users').unwrap() == 4
        db.commit().unwrap()
        assert other.count('users').unwrap() == 5
    finally:
        other.close()


def test_rollback_after_failed_operation(sqlite_db):
    """begin, failing write, rollback leaves the handle idle and reusable"""
    sqlite_db.begin_transaction().unwrap()
    sqlite_db.insert('users', {'name': 'Eve'}).unwrap()
    result = sqlite_db.insert('users', {'name': 'Dup', 'email': 'bob@example.com'})
    assert isinstance(result.error, ExecutionError)
    assert sqlite_db.in_transaction is True

    assert sqlite_db.rollback()
    assert sqlite_db.in_transaction is False
    assert sqlite_db.count('users').unwrap() == 4

    assert sqlite_db.begin_transaction()
    assert sqlite_db.commit()


def test_context_manager_commits(sqlite_db):
    with sqlite_db.transaction() as tx:
        tx.insert('users', {'name': 'Eve'}).unwrap()
        tx.update('users', {'age': 99}, {'name': 'Eve'}).unwrap()
        assert sqlite_db.in_transaction is True
    assert sqlite_db.in_transaction is False
    assert sqlite_db.select_one('users', ['age'], {'name': 'Eve'}).unwrap() == {'age': 99}


def test_context_manager_rolls_back_and_reraises(sqlite_db):
    with pytest.raises(ExecutionError):
        with sqlite_db.transaction() as tx:
            tx.update('users', {'age': 1}, {'name': 'Bob'}).unwrap()
            tx.insert('users', {'name': 'Dup', 'email': 'alice@example.com'}).unwrap()
    assert sqlite_db.in_transaction is False
    assert sqlite_db.select_one('users', ['age'], {'name': 'Bob'}).unwrap() == {'age': 25}


def test_context_manager_rolls_back_on_any_exception(sqlite_db):
    with pytest.raises(RuntimeError):
        with crudsql.transaction(sqlite_db):
            sqlite_db.delete('users', {'id': 1}).unwrap()
            raise RuntimeError('abort')
    assert sqlite_db.count('users').unwrap() == 4


def test_context_manager_not_nested(sqlite_db):
    with sqlite_db.transaction():
        with pytest.raises(TransactionStateError):
            with sqlite_db.transaction():
                pass
        assert sqlite_db.in_transaction is True
    assert sqlite_db.in_transaction is False


def test_close_rolls_back_open_transaction(sqlite_file_db):
    db, path = sqlite_file_db
    db.begin_transaction().unwrap()
    db.insert('users', {'name': 'Eve'}).unwrap()
    db.close()
    assert db.in_transaction is False

    other = crudsql.connect(config.sqlite, database=str(path)).unwrap()
    try:
        assert other.count('users').unwrap() == 4
    finally:
        other.close()


class FailingConnection:
    """Wraps a DBAPI connection, making the named methods raise."""

    def __init__(self, connection, *failing):
        self.connection = connection
        self.failing = set(failing)

    def __getattr__(self, name):
        if name in self.failing:
            def fail(*args, **kwargs):
                raise sqlite3.OperationalError(f'disk I/O error during {name}')
            return fail
        return getattr(self.connection, name)


def test_rollback_returns_to_idle_when_driver_raises(sqlite_db):
    sqlite_db.begin_transaction().unwrap()
    sqlite_db.insert('users', {'name': 'Eve'}).unwrap()
    real = sqlite_db.dbapi_connection
    sqlite_db.dbapi_connection = FailingConnection(real, 'rollback')
    try:
        result = sqlite_db.rollback()
    finally:
        sqlite_db.dbapi_connection = real

    assert not result
    assert isinstance(result.error, ExecutionError)
    assert sqlite_db.in_transaction is False
    assert sqlite_db.last_error.startswith('Transaction Error: Rollback failed: disk I/O error')
    real.rollback()


def test_failed_commit_stays_in_transaction(sqlite_db):
    sqlite_db.begin_transaction().unwrap()
    sqlite_db.insert('users', {'name': 'Eve'}).unwrap()
    real = sqlite_db.dbapi_connection
    sqlite_db.dbapi_connection = FailingConnection(real, 'commit')
    try:
        result = sqlite_db.commit()
    finally:
        sqlite_db.dbapi_connection = real

    assert not result
    assert isinstance(result.error, ExecutionError)
    assert sqlite_db.in_transaction is True
    assert sqlite_db.last_error.startswith('Transaction Error: Commit failed: disk I/O error')

    assert sqlite_db.rollback()
    assert sqlite_db.in_transaction is False
    assert sqlite_db.count('users').unwrap() == 4
