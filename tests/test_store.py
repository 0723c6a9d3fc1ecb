"""Unit tests for auth/store.py -- CredentialStore.

Covers:
- register() returns an identity with an opaque id and stores the hash as given
- find_by_username() is an exact, case-sensitive match
- find_by_id() round-trips and returns None for unknown ids
- duplicate usernames raise DuplicateUsername, sequentially and concurrently
- database failures surface as StorageError
"""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from auth.errors import DuplicateUsername, StorageError
from auth.store import CredentialStore


def test_register_returns_identity(store: CredentialStore) -> None:
    identity = store.register("alice", "$2b$04$fakehash")
    assert identity.id
    assert identity.username == "alice"
    assert identity.password_hash == "$2b$04$fakehash"
    assert identity.created_at


def test_ids_are_unique(store: CredentialStore) -> None:
    ids = {store.register(f"user{i}", "h").id for i in range(5)}
    assert len(ids) == 5


def test_find_by_username(store: CredentialStore) -> None:
    created = store.register("alice", "h")
    found = store.find_by_username("alice")
    assert found == created


def test_find_by_username_is_case_sensitive(store: CredentialStore) -> None:
    store.register("alice", "h")
    assert store.find_by_username("Alice") is None
    assert store.find_by_username("alice ") is None


def test_find_by_id(store: CredentialStore) -> None:
    created = store.register("alice", "h")
    assert store.find_by_id(created.id) == created
    assert store.find_by_id("0" * 32) is None


def test_repr_hides_password_hash(store: CredentialStore) -> None:
    identity = store.register("alice", "$2b$04$secret-hash-material")
    assert "secret-hash-material" not in repr(identity)


def test_duplicate_username_rejected(store: CredentialStore) -> None:
    store.register("alice", "h1")
    with pytest.raises(DuplicateUsername):
        store.register("alice", "h2")
    assert store.find_by_username("alice").password_hash == "h1"
    assert store.count_users() == 1


def test_concurrent_duplicate_register_exactly_one_wins(store: CredentialStore) -> None:
    """Eight threads race to register the same name; exactly one commits."""
    workers = 8
    barrier = Barrier(workers)

    def attempt(i: int) -> str:
        barrier.wait()
        try:
            store.register("contested", f"hash-{i}")
        except DuplicateUsername:
            return "duplicate"
        return "created"

    with ThreadPoolExecutor(max_workers=workers) as pool:
        outcomes = list(pool.map(attempt, range(workers)))

    assert outcomes.count("created") == 1
    assert outcomes.count("duplicate") == workers - 1
    assert store.count_users() == 1


def test_ping(store: CredentialStore) -> None:
    assert store.ping() is True


def test_storage_failure_raises_storage_error(tmp_path) -> None:
    s = CredentialStore(f"sqlite:///{tmp_path / 'broken.db'}")
    with s.engine.connect() as conn:
        conn.exec_driver_sql("DROP TABLE users")
        conn.commit()
    with pytest.raises(StorageError):
        s.find_by_username("alice")
    with pytest.raises(StorageError):
        s.register("alice", "h")
    assert s.ping() is False
    s.close()


def test_unreachable_database_raises_storage_error(tmp_path) -> None:
    missing_dir = tmp_path / "does-not-exist" / "users.db"
    with pytest.raises(StorageError):
        CredentialStore(f"sqlite:///{missing_dir}")
