import sqlite3
from datetime import timedelta

import pytest

from loveblog.auth.roles import Role
from loveblog.infra.credential_store import VISITOR_EXPIRES_KEY


def test_set_and_get_couple(credentials, clock):
    credentials.set_credential(Role.COUPLE, "hash-1")
    rec = credentials.get_credential(Role.COUPLE)
    assert rec is not None
    assert rec.secret_hash == "hash-1"
    assert rec.updated_at == clock()
    assert rec.expires_at is None


def test_couple_cannot_expire(credentials, clock):
    with pytest.raises(ValueError):
        credentials.set_credential(Role.COUPLE, "hash-1", clock() + timedelta(hours=1))


def test_rotation_overwrites_live_slot(credentials, clock):
    credentials.set_credential(Role.COUPLE, "hash-1")
    clock.advance(minutes=5)
    credentials.set_credential(Role.COUPLE, "hash-2")
    rec = credentials.get_credential(Role.COUPLE)
    assert rec.secret_hash == "hash-2"
    assert rec.updated_at == clock()


def test_visitor_without_expiry_clears_previous_expiry(credentials, clock):
    credentials.set_credential(Role.VISITOR, "v1", clock() + timedelta(hours=2))
    credentials.set_credential(Role.VISITOR, "v2")
    rec = credentials.get_credential(Role.VISITOR)
    assert rec.secret_hash == "v2"
    assert rec.expires_at is None


def test_revoke_visitor_removes_hash_and_expiry(credentials, repo, clock):
    credentials.set_credential(Role.VISITOR, "v1", clock() + timedelta(hours=2))
    credentials.revoke_credential(Role.VISITOR)
    assert credentials.get_credential(Role.VISITOR) is None
    assert credentials.get_visitor_expiry() is None
    assert repo.get(VISITOR_EXPIRES_KEY) is None


def test_couple_is_not_revocable(credentials):
    credentials.set_credential(Role.COUPLE, "hash-1")
    with pytest.raises(ValueError):
        credentials.revoke_credential(Role.COUPLE)
    assert credentials.get_credential(Role.COUPLE) is not None


def test_history_most_recent_first(credentials, clock):
    credentials.append_history(Role.COUPLE, "h1")
    clock.advance(seconds=1)
    credentials.append_history(Role.VISITOR, "h2")
    clock.advance(seconds=1)
    credentials.append_history(Role.COUPLE, "h3")

    entries = credentials.query_history(10)
    assert [e.secret_hash for e in entries] == ["h3", "h2", "h1"]
    assert entries[1].role is Role.VISITOR
    assert [e.secret_hash for e in credentials.query_history(2)] == ["h3", "h2"]


def test_history_append_failure_is_swallowed(credentials, monkeypatch):
    credentials.set_credential(Role.COUPLE, "hash-1")

    def boom(*args, **kwargs):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(credentials.repo, "append_history", boom)
    credentials.append_history(Role.COUPLE, "hash-1")
    assert credentials.get_credential(Role.COUPLE).secret_hash == "hash-1"


def test_encryption_key_roundtrip(credentials):
    assert credentials.get_encryption_key() is None
    credentials.set_encryption_key("ab" * 32)
    assert credentials.get_encryption_key().value == "ab" * 32
