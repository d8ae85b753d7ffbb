from __future__ import annotations

from datetime import timedelta

from tracklist.services import auth_svc


def test_demo_login():
    res = auth_svc.login("demo", "demo123")
    assert res["user"] == {"username": "demo", "isDemo": True}
    assert auth_svc.decode_token(res["token"]) == {"username": "demo", "isDemo": True}


def test_family_user_login(monkeypatch):
    hashed = auth_svc.hash_password("s3cret")
    monkeypatch.setenv("FAMILY_USERS", f"alice:{hashed}, bob:{auth_svc.hash_password('pw')}")
    assert set(auth_svc.family_users()) == {"alice", "bob"}

    res = auth_svc.login("alice", "s3cret")
    assert res["user"] == {"username": "alice", "isDemo": False}
    assert auth_svc.login("alice", "wrong") is None
    assert auth_svc.login("carol", "s3cret") is None


def test_malformed_family_entries_are_skipped(monkeypatch):
    monkeypatch.setenv("FAMILY_USERS", "nohash,:x,ok:notbcrypt")
    assert auth_svc.family_users() == {"ok": "notbcrypt"}
    assert auth_svc.login("ok", "anything") is None


def test_token_rejected_with_other_secret_or_expired(monkeypatch):
    token = auth_svc.create_access_token("alice", False)
    monkeypatch.setenv("JWT_SECRET", "another-secret")
    assert auth_svc.decode_token(token) is None

    expired = auth_svc.create_access_token("alice", False, expires_delta=timedelta(seconds=-5))
    assert auth_svc.decode_token(expired) is None
    assert auth_svc.decode_token("not-a-jwt") is None
