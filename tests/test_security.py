"""
test_security.py — Unit tests for password hashing, JWT and cron secret utilities.
"""

from datetime import timedelta

from green_epidemic.core.config import settings
from green_epidemic.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_cron_secret,
    verify_password,
)


class TestPasswordHashing:
    def test_hash_differs_from_plain(self):
        assert hash_password("mysecret") != "mysecret"

    def test_verify_correct_password(self):
        hashed = hash_password("correct-horse-battery-staple")
        assert verify_password("correct-horse-battery-staple", hashed) is True

    def test_verify_wrong_password(self):
        hashed = hash_password("correct")
        assert verify_password("wrong", hashed) is False


class TestJWT:
    def test_encode_decode_roundtrip(self):
        token = create_access_token("user-id-123")
        assert decode_access_token(token) == "user-id-123"

    def test_tampered_token_returns_none(self):
        token = create_access_token("user-123")
        tampered = token[:-5] + "XXXXX"
        assert decode_access_token(tampered) is None

    def test_expired_token_returns_none(self):
        token = create_access_token("user-123", expires_delta=timedelta(seconds=-1))
        assert decode_access_token(token) is None


class TestCronSecret:
    def test_matching_secret(self, monkeypatch):
        monkeypatch.setattr(settings, "cron_secret", "s3cret")
        assert verify_cron_secret("s3cret") is True

    def test_wrong_secret(self, monkeypatch):
        monkeypatch.setattr(settings, "cron_secret", "s3cret")
        assert verify_cron_secret("guess") is False

    def test_empty_configured_secret_rejects_everything(self, monkeypatch):
        monkeypatch.setattr(settings, "cron_secret", "")
        assert verify_cron_secret("") is False
        assert verify_cron_secret("anything") is False

    def test_missing_presented_secret(self, monkeypatch):
        monkeypatch.setattr(settings, "cron_secret", "s3cret")
        assert verify_cron_secret(None) is False
