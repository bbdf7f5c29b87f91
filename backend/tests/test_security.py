from datetime import timedelta

from jose import jwt

from catalog_api.config import Settings
from catalog_api.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


def test_hash_is_salted_and_verifies():
    first = hash_password("abc123!")
    second = hash_password("abc123!")

    assert first != second
    assert first != "abc123!"
    assert verify_password("abc123!", first)
    assert verify_password("abc123!", second)


def test_wrong_password_does_not_verify():
    digest = hash_password("abc123!")
    assert not verify_password("abc124!", digest)
    assert not verify_password("", digest)


def test_malformed_digest_is_rejected():
    assert not verify_password("abc123!", "not-a-bcrypt-hash")
    assert not verify_password("abc123!", "")


def test_token_round_trip(settings):
    token = create_access_token({"id": "65a1f0c2e4b0a1b2c3d4e5f6", "email": "a@b.com"}, settings)

    result = decode_access_token(token, settings)

    assert result.ok
    assert result.error is None
    assert result.claims.id == "65a1f0c2e4b0a1b2c3d4e5f6"
    assert result.claims.email == "a@b.com"


def test_token_expires_one_hour_after_issue(settings):
    token = create_access_token({"id": "1", "email": "a@b.com"}, settings)
    payload = jwt.get_unverified_claims(token)

    assert payload["exp"] - payload["iat"] == 3600
    assert payload["sub"] == "1"


def test_expired_token_is_invalid(settings):
    token = create_access_token({"id": "1", "email": "a@b.com"}, settings, expires_delta=timedelta(seconds=-5))

    result = decode_access_token(token, settings)

    assert not result.ok
    assert result.claims is None
    assert "expired" in result.error.lower()


def test_token_signed_with_other_key_is_invalid(settings):
    other = Settings(secret_key="another-secret", logs_dir=settings.logs_dir)
    token = create_access_token({"id": "1", "email": "a@b.com"}, other)

    result = decode_access_token(token, settings)

    assert not result.ok
    assert result.error


def test_tampered_token_is_invalid(settings):
    token = create_access_token({"id": "1", "email": "a@b.com"}, settings)
    header, payload, signature = token.split(".")
    tampered = ".".join([header, payload, signature[::-1]])

    assert not decode_access_token(tampered, settings).ok
    assert not decode_access_token("garbage", settings).ok


def test_token_without_identity_is_invalid(settings):
    token = create_access_token({"role": "admin"}, settings)
    result = decode_access_token(token, settings)

    assert not result.ok
    assert result.error == "Token is missing identity claims"
