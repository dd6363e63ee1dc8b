"""Tests for caller authentication."""

import pytest
from itsdangerous import URLSafeTimedSerializer

from jobscout.auth import EndUser, ServiceCaller, authenticate, issue_user_token
from jobscout.config import AppConfig
from jobscout.errors import AuthRequired, Unauthorized


def test_service_token():
    config = AppConfig(service_token="s3cret", user_token_secret="k")
    assert authenticate("Bearer s3cret", config) == ServiceCaller()


def test_user_token_round_trip():
    config = AppConfig(service_token="s3cret", user_token_secret="k")
    token = issue_user_token(config, "u1", "ada@example.com")
    assert authenticate(f"Bearer {token}", config) == EndUser("u1", "ada@example.com")


@pytest.mark.parametrize("header", [None, "", "Bearer ", "   "])
def test_missing_credentials(header):
    with pytest.raises(AuthRequired):
        authenticate(header, AppConfig(service_token="s3cret", user_token_secret="k"))


def test_token_signed_with_other_secret_is_rejected():
    token = issue_user_token(AppConfig(user_token_secret="other"), "u1")
    with pytest.raises(Unauthorized):
        authenticate(f"Bearer {token}", AppConfig(user_token_secret="k"))


def test_expired_token_is_rejected():
    config = AppConfig(user_token_secret="k", user_token_max_age=-1)
    token = issue_user_token(config, "u1")
    with pytest.raises(Unauthorized):
        authenticate(f"Bearer {token}", config)


def test_token_without_subject_is_rejected():
    token = URLSafeTimedSerializer("k", salt="jobscout-user").dumps({"email": "x@example.com"})
    with pytest.raises(Unauthorized):
        authenticate(f"Bearer {token}", AppConfig(user_token_secret="k"))


def test_empty_service_token_never_matches():
    with pytest.raises(Unauthorized):
        authenticate("Bearer anything", AppConfig(service_token="", user_token_secret=""))


def test_issue_requires_secret():
    with pytest.raises(ValueError):
        issue_user_token(AppConfig(user_token_secret=""), "u1")


@pytest.mark.parametrize("secret", ["k", ""])
def test_non_ascii_token_is_rejected_not_crashed(secret):
    config = AppConfig(service_token="s3cret", user_token_secret=secret)
    with pytest.raises(Unauthorized):
        authenticate("Bearer café", config)
