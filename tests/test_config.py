"""Tests for layered configuration loading."""

import pytest

from jobscout.config import ENV_KEYS, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(ENV_KEYS.values()):
        monkeypatch.delenv(key, raising=False)


def test_defaults_without_file_or_env(tmp_path):
    config = load_config(tmp_path / "missing.yaml")
    assert config.digest_send_hour == 8
    assert config.digest_batch_limit == 50
    assert config.default_match_threshold == 80.0
    assert config.arbeitsagentur_api_key == "jobboerse-jobsuche"
    assert config.digest_send_empty is False
    # no LLM key means no live search unless asked for
    assert config.enable_live_search is False
    assert not config.llm_enabled
    assert not config.email_enabled


def test_yaml_then_env_precedence(tmp_path, monkeypatch):
    path = tmp_path / "jobscout.yaml"
    path.write_text(
        "digest_send_hour: 7\nscore_delay_seconds: 0.2\ndigest_send_empty: true\n"
        "resend_api_key: should-be-ignored\nnot_a_setting: 1\n"
    )
    monkeypatch.setenv("DIGEST_SEND_HOUR", "9")
    monkeypatch.setenv("GROQ_API_KEY", "gsk_test")

    config = load_config(path)

    assert config.digest_send_hour == 9
    assert config.score_delay_seconds == 0.2
    assert config.digest_send_empty is True
    assert config.resend_api_key == ""
    assert config.groq_api_key == "gsk_test"
    assert config.enable_live_search is True


def test_invalid_numbers_fall_back_to_defaults(tmp_path, monkeypatch):
    monkeypatch.setenv("DIGEST_BATCH_LIMIT", "lots")
    monkeypatch.setenv("SMTP_PORT", "2525")
    config = load_config(tmp_path / "missing.yaml")
    assert config.digest_batch_limit == 50
    assert config.smtp_port == 2525


def test_email_enabled_with_smtp_only(tmp_path, monkeypatch):
    monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
    monkeypatch.setenv("SMTP_USER", "bot@example.com")
    monkeypatch.setenv("SMTP_PASSWORD", "pw")
    assert load_config(tmp_path / "missing.yaml").email_enabled
