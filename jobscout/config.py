"""Load application configuration from defaults, config/jobscout.yaml and the environment."""
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from jobscout.log import get_logger

log = get_logger(__name__)

load_dotenv()

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = ROOT_DIR / "config"
CONFIG_PATH: Path = CONFIG_DIR / "jobscout.yaml"
DATA_DIR: Path = ROOT_DIR / "data"

GROQ_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_MODEL = "llama-3.3-70b-versatile"
DEFAULT_SENDER = "JobScout AI <onboarding@resend.dev>"
ARBEITSAGENTUR_PUBLIC_KEY = "jobboerse-jobsuche"


@dataclass
class AppConfig:
    # LLM
    groq_api_key: str = ""
    llm_model: str = DEFAULT_MODEL
    llm_base_url: str = GROQ_BASE_URL

    # Job sources
    rapidapi_key: str = ""
    arbeitsagentur_api_key: str = ARBEITSAGENTUR_PUBLIC_KEY
    source_timeout_seconds: float = 15.0
    enable_live_search: bool = True

    # Email
    resend_api_key: str = ""
    resend_from: str = DEFAULT_SENDER
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    from_email: str = ""

    # Auth
    service_token: str = ""
    user_token_secret: str = ""
    user_token_max_age: int = 7 * 24 * 3600

    # Persistence
    db_path: str = str(DATA_DIR / "jobscout.db")

    # Pipeline tunables
    digest_send_hour: int = 8
    digest_batch_limit: int = 50
    default_match_threshold: float = 80.0
    first_run_window_hours: int = 24
    score_delay_seconds: float = 0.8
    digest_send_empty: bool = False

    @property
    def llm_enabled(self) -> bool:
        return bool(self.groq_api_key)

    @property
    def email_enabled(self) -> bool:
        return bool(self.resend_api_key) or bool(
            self.smtp_host and self.smtp_user and self.smtp_password
        )


# field name -> environment variable
ENV_KEYS: dict[str, str] = {
    "groq_api_key": "GROQ_API_KEY",
    "llm_model": "GROQ_LLM_MODEL",
    "llm_base_url": "LLM_BASE_URL",
    "rapidapi_key": "RAPIDAPI_KEY",
    "arbeitsagentur_api_key": "ARBEITSAGENTUR_API_KEY",
    "source_timeout_seconds": "SOURCE_TIMEOUT_SECONDS",
    "enable_live_search": "ENABLE_LIVE_SEARCH",
    "resend_api_key": "RESEND_API_KEY",
    "resend_from": "RESEND_FROM",
    "smtp_host": "SMTP_HOST",
    "smtp_port": "SMTP_PORT",
    "smtp_user": "SMTP_USER",
    "smtp_password": "SMTP_PASSWORD",
    "from_email": "FROM_EMAIL",
    "service_token": "JOBSCOUT_SERVICE_TOKEN",
    "user_token_secret": "JOBSCOUT_USER_TOKEN_SECRET",
    "user_token_max_age": "USER_TOKEN_MAX_AGE",
    "db_path": "JOBSCOUT_DB_PATH",
    "digest_send_hour": "DIGEST_SEND_HOUR",
    "digest_batch_limit": "DIGEST_BATCH_LIMIT",
    "default_match_threshold": "DEFAULT_MATCH_THRESHOLD",
    "first_run_window_hours": "FIRST_RUN_WINDOW_HOURS",
    "score_delay_seconds": "SCORE_DELAY_SECONDS",
    "digest_send_empty": "DIGEST_SEND_EMPTY",
}

# Never read from the YAML file; these belong in .env
SECRET_FIELDS: set[str] = {
    "groq_api_key",
    "rapidapi_key",
    "resend_api_key",
    "smtp_password",
    "service_token",
    "user_token_secret",
}


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def _coerce(name: str, raw: Any, default: Any) -> Any:
    """Convert *raw* to the type of *default*; fall back to *default* on bad input."""
    if isinstance(default, bool):
        if isinstance(raw, bool):
            return raw
        return str(raw).strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default, (int, float)):
        try:
            return type(default)(raw)
        except (TypeError, ValueError):
            log.warning("Invalid value for %s: %r — using %r", name, raw, default)
            return default
    return str(raw).strip()


def load_config(path: Path | str | None = None) -> AppConfig:
    """Build the AppConfig: defaults < YAML tunables < environment."""
    config = AppConfig()
    defaults = {f.name: getattr(config, f.name) for f in fields(AppConfig)}

    config_path = Path(path) if path else CONFIG_PATH
    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        for key, value in raw.items():
            if key not in defaults:
                log.warning("Unknown config key %r in %s — ignored", key, config_path.name)
                continue
            if key in SECRET_FIELDS:
                log.warning("Secret %r must be set in the environment, not %s", key, config_path.name)
                continue
            setattr(config, key, _coerce(key, value, defaults[key]))
    elif path:
        log.warning("Config file not found at %s — using defaults", config_path)

    for name, env_key in ENV_KEYS.items():
        value = get_env(env_key)
        if value:
            setattr(config, name, _coerce(name, value, defaults[name]))

    if "ENABLE_LIVE_SEARCH" not in os.environ and not config.groq_api_key:
        config.enable_live_search = False

    return config


def ensure_dirs(config: AppConfig) -> None:
    Path(config.db_path).parent.mkdir(parents=True, exist_ok=True)
