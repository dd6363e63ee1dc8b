"""
Caller authentication for the digest endpoint.

Two kinds of credential are accepted in ``Authorization: Bearer <token>``:
the shared service token (scheduler and operators) and signed end-user
tokens issued by ``issue_user_token``.
"""
from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Union

from itsdangerous import BadData, SignatureExpired, URLSafeTimedSerializer

from jobscout.config import AppConfig
from jobscout.errors import AuthRequired, Unauthorized

TOKEN_SALT = "jobscout-user"


@dataclass(frozen=True)
class ServiceCaller:
    """Privileged caller: may broadcast or target any user."""


@dataclass(frozen=True)
class EndUser:
    user_id: str
    email: str = ""


Caller = Union[ServiceCaller, EndUser]


def _serializer(secret: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret, salt=TOKEN_SALT)


def issue_user_token(config: AppConfig, user_id: str, email: str = "") -> str:
    """Create a signed token for *user_id*."""
    if not config.user_token_secret:
        raise ValueError("JOBSCOUT_USER_TOKEN_SECRET is not set")
    return _serializer(config.user_token_secret).dumps({"sub": user_id, "email": email})


def _bearer(header: str | None) -> str:
    if not header or not header.strip():
        raise AuthRequired()
    value = header.strip()
    if value.lower().startswith("bearer "):
        value = value[7:].strip()
    if not value:
        raise AuthRequired()
    return value


def authenticate(header: str | None, config: AppConfig) -> Caller:
    """Resolve an Authorization header to a caller.

    Raises AuthRequired when the header is missing, Unauthorized when the
    token is neither the service token nor a valid, unexpired user token.
    """
    token = _bearer(header)

    if config.service_token and secrets.compare_digest(token.encode(), config.service_token.encode()):
        return ServiceCaller()

    if not config.user_token_secret:
        raise Unauthorized()
    try:
        data = _serializer(config.user_token_secret).loads(token, max_age=config.user_token_max_age)
    except SignatureExpired as exc:
        raise Unauthorized("Token expired") from exc
    except BadData as exc:
        raise Unauthorized() from exc

    user_id = data.get("sub") if isinstance(data, dict) else None
    if not user_id:
        raise Unauthorized()
    return EndUser(user_id=str(user_id), email=str(data.get("email") or ""))
