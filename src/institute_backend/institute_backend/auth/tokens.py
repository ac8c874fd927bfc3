from __future__ import annotations

from typing import Any

from itsdangerous import BadData, URLSafeTimedSerializer

from ..core.constants import DEFAULT_TOKEN_MAX_AGE_SECONDS, DEFAULT_TOKEN_SALT
from ..core.exceptions import TokenInvalidError


class TokenSigner:
    """Signs and verifies session claim sets (timestamped, URL-safe)."""

    def __init__(
        self,
        secret_key: str,
        *,
        salt: str = DEFAULT_TOKEN_SALT,
        max_age_seconds: int = DEFAULT_TOKEN_MAX_AGE_SECONDS,
    ):
        if not secret_key:
            raise ValueError("secret_key is required")
        self._serializer = URLSafeTimedSerializer(secret_key, salt=salt)
        self._max_age = int(max_age_seconds)

    def sign(self, claims: dict[str, Any]) -> str:
        return self._serializer.dumps(claims)

    def unsign(self, token: Any) -> dict[str, Any]:
        # One message for every failure: callers must not learn which check failed.
        if not token or not isinstance(token, str):
            raise TokenInvalidError("Invalid or expired token")
        try:
            claims = self._serializer.loads(token, max_age=self._max_age)
        except BadData:
            raise TokenInvalidError("Invalid or expired token")
        if not isinstance(claims, dict):
            raise TokenInvalidError("Invalid or expired token")
        return claims
