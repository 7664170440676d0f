from __future__ import annotations

from typing import Any

import jwt


class AuthTokenValidationError(Exception):
    pass


class SharedSecretJWTVerifier:
    """
    Verifies HS256-style access tokens signed with the identity provider's
    shared project secret.
    """

    def __init__(
        self,
        *,
        secret: str,
        audience: str | None,
        algorithms: list[str],
        leeway_sec: int = 60,
    ) -> None:
        self._secret = secret or ""
        self._audience = (audience or "").strip() or None
        self._algorithms = algorithms or ["HS256"]
        self._leeway = max(0, int(leeway_sec))

    def verify(self, token: str) -> dict[str, Any]:
        if not self._secret:
            raise AuthTokenValidationError("JWT verification is not configured.")
        if not token:
            raise AuthTokenValidationError("Missing access token.")

        options = {"require": ["exp", "sub"], "verify_aud": self._audience is not None}
        try:
            claims = jwt.decode(
                token,
                key=self._secret,
                algorithms=self._algorithms,
                audience=self._audience,
                leeway=self._leeway,
                options=options,
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthTokenValidationError("Access token has expired.") from exc
        except jwt.InvalidAudienceError as exc:
            raise AuthTokenValidationError("Access token audience is invalid.") from exc
        except jwt.PyJWTError as exc:
            raise AuthTokenValidationError(f"Invalid access token: {exc}") from exc

        if not isinstance(claims, dict):
            raise AuthTokenValidationError("Access token payload is not an object.")
        return claims
