from __future__ import annotations

from functools import lru_cache
import logging

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security.jwt_verifier import (
    AuthTokenValidationError,
    SharedSecretJWTVerifier,
)
from app.db.session import get_db
from app.schemas.request_identity import RequestIdentity
from app.services.identity_mapping_service import attach_internal_user_context

logger = logging.getLogger(__name__)


def _normalized_auth_mode() -> str:
    raw = (settings.AUTH_MODE or "legacy_header").strip().lower()
    if raw in {"legacy_header", "dual", "jwt_only"}:
        return raw
    return "legacy_header"


@lru_cache(maxsize=1)
def _get_verifier() -> SharedSecretJWTVerifier:
    algorithms = [
        token.strip().upper()
        for token in (settings.AUTH_JWT_ALGORITHMS or "HS256").split(",")
        if token.strip()
    ]
    return SharedSecretJWTVerifier(
        secret=settings.AUTH_JWT_SECRET,
        audience=settings.AUTH_JWT_AUDIENCE,
        algorithms=algorithms or ["HS256"],
        leeway_sec=settings.AUTH_JWT_CLOCK_SKEW_SEC,
    )


def _extract_bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization") or ""
    prefix = "Bearer "
    if not header.startswith(prefix):
        return None
    token = header[len(prefix) :].strip()
    return token or None


def _identity_from_legacy_header(request: Request) -> RequestIdentity:
    email = request.headers.get("X-User-Email") or request.headers.get("X-User") or ""
    return RequestIdentity(
        subject=None,
        email=email.strip().lower() or None,
        auth_source="legacy_header",
        claims={},
    )


def _extract_email_from_claims(claims: dict) -> str | None:
    for key in ("email", "preferred_username", "username"):
        value = claims.get(key)
        if value is None:
            continue
        text = str(value).strip().lower()
        if text:
            return text
    metadata = claims.get("user_metadata")
    if isinstance(metadata, dict) and metadata.get("email"):
        return str(metadata["email"]).strip().lower() or None
    return None


def _identity_from_token(token: str) -> RequestIdentity:
    try:
        claims = _get_verifier().verify(token)
    except AuthTokenValidationError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    subject = claims.get("sub")
    subject_text = str(subject).strip() if subject is not None else None
    email = _extract_email_from_claims(claims)
    if not email:
        logger.warning(
            "jwt_identity_email_missing subject=%s claim_keys=%s",
            subject_text or "-",
            sorted(str(k) for k in claims.keys()),
        )
    return RequestIdentity(
        subject=subject_text or None,
        email=email,
        auth_source="jwt",
        claims=claims,
    )


def resolve_request_identity(request: Request) -> RequestIdentity:
    token = _extract_bearer_token(request)
    mode = _normalized_auth_mode()
    if mode == "legacy_header":
        return _identity_from_legacy_header(request)

    if mode == "jwt_only":
        if not token:
            raise HTTPException(status_code=401, detail="Missing Bearer access token.")
        return _identity_from_token(token)

    # dual mode: prefer JWT when present, otherwise fallback to legacy header.
    if token:
        return _identity_from_token(token)
    return _identity_from_legacy_header(request)


def get_request_identity(request: Request) -> RequestIdentity:
    return resolve_request_identity(request)


def get_request_identity_with_db(
    request: Request,
    db: Session = Depends(get_db),
) -> RequestIdentity:
    identity = resolve_request_identity(request)
    return attach_internal_user_context(db, identity=identity)
