"""
Bearer token helpers used to identify the acting user.

Tokens are HS256 JWTs signed with ``SECRET_KEY``.  Their subject
(``sub``) is the e-mail of the acting user and ``exp`` bounds their
lifetime.
"""

import base64
import hashlib
import hmac
import json
import time
from typing import Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings


TOKEN_HEADER = {"alg": "HS256", "typ": "JWT"}


def _encode_segment(claims: Dict[str, object]) -> str:
    raw = json.dumps(claims, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _unpad(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def _signature(signing_input: str) -> bytes:
    return hmac.new(settings.secret_key.encode("utf-8"), signing_input.encode("ascii"), hashlib.sha256).digest()


def create_access_token(data: Dict[str, str], expires_delta: Optional[int] = None) -> str:
    """Return ``header.claims.signature`` for ``data`` plus an ``exp`` claim.

    ``expires_delta`` is the lifetime in seconds and defaults to
    ``ACCESS_TOKEN_EXPIRE_MINUTES``.
    """
    lifetime = expires_delta or settings.access_token_expire_minutes * 60
    claims = dict(data, exp=int(time.time()) + lifetime)
    signing_input = f"{_encode_segment(TOKEN_HEADER)}.{_encode_segment(claims)}"
    signature = base64.urlsafe_b64encode(_signature(signing_input)).rstrip(b"=").decode("ascii")
    return f"{signing_input}.{signature}"


def decode_access_token(token: str) -> Optional[Dict[str, str]]:
    """Claims of a well-signed, unexpired token; ``None`` otherwise."""
    signing_input, _, signature = token.rpartition(".")
    if signing_input.count(".") != 1:
        return None
    try:
        if not hmac.compare_digest(_signature(signing_input), _unpad(signature)):
            return None
        claims = json.loads(_unpad(signing_input.split(".")[1]).decode("utf-8"))
        expired = int(claims["exp"]) < int(time.time())
    except (ValueError, UnicodeError, TypeError, KeyError):
        return None
    return None if expired else claims


security = HTTPBearer(auto_error=False)


def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Dict[str, object]:
    """Dependency that retrieves the acting user.

    If the request does not contain an ``Authorization`` header, the
    token is invalid/expired or its subject no longer exists, an HTTP
    401 error is raised.  On success, returns the decoded token payload
    extended with ``user_id``.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    from project_tracker_api.app.core.db import get_connection
    conn = get_connection()
    try:
        user_row = conn.execute(
            "SELECT id FROM users WHERE email = ?",
            (payload.get("sub"),),
        ).fetchone()
    finally:
        conn.close()
    if not user_row:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User no longer exists",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload["user_id"] = user_row["id"]
    return payload
