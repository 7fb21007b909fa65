"""Bearer token helpers.

Sessions are issued by the identity provider; this service only needs to
verify the token and read the user id out of its subject. Issuing is kept
for tooling and tests.
"""
from __future__ import annotations

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from threadvote.core.errors import Unauthenticated
from threadvote.core.settings import settings


def create_access_token(user_id: int, extra_claims: dict[str, str] | None = None) -> str:
    """Create a signed JWT whose subject is the user id."""
    to_encode: dict[str, object] = {"sub": str(user_id)}
    if extra_claims:
        to_encode.update(extra_claims)
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> int:
    """Return the user id carried by a valid token.

    Raises:
        Unauthenticated: If the token is invalid, expired or has no usable subject.
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as err:
        raise Unauthenticated("Could not validate credentials") from err

    subject = payload.get("sub")
    if subject is None:
        raise Unauthenticated("Could not validate credentials")
    try:
        return int(subject)
    except (TypeError, ValueError) as err:
        raise Unauthenticated("Could not validate credentials") from err
