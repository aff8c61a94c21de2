"""FastAPI dependencies resolving the caller from the Authorization header."""

from fastapi import Depends, Header

from ordering.auth.identity import Identity, get_verifier
from ordering.errors import AccessDenied, AuthenticationFailed


def current_identity(authorization: str | None = Header(default=None)) -> Identity:
    if not authorization:
        raise AuthenticationFailed("Authentication token is missing")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationFailed("Authorization header must carry a Bearer token")
    return get_verifier().extract_identity(token.strip())


def admin_identity(identity: Identity = Depends(current_identity)) -> Identity:
    if not identity.is_admin:
        raise AccessDenied("Administrator role required")
    return identity
