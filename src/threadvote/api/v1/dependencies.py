"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from threadvote.core.errors import Forbidden, Unauthenticated
from threadvote.core.security import decode_access_token
from threadvote.db.session import get_db
from threadvote.models import User
from threadvote.repositories.user_repo import UserRepository
from threadvote.services.karma import InlineKarmaScheduler, KarmaScheduler, KarmaWorker

# HTTP Bearer scheme for JWT authentication; anonymous reads are allowed
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]
CredentialsDep = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]


def _resolve_user(credentials: HTTPAuthorizationCredentials, db: Session) -> User:
    user_id = decode_access_token(credentials.credentials)
    user = UserRepository(db).get_by_id(user_id)
    if user is None:
        raise Unauthenticated("User not found")
    return user


def get_current_user(credentials: CredentialsDep, db: SessionDep) -> User:
    """Get the current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer token credentials, if any were sent
        db: Database session

    Returns:
        User object for the authenticated user

    Raises:
        Unauthenticated: If no token was sent, it is invalid, or the user is unknown
    """
    if credentials is None:
        raise Unauthenticated("Not authenticated")
    return _resolve_user(credentials, db)


def get_optional_user(credentials: CredentialsDep, db: SessionDep) -> User | None:
    """Like `get_current_user`, but anonymous requests resolve to None."""
    if credentials is None:
        return None
    return _resolve_user(credentials, db)


def get_admin_user(current_user: Annotated[User, Depends(get_current_user)]) -> User:
    """Require the authenticated user to be an administrator."""
    if not current_user.is_admin:
        raise Forbidden("Administrator privileges required")
    return current_user


def get_karma_scheduler(request: Request, db: SessionDep) -> KarmaScheduler:
    """Return the background karma worker when it runs, else recompute inline."""
    worker: KarmaWorker | None = getattr(request.app.state, "karma_worker", None)
    if worker is not None and worker.running:
        return worker
    return InlineKarmaScheduler(db)


# Type aliases for user and scheduler dependencies
CurrentUserDep = Annotated[User, Depends(get_current_user)]
OptionalUserDep = Annotated[User | None, Depends(get_optional_user)]
AdminUserDep = Annotated[User, Depends(get_admin_user)]
KarmaSchedulerDep = Annotated[KarmaScheduler, Depends(get_karma_scheduler)]
