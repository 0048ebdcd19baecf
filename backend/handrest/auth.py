"""Authentication helpers and FastAPI security dependencies.

This module provides utilities to decode JWT tokens, a FastAPI
dependency `get_current_user` that validates the bearer token and
returns the corresponding `User`, and `require_roles`, which builds a
dependency rejecting users without one of the given roles.

Token verification raises HTTPExceptions on failure so the helpers can
be used directly inside route dependencies.
"""

from typing import Optional
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from sqlmodel import Session
from .services import JWT_SECRET, JWT_ALGORITHM
from .database import get_session
from . import models, repositories

bearer_scheme = HTTPBearer()
optional_bearer = HTTPBearer(auto_error=False)


def decode_token(token: str):
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises an HTTPException
    with status 401 on failure.
    """
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail='token expired')
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail='invalid token')


def _user_from_token(token: str, db: Session) -> models.User:
    payload = decode_token(token)
    user_id = payload.get('user_id')
    if not user_id:
        raise HTTPException(status_code=401, detail='invalid token payload')
    user = repositories.UserRepository(db).get(user_id)
    if not user:
        raise HTTPException(status_code=401, detail='user not found')
    return user


def get_current_user(credentials: HTTPAuthorizationCredentials = Security(bearer_scheme),
                     db: Session = Depends(get_session)):
    """FastAPI dependency that returns the authenticated user.

    Raises an HTTPException(401) for any authentication issue.
    """
    return _user_from_token(credentials.credentials, db)


def get_optional_user(credentials: Optional[HTTPAuthorizationCredentials] = Security(optional_bearer),
                      db: Session = Depends(get_session)) -> Optional[models.User]:
    """Like `get_current_user` but anonymous requests yield `None`.

    Bookings can be placed without an account; a token, when sent, must
    still be valid.
    """
    if credentials is None:
        return None
    return _user_from_token(credentials.credentials, db)


def require_roles(*roles: models.AppRole):
    """Build a dependency that admits users holding any of `roles`."""
    allowed = {r.value for r in roles}

    def dependency(user: models.User = Depends(get_current_user), db: Session = Depends(get_session)):
        held = set(repositories.RoleRepository(db).roles_for_user(user.id))
        if not held & allowed:
            raise HTTPException(status_code=403, detail='insufficient role')
        return user

    return dependency


require_manager = require_roles(*models.MANAGER_ROLES)
