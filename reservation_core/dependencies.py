"""Reusable FastAPI dependencies for auth and database access."""
from typing import Callable

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from .auth import decode_token
from .database import get_db
from .errors import AuthError, PermissionDeniedError
from .models import RoleEnum, User

oauth_scheme = OAuth2PasswordBearer(tokenUrl="/login", auto_error=False)


def get_current_user(token: str | None = Depends(oauth_scheme), db: Session = Depends(get_db)) -> User:
    if not token:
        raise AuthError("Not authenticated")
    payload = decode_token(token)
    email: str | None = payload.get("sub")
    if email is None:
        raise AuthError("Missing subject in token")
    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise AuthError("User not found")
    return user


def allow_roles(*roles: RoleEnum) -> Callable[[User], User]:
    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise PermissionDeniedError("Insufficient permissions")
        return current_user

    return dependency


require_admin = allow_roles(RoleEnum.ADMIN)
