"""
Who is calling.

Identity is resolved by a provider picked once at startup; routes only ever
see the resulting ``User``. Nothing here checks passwords or tokens.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional

from fastapi import Depends, HTTPException, Request, status
from pydantic import ValidationError as PydanticValidationError

from models import Role, User

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"
USER_NAME_HEADER = "X-User-Name"
USER_EMAIL_HEADER = "X-User-Email"
USER_ROLE_HEADER = "X-User-Role"

DEFAULT_USERS = [
    User(id="admin-1", name="Admin User", email="admin@pau.edu.ng", role=Role.ADMIN),
    User(id="student-1", name="Student User", email="student@pau.edu.ng", role=Role.STUDENT),
    User(id="faculty-1", name="Faculty User", email="faculty@pau.edu.ng", role=Role.FACULTY),
    User(id="facility-1", name="Facility User", email="facility@pau.edu.ng", role=Role.FACILITY),
]


class IdentityProvider(ABC):
    name = "base"

    @abstractmethod
    def resolve(self, request: Request) -> Optional[User]:
        """The calling user, or None when the request carries no usable identity."""


class DevIdentityProvider(IdentityProvider):
    """Development fallback: a fixed set of users picked by ``X-User-Id``."""

    name = "dev"

    def __init__(self, users: Iterable[User] = DEFAULT_USERS):
        self.users: Dict[str, User] = {u.id: u for u in users}

    def resolve(self, request: Request) -> Optional[User]:
        user_id = request.headers.get(USER_ID_HEADER)
        if not user_id:
            return None
        return self.users.get(user_id)


class HeaderIdentityProvider(IdentityProvider):
    """Trusts identity headers set by an authenticating gateway in front of us."""

    name = "header"

    def resolve(self, request: Request) -> Optional[User]:
        headers = request.headers
        user_id = headers.get(USER_ID_HEADER)
        role = headers.get(USER_ROLE_HEADER)
        if not user_id or not role:
            return None
        try:
            return User(
                id=user_id,
                name=headers.get(USER_NAME_HEADER) or user_id,
                email=headers.get(USER_EMAIL_HEADER),
                role=role.lower(),
            )
        except PydanticValidationError:
            logger.warning("Ignoring identity headers with unknown role %r", role)
            return None


PROVIDERS = {
    DevIdentityProvider.name: DevIdentityProvider,
    HeaderIdentityProvider.name: HeaderIdentityProvider,
}


def build_identity_provider(name: str) -> IdentityProvider:
    try:
        provider = PROVIDERS[name]()
    except KeyError:
        raise ValueError(f"unknown identity provider {name!r}")
    if isinstance(provider, DevIdentityProvider):
        logger.warning("Using development identity provider with built-in users")
    return provider


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity_provider


def get_optional_user(
    request: Request,
    provider: IdentityProvider = Depends(get_identity_provider),
) -> Optional[User]:
    user = provider.resolve(request)
    if user is not None and not user.active:
        return None
    return user


def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not signed in")
    return user


def require_roles(*roles: Role):
    allowed = set(roles)

    def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return user

    return dependency
