"""Bearer-token authentication for the sales API.

Token issuance and verification live outside this service. The API only
needs "token in, user or nothing out", expressed as a ``TokenResolver``.
The default resolver reads a static token map from settings (``API_TOKENS``)
and is meant for development and tests; deployments install their own with
``set_resolver``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from fastapi import Header

from sales.api.errors import ApiError
from sales.config import get_settings


class UserRole(Enum):
    CUSTOMER = "customer"
    STAFF = "staff"
    ADMIN = "admin"


@dataclass(frozen=True)
class User:
    id: str
    email: str
    role: UserRole = UserRole.CUSTOMER
    name: str | None = None

    @property
    def is_staff(self) -> bool:
        return self.role in (UserRole.STAFF, UserRole.ADMIN)

    def can_see(self, customer_email: str | None, customer_id: str | None = None) -> bool:
        """Staff see every record; customers only their own."""
        if self.is_staff:
            return True
        if customer_id and str(customer_id) == self.id:
            return True
        return bool(customer_email) and customer_email.lower() == self.email.lower()


class TokenResolver(ABC):
    @abstractmethod
    def resolve(self, token: str) -> User | None:
        """Return the user a bearer token belongs to, or None."""
        ...


class StaticTokenResolver(TokenResolver):
    """Resolves tokens from a fixed ``{token: {id, email, role, name}}`` map."""

    def __init__(self, tokens: dict[str, dict]) -> None:
        self._users = {
            token: User(
                id=str(data.get("id") or data["email"]),
                email=data["email"],
                role=UserRole(data.get("role", UserRole.CUSTOMER.value)),
                name=data.get("name"),
            )
            for token, data in tokens.items()
        }

    @classmethod
    def from_settings(cls) -> "StaticTokenResolver":
        return cls(get_settings().api_tokens)

    def resolve(self, token: str) -> User | None:
        return self._users.get(token)


_resolver: TokenResolver | None = None


def get_resolver() -> TokenResolver:
    global _resolver
    if _resolver is None:
        _resolver = StaticTokenResolver.from_settings()
    return _resolver


def set_resolver(resolver: TokenResolver) -> None:
    global _resolver
    _resolver = resolver


def reset_resolver() -> None:
    global _resolver
    _resolver = None


def _bearer_token(authorization: str) -> str | None:
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def current_user(authorization: str = Header(default="")) -> User:
    """FastAPI dependency: the authenticated user, or 401."""
    token = _bearer_token(authorization)
    user = get_resolver().resolve(token) if token else None
    if user is None:
        raise ApiError(401, "Unauthorized")
    return user


def staff_user(authorization: str = Header(default="")) -> User:
    """FastAPI dependency: an authenticated staff or admin user."""
    user = current_user(authorization)
    if not user.is_staff:
        raise ApiError(403, "Forbidden")
    return user
