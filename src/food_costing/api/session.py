"""
Authenticated session for the backend REST API.

The bearer token is held by an explicit AuthSession value that is passed to
ApiClient, rather than read from ambient global state. ApiClient.login() and
ApiClient.register_owner() fill it in; ApiClient.logout() clears it.
"""

from dataclasses import dataclass
from typing import Optional, Union

Identifier = Union[int, str]


@dataclass
class AuthUser:
    id: Identifier
    email: str
    full_name: Optional[str] = None


@dataclass
class AuthOrganization:
    id: Identifier
    name: Optional[str] = None


@dataclass
class AuthSession:
    """
    Bearer token plus the signed-in user and active organization.

    Attributes:
        token: Opaque bearer token, or None when signed out
        user: Signed-in user
        organization: Active organization; its id scopes every org route
    """

    token: Optional[str] = None
    user: Optional[AuthUser] = None
    organization: Optional[AuthOrganization] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def org_id(self) -> Optional[Identifier]:
        return self.organization.id if self.organization else None

    @property
    def user_code(self) -> Optional[Identifier]:
        """User identifier sent on create/update routes for audit fields."""
        return self.user.id if self.user else None

    def clear(self) -> None:
        self.token = None
        self.user = None
        self.organization = None

    def __repr__(self) -> str:
        # Never print the token
        state = "authenticated" if self.is_authenticated else "anonymous"
        return f"AuthSession({state}, org_id={self.org_id!r})"
