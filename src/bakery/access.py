"""Caller identity and order access rules.

Identity is verified upstream; this module only decides what a verified
``(user_id, role)`` pair may do.
"""

from dataclasses import dataclass
from enum import Enum

from bakery.errors import AuthenticationError, AuthorizationError


class Role(Enum):
    ADMIN = "admin"
    STAFF = "staff"
    USER = "user"


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: Role

    @classmethod
    def of(cls, user_id, role):
        """Build an actor from raw values, rejecting blank ids and unknown roles."""
        if not user_id or not str(user_id).strip():
            raise AuthenticationError("Missing user identity")
        try:
            parsed_role = role if isinstance(role, Role) else Role(str(role).strip().lower())
        except ValueError:
            raise AuthenticationError(f"Unknown role: {role}") from None
        return cls(user_id=str(user_id).strip(), role=parsed_role)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def can_access(self, order) -> bool:
        """Owner or administrator."""
        return self.is_admin or order.is_owned_by(self.user_id)

    def require_admin(self, action: str = "perform this action") -> None:
        if not self.is_admin:
            raise AuthorizationError(f"Only administrators may {action}")

    def require_access(self, order, action: str = "access this order") -> None:
        if not self.can_access(order):
            raise AuthorizationError(f"Not allowed to {action}")
