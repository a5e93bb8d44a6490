"""Actor identity and role checks.

Every privileged operation takes an explicit ``Actor`` instead of reading
session state.  ``None`` stands for "no session" and is audited as the
``SYSTEM`` identity.

Usage:
    from runion_admin.actors import Actor, Role, require_role

    actor = Actor(id="u1", name="Kiss Anna", role=Role.ADMIN)
    require_role(actor, Role.ADMIN)
"""

from enum import Enum

from pydantic import BaseModel

from runion_admin.errors import UnauthorizedError


class Role(str, Enum):
    """User roles, as stored in the ``User.role`` column."""

    USER = "USER"
    STAFF = "STAFF"
    ADMIN = "ADMIN"


ADMIN_ONLY = (Role.ADMIN,)
ADMIN_OR_STAFF = (Role.ADMIN, Role.STAFF)


class Actor(BaseModel):
    """The user on whose behalf an operation runs."""

    id: str
    name: str = ""
    email: str | None = None
    role: Role = Role.USER

    @property
    def display_name(self) -> str:
        """Name for audit attribution: full name, else e-mail, else ``Unknown User``."""
        return self.name.strip() or self.email or "Unknown User"


SYSTEM_ACTOR = Actor(id="SYSTEM", name="SYSTEM", role=Role.ADMIN)


def require_role(actor: Actor | None, roles: tuple[Role, ...] = ADMIN_ONLY) -> Actor:
    """Return ``actor`` if it holds one of ``roles``.

    Raises:
        UnauthorizedError: If there is no actor or its role is not allowed.
    """
    if actor is None:
        raise UnauthorizedError("Unauthorized: no authenticated user")
    if actor.role not in roles:
        allowed = " or ".join(r.value for r in roles)
        raise UnauthorizedError(
            f"Unauthorized: {allowed} role required (caller is {actor.role.value})"
        )
    return actor
