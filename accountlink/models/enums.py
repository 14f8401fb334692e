"""Role enumeration and its total order.

Roles are stored as plain string tokens. The order below is the privilege
order used when two accounts are merged: ``user < verified < moderator < admin``.
"""

import enum


class Role(str, enum.Enum):
    """Privilege level of a user. Declaration order is the privilege order."""

    USER = "user"  # regular user
    VERIFIED = "verified"  # uploads thumbnails without approval
    MODERATOR = "moderator"  # approves or rejects uploads
    ADMIN = "admin"  # manages users and uploads

    @property
    def rank(self) -> int:
        """Position in the privilege order (0 is lowest)."""
        return _ROLE_ORDER.index(self)


_ROLE_ORDER: tuple[Role, ...] = tuple(Role)

ROLE_VALUES = frozenset(r.value for r in Role)


def max_role(a: Role, b: Role) -> Role:
    """Return the higher of two roles; ``a`` when they are equal."""
    return a if a.rank >= b.rank else b


def parse_role(value: object) -> Role:
    """
    Map a stored role token to Role.

    Tokens must match exactly; there is no case folding and no default.
    Raises ValueError for anything else.
    """
    if isinstance(value, Role):
        return value
    if not isinstance(value, str) or value not in ROLE_VALUES:
        raise ValueError(f"Unknown role token: {value!r}")
    return Role(value)
