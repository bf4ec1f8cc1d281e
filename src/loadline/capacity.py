"""Per-user daily capacity."""

from __future__ import annotations

from .config import DefaultsPolicy
from .models import User


def capacity_of(user: User | None, policy: DefaultsPolicy | None = None) -> float:
    """Return the user's daily capacity in hours.

    Falls back to the policy default (8 hours) when the user has no positive
    capacity configured. Missing capacity is a soft default, never an error.
    """
    policy = policy or DefaultsPolicy()
    if user is not None and user.max_hours_per_day is not None and user.max_hours_per_day > 0:
        return float(user.max_hours_per_day)
    return policy.capacity_hours


def capacity_table(users: list[User], policy: DefaultsPolicy | None = None) -> dict[str, float]:
    """Map each user id to its effective daily capacity."""
    return {user.id: capacity_of(user, policy) for user in users}
