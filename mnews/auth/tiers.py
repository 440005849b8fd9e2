"""
Authorization tiers.

This defines WHAT level of access a route needs, not HOW we check it.
The actual checking happens in policies.py.
"""

from enum import Enum


class Tier(str, Enum):
    """
    Access level a route requires.

    Ordered from least to most restrictive. ``premium`` is a variant of
    ``authenticated`` that also needs an active subscription.
    """

    PUBLIC = "public"                  # Anyone, identity optional
    AUTHENTICATED = "authenticated"    # Any valid identity
    PREMIUM = "premium"                # Valid identity + active premium (admins pass)
    OWNER_OR_ADMIN = "owner-or-admin"  # Identity owns the resource, or is admin
    ADMIN = "admin"                    # Identity whose user record has role admin


# Tiers that need a verified identity before anything else is checked
AUTHENTICATED_TIERS = frozenset({
    Tier.AUTHENTICATED,
    Tier.PREMIUM,
    Tier.OWNER_OR_ADMIN,
    Tier.ADMIN,
})


def requires_identity(tier: Tier) -> bool:
    """Does this tier reject anonymous requests?"""
    return tier in AUTHENTICATED_TIERS
