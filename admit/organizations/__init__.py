"""
Admit organizations module.

Organization lookup and membership storage.
"""

from .members import MembershipStore
from .models import (
    INVITABLE_ROLES,
    MANAGER_ROLES,
    MemberRole,
    Membership,
    Organization,
)
from .orgs import OrganizationStore

__all__ = [
    "OrganizationStore",
    "MembershipStore",
    "Organization",
    "Membership",
    "MemberRole",
    "MANAGER_ROLES",
    "INVITABLE_ROLES",
]
