"""
Admit organizations models.

Pydantic models for organizations and memberships. Organizations are owned
by the host application; Admit reads them and writes memberships only
through invitation acceptance.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class MemberRole(str, Enum):
    """Roles a user can hold in an organization."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


# Roles allowed to issue and cancel invitations
MANAGER_ROLES = frozenset({MemberRole.OWNER, MemberRole.ADMIN})

# Roles an invitation may grant; ownership is never transferred by invitation
INVITABLE_ROLES = frozenset({MemberRole.ADMIN, MemberRole.MEMBER})


class Organization(BaseModel):
    """
    Organization summary - the fields of the organizations table Admit reads.
    """

    id: UUID
    name: str
    description: Optional[str] = None
    created_by: Optional[UUID] = None

    model_config = {
        "from_attributes": True,
        "json_schema_extra": {
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "name": "Household budget",
                "description": "Shared family finances",
                "created_by": "456e7890-e89b-12d3-a456-426614174000",
            }
        },
    }


class Membership(BaseModel):
    """
    Membership model - one row of organization_members.

    At most one row exists per (organization_id, user_id) pair.
    """

    organization_id: UUID
    user_id: UUID
    role: MemberRole
    joined_at: datetime

    model_config = {
        "from_attributes": True,
        "json_schema_extra": {
            "example": {
                "organization_id": "789e0123-e89b-12d3-a456-426614174000",
                "user_id": "456e7890-e89b-12d3-a456-426614174000",
                "role": "member",
                "joined_at": "2024-01-01T00:00:00Z",
            }
        },
    }

    @property
    def can_manage_invitations(self) -> bool:
        return self.role in MANAGER_ROLES
