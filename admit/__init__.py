"""
Admit - Organization invitations with Supabase.

Owners and admins invite people by email; invitees redeem a single-use
token to join the organization.

Example:
    ```python
    from admit import Admit

    admit = await Admit.create()

    # Issue an invitation
    invite = await admit.invites.invite(org.id, admin.id, "new@example.com", role="member")

    # Look it up and accept it as the invitee
    view = await admit.invites.lookup(invite.token)
    result = await admit.invites.accept(invite.token, user.id, user.email)

    # Expire overdue invitations
    expired = await admit.invites.sweep_expired()
    ```
"""

from .client import Admit
from .config import AdmitConfig, load_config
from .exceptions import (
    AdmitError,
    ConflictError,
    DatabaseError,
    ForbiddenError,
    GoneError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from .invitations import (
    Invitation,
    InvitationManager,
    InvitationStatus,
    ResolveAction,
    ResolveResult,
)
from .organizations import MemberRole

__version__ = "0.1.0"

__all__ = [
    # Main client
    "Admit",
    "AdmitConfig",
    "load_config",
    # Invitations
    "InvitationManager",
    "Invitation",
    "InvitationStatus",
    "ResolveAction",
    "ResolveResult",
    "MemberRole",
    # Errors
    "AdmitError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "GoneError",
    "DatabaseError",
]
