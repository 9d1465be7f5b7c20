"""
Basic Admit usage example.

This example walks one invitation through its life:
- An owner invites an email address
- The invitee looks the invitation up and accepts it
- A second acceptance is recognised as a no-op

Set ADMIT_SUPABASE_URL, ADMIT_SUPABASE_KEY and the ids below, then run with:
    python examples/basic_usage.py
"""

import asyncio
from uuid import UUID

from admit import Admit, ConflictError

ORGANIZATION_ID = UUID("00000000-0000-0000-0000-000000000001")
OWNER_ID = UUID("00000000-0000-0000-0000-000000000002")
INVITEE_ID = UUID("00000000-0000-0000-0000-000000000003")
INVITEE_EMAIL = "invitee@example.com"


async def main():
    async with await Admit.create() as admit:
        print("Issuing invitation...")
        try:
            invite = await admit.invites.invite(ORGANIZATION_ID, OWNER_ID, INVITEE_EMAIL)
        except ConflictError as e:
            print(f"  Not issued: {e.message} ({e.code})")
            return
        print(f"  Token: {invite.token}")
        print(f"  Expires: {invite.expires_at}")

        view = await admit.invites.lookup(invite.token)
        print(f"\n{view.email} is invited to {view.organization.name} as {view.role.value}")

        result = await admit.invites.accept(invite.token, INVITEE_ID, INVITEE_EMAIL)
        print(f"  {result.message}")

        again = await admit.invites.accept(invite.token, INVITEE_ID, INVITEE_EMAIL)
        print(f"  Second attempt: {again.message} (already member: {again.already_member})")

        expired = await admit.invites.sweep_expired()
        print(f"\nSweep expired {expired} invitations")


if __name__ == "__main__":
    asyncio.run(main())
