"""
FastAPI application example with Admit integration.

This example demonstrates how to serve invitations with FastAPI:
- Bearer token verification through Supabase auth
- Issuing, listing and cancelling invitations as an organization admin
- Looking up and redeeming an invitation as the invitee
- A background sweep that expires overdue invitations

Run with:
    uvicorn examples.fastapi_app:app --reload
"""

import asyncio
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from admit.auth import Identity
from admit.integrations.fastapi import AdmitFastAPI

integration = AdmitFastAPI(prefix="/api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with integration.lifespan(app):
        admit = integration.admit
        stop = asyncio.Event()
        sweeper = asyncio.create_task(
            admit.invites.sweeper.run_periodically(admit.config.sweep_interval_seconds, stop)
        )
        try:
            yield
        finally:
            stop.set()
            await sweeper


app = FastAPI(
    title="Admit Example API",
    description="Example API demonstrating Admit invitations",
    version="1.0.0",
    lifespan=lifespan,
)

# POST/GET /api/organizations/{org_id}/invitations
# DELETE   /api/organizations/{org_id}/invitations/{invitation_id}
# GET      /api/invitations/received
# GET/POST /api/invitations/{token}
integration.install(app)


@app.get("/api/me")
async def get_me(identity: Identity = Depends(integration.require_identity())):
    return {"user_id": str(identity.user_id), "email": identity.email}
