"""
FastAPI integration for Admit.

Mounts the invitation routes on a FastAPI application and maps Admit errors
to JSON responses.

Example:
    ```python
    from fastapi import Depends, FastAPI
    from admit.integrations.fastapi import AdmitFastAPI

    integration = AdmitFastAPI()
    app = FastAPI(lifespan=integration.lifespan)
    integration.install(app)

    @app.get("/me")
    async def get_me(identity = Depends(integration.require_identity())):
        return {"email": identity.email}
    ```
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, List, Optional
from uuid import UUID

try:
    from fastapi import APIRouter, Depends, FastAPI, Query, Request
    from fastapi.exceptions import RequestValidationError
    from fastapi.responses import JSONResponse
    from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
except ImportError:
    raise ImportError(
        "FastAPI is required for this integration. "
        "Install it with: pip install fastapi"
    )

from ..auth.identity import Identity
from ..client import Admit
from ..exceptions import AdmitError, UnauthorizedError
from ..invitations.models import (
    CreateInvitationRequest,
    InvitationListItem,
    InvitationSummary,
    InvitationView,
    ReceivedInvitation,
    ResolveInvitationRequest,
    ResolveResult,
)

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


def error_body(code: str, message: str, status: Optional[str] = None) -> dict:
    return {"error": {"code": code, "message": message, "status": status}}


async def admit_error_handler(request: Request, exc: AdmitError) -> JSONResponse:
    """Render an AdmitError as ``{"error": {...}}`` with its HTTP status."""
    payload = exc.to_dict()
    headers = None
    if isinstance(exc, UnauthorizedError):
        headers = {"WWW-Authenticate": "Bearer"}

    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)

    return JSONResponse(
        status_code=exc.http_status,
        content=error_body(payload["code"], payload["message"], payload.get("status")),
        headers=headers,
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed path, query or body input as a 400 validation error."""
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(
        status_code=400,
        content=error_body("validation_error", message),
    )


class AdmitFastAPI:
    """
    FastAPI integration for Admit.

    Provides:
    - The invitation router (``self.router``)
    - Admit client lifecycle management
    - Dependency injection for the verified caller identity

    Example:
        ```python
        # Lifecycle managed by the app
        integration = AdmitFastAPI()
        app = FastAPI(lifespan=integration.lifespan)
        integration.install(app)

        # Or with an existing client
        admit = await Admit.create()
        integration = AdmitFastAPI(app, admit=admit)
        ```
    """

    def __init__(
        self,
        app: Optional[FastAPI] = None,
        admit: Optional[Admit] = None,
        supabase_url: Optional[str] = None,
        supabase_key: Optional[str] = None,
        prefix: str = "",
    ) -> None:
        """
        Initialize AdmitFastAPI integration.

        Args:
            app: FastAPI application to install the routes on (optional)
            admit: Existing Admit client (optional, created on setup otherwise)
            supabase_url: Supabase URL (optional, loads from env)
            supabase_key: Supabase key (optional, loads from env)
            prefix: Path prefix for the invitation routes
        """
        self.supabase_url = supabase_url
        self.supabase_key = supabase_key
        self.prefix = prefix
        self._admit = admit
        self._owns_admit = admit is None

        self.router = self._build_router()

        if app:
            self.install(app)

    def install(self, app: FastAPI) -> None:
        """Mount the router and register the error handlers on ``app``."""
        app.include_router(self.router, prefix=self.prefix)
        app.add_exception_handler(AdmitError, admit_error_handler)
        app.add_exception_handler(RequestValidationError, request_validation_handler)

    async def setup(self) -> None:
        """Initialize the Admit client if none was given."""
        if self._admit is None:
            self._admit = await Admit.create(
                supabase_url=self.supabase_url,
                supabase_key=self.supabase_key,
            )
            self._owns_admit = True

    async def teardown(self) -> None:
        """Close the Admit client if this integration created it."""
        if self._admit and self._owns_admit:
            await self._admit.close()
            self._admit = None

    @asynccontextmanager
    async def lifespan(self, app: FastAPI) -> AsyncIterator[None]:
        """Lifespan handler: ``FastAPI(lifespan=integration.lifespan)``."""
        await self.setup()
        try:
            yield
        finally:
            await self.teardown()

    @property
    def admit(self) -> Admit:
        """Get the Admit instance."""
        if not self._admit:
            raise RuntimeError("Admit not initialized. Call setup() first.")
        return self._admit

    def require_identity(self) -> Callable:
        """
        Dependency that requires a verified bearer token.

        Returns the caller's Identity or raises UnauthorizedError (401).
        """

        async def dependency(
            credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
        ) -> Identity:
            token = credentials.credentials if credentials else None
            return await self.admit.identity.verify(token)

        return dependency

    def _build_router(self) -> APIRouter:
        router = APIRouter(tags=["invitations"])
        current_identity = self.require_identity()

        @router.post(
            "/organizations/{org_id}/invitations",
            response_model=InvitationSummary,
        )
        async def create_invitation(
            org_id: UUID,
            body: CreateInvitationRequest,
            identity: Identity = Depends(current_identity),
        ) -> InvitationSummary:
            invitation = await self.admit.invites.invite(
                organization_id=org_id,
                inviter_user_id=identity.user_id,
                email=body.email,
                role=body.role,
            )
            return InvitationSummary.from_invitation(invitation)

        @router.get(
            "/organizations/{org_id}/invitations",
            response_model=List[InvitationListItem],
        )
        async def list_invitations(
            org_id: UUID,
            status: Optional[str] = Query(None),
            limit: int = Query(50, ge=1, le=200),
            offset: int = Query(0, ge=0),
            identity: Identity = Depends(current_identity),
        ) -> List[InvitationListItem]:
            invitations = await self.admit.invites.list_by_organization(
                org_id,
                identity.user_id,
                status=status,
                limit=limit,
                offset=offset,
            )
            return [InvitationListItem.from_invitation(inv) for inv in invitations]

        @router.delete("/organizations/{org_id}/invitations/{invitation_id}")
        async def cancel_invitation(
            org_id: UUID,
            invitation_id: UUID,
            identity: Identity = Depends(current_identity),
        ) -> dict:
            await self.admit.invites.cancel(org_id, invitation_id, identity.user_id)
            return {"invitation_id": str(invitation_id), "message": "Invitation cancelled"}

        # Declared before /invitations/{token} so "received" is not taken as a token
        @router.get(
            "/invitations/received",
            response_model=List[ReceivedInvitation],
        )
        async def received_invitations(
            identity: Identity = Depends(current_identity),
        ) -> List[ReceivedInvitation]:
            return await self.admit.invites.list_received(identity.user_id, identity.email)

        @router.get("/invitations/{token}", response_model=InvitationView)
        async def lookup_invitation(token: str) -> InvitationView:
            return await self.admit.invites.lookup(token)

        @router.post("/invitations/{token}", response_model=ResolveResult)
        async def resolve_invitation(
            token: str,
            body: ResolveInvitationRequest,
            identity: Identity = Depends(current_identity),
        ) -> ResolveResult:
            return await self.admit.invites.resolve(
                token,
                caller_user_id=identity.user_id,
                caller_email=identity.email,
                action=body.action,
            )

        return router
