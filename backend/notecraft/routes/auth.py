"""
NoteCraft Backend — Auth Route
===============================

GET /api/auth/user reports who the bearer credential belongs to. It lives
outside the authenticated zone: an anonymous or rejected caller gets
``{"user": null}`` with HTTP 200, never a 401.
"""

import logging

from fastapi import APIRouter, Depends

from notecraft.middleware.session import get_identity_client
from notecraft.provider.identity import IdentityClient
from notecraft.provider.results import ProviderErr, ProviderOk
from notecraft.schemas.auth import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.get("/user", response_model=UserResponse, summary="Current user for the bearer credential")
async def current_user(identity: IdentityClient = Depends(get_identity_client)) -> UserResponse:
    match await identity.get_user():
        case ProviderOk(value=principal):
            return UserResponse(user=principal)
        case ProviderErr(message=message):
            logger.debug("No user for request: %s", message)
            return UserResponse(user=None)
