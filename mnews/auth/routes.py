# =============================================================================
# Auth API Routes
# =============================================================================
#
# Endpoints:
#   POST /jwt     - Issue a token cookie for a signed-in user
#   POST /logout  - Clear the token cookie
#
# Sign-in itself happens on the client with the identity provider; the
# API only turns the resulting identity into its own session cookie.
#
# =============================================================================

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel, EmailStr

from mnews.auth.jwt import clear_token_cookie, create_token, set_token_cookie

router = APIRouter(tags=["auth"])


class TokenRequest(BaseModel):
    email: EmailStr
    name: str | None = None


@router.post("/jwt")
async def issue_token(data: TokenRequest, request: Request, response: Response):
    """
    Sign a 24 hour token for the user and set it as the `token` cookie.
    """
    settings = request.app.state.settings
    claims = {"name": data.name} if data.name else None
    token = create_token(data.email.lower(), claims, settings=settings)
    set_token_cookie(response, token, settings)
    return {"success": True}


@router.post("/logout")
async def logout(request: Request, response: Response):
    """
    Clear the token cookie.
    """
    clear_token_cookie(response, request.app.state.settings)
    return {"success": True}
