"""
Authentication and authorization.

Design principles:
1. Credential lives in an http-only cookie, verified into an Identity
2. One dependency per route: `Depends(require_admin())` and friends
3. Role and premium come from the stored user, keyed on the verified email
4. Ownership is compared against the verified email only
"""

from mnews.auth.context import AuthContext, get_auth_context
from mnews.auth.jwt import (
    Identity,
    TokenExpiredError,
    TokenInvalidError,
    clear_token_cookie,
    create_token,
    decode_token,
    set_token_cookie,
)
from mnews.auth.policies import (
    Policy,
    owner_from_document,
    owner_from_path,
    require,
    require_admin,
    require_auth,
    require_owner_or_admin,
    require_premium,
    require_public,
)
from mnews.auth.routes import router as auth_router
from mnews.auth.tiers import Tier

__all__ = [
    # Main interface
    "require",
    "require_public",
    "require_auth",
    "require_premium",
    "require_owner_or_admin",
    "require_admin",
    "owner_from_path",
    "owner_from_document",
    "AuthContext",
    "get_auth_context",
    # Types
    "Policy",
    "Tier",
    "Identity",
    # JWT
    "create_token",
    "decode_token",
    "set_token_cookie",
    "clear_token_cookie",
    "TokenExpiredError",
    "TokenInvalidError",
    # Router
    "auth_router",
]
