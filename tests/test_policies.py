"""
Tests for the authorization tiers and context resolution.

Core principle: every decision uses the verified identity and the stored
user record, never an email the client supplied.
"""

from datetime import timedelta

import pytest

from mnews.auth.context import AuthContext, get_auth_context
from mnews.auth.jwt import Identity
from mnews.auth.policies import Policy, require
from mnews.auth.tiers import Tier, requires_identity
from mnews.core.errors import Forbidden, Unauthenticated
from mnews.core.models import Role, User
from mnews.core.utils import utc_now
from mnews.storage import Collections, InMemoryDocumentStorage


def identity(email: str) -> Identity:
    now = utc_now()
    return Identity(email=email, issued_at=now, expires_at=now + timedelta(hours=24))


def context(email: str | None, role: Role = Role.USER, premium: bool = False) -> AuthContext:
    if email is None:
        return AuthContext.anonymous()
    return AuthContext(identity=identity(email), role=role, premium=premium)


# =============================================================================
# Policy.check
# =============================================================================


class TestPolicy:
    def test_public_allows_anyone(self):
        assert Policy(Tier.PUBLIC).check(context(None)) == (True, None)
        assert Policy(Tier.PUBLIC).check(context("a@x.com"))[0]

    @pytest.mark.parametrize("tier", [Tier.AUTHENTICATED, Tier.PREMIUM, Tier.OWNER_OR_ADMIN, Tier.ADMIN])
    def test_anonymous_is_unauthenticated(self, tier):
        policy = Policy(tier)
        assert requires_identity(tier)
        assert policy.check(context(None), owner_email="a@x.com")[0] is False

        with pytest.raises(Unauthenticated):
            policy.enforce(context(None), owner_email="a@x.com")

    def test_authenticated(self):
        assert Policy(Tier.AUTHENTICATED).check(context("a@x.com"))[0]

    def test_premium_needs_subscription(self):
        policy = Policy(Tier.PREMIUM)

        assert policy.check(context("a@x.com", premium=True))[0]
        assert not policy.check(context("a@x.com"))[0]
        with pytest.raises(Forbidden):
            policy.enforce(context("a@x.com"))

    def test_admin_passes_premium(self):
        assert Policy(Tier.PREMIUM).check(context("root@x.com", role=Role.ADMIN))[0]

    def test_owner_or_admin(self):
        policy = Policy(Tier.OWNER_OR_ADMIN)

        assert policy.check(context("a@x.com"), owner_email="a@x.com")[0]
        assert policy.check(context("a@x.com"), owner_email="A@X.com")[0]
        assert policy.check(context("root@x.com", role=Role.ADMIN), owner_email="a@x.com")[0]

        allowed, error = policy.check(context("b@x.com"), owner_email="a@x.com")
        assert not allowed
        assert error

    def test_owner_or_admin_without_owner_denies(self):
        policy = Policy(Tier.OWNER_OR_ADMIN)

        with pytest.raises(Forbidden):
            policy.enforce(context("b@x.com"), owner_email=None)

    def test_admin_only(self):
        policy = Policy(Tier.ADMIN)

        assert policy.check(context("root@x.com", role=Role.ADMIN))[0]
        with pytest.raises(Forbidden):
            policy.enforce(context("a@x.com"))

    def test_premium_user_is_not_admin(self):
        with pytest.raises(Forbidden):
            Policy(Tier.ADMIN).enforce(context("a@x.com", premium=True))

    def test_owner_route_requires_resolver(self):
        with pytest.raises(ValueError):
            require(Tier.OWNER_OR_ADMIN)


# =============================================================================
# Context resolution
# =============================================================================


class TestGetAuthContext:
    @pytest.mark.asyncio
    async def test_anonymous(self):
        ctx = await get_auth_context(None, InMemoryDocumentStorage())

        assert ctx.is_anonymous
        assert not ctx.is_admin
        assert not ctx.is_premium

    @pytest.mark.asyncio
    async def test_unknown_user_is_plain(self):
        ctx = await get_auth_context(identity("new@x.com"), InMemoryDocumentStorage())

        assert ctx.is_authenticated
        assert ctx.user is None
        assert ctx.role == Role.USER
        assert not ctx.is_premium

    @pytest.mark.asyncio
    async def test_admin_role_from_store(self):
        storage = InMemoryDocumentStorage()
        await storage.insert_one(Collections.USERS, User(email="root@x.com", role=Role.ADMIN).to_document())

        ctx = await get_auth_context(identity("root@x.com"), storage)

        assert ctx.is_admin
        assert ctx.user["email"] == "root@x.com"

    @pytest.mark.asyncio
    async def test_active_premium(self):
        storage = InMemoryDocumentStorage()
        user = User(email="a@x.com", is_premium=True, premium_taken=utc_now(), premium_duration=60)
        await storage.insert_one(Collections.USERS, user.to_document())

        ctx = await get_auth_context(identity("a@x.com"), storage)

        assert ctx.is_premium

    @pytest.mark.asyncio
    async def test_lapsed_premium_is_cleared(self):
        storage = InMemoryDocumentStorage()
        user = User(
            email="a@x.com",
            is_premium=True,
            premium_taken=utc_now() - timedelta(days=2),
            premium_duration=60,
        )
        await storage.insert_one(Collections.USERS, user.to_document())

        ctx = await get_auth_context(identity("a@x.com"), storage)

        assert not ctx.is_premium
        stored = await storage.find_one(Collections.USERS, {"email": "a@x.com"})
        assert stored["isPremium"] is False

    @pytest.mark.asyncio
    async def test_role_comes_from_identity_email_only(self):
        storage = InMemoryDocumentStorage()
        await storage.insert_one(Collections.USERS, User(email="root@x.com", role=Role.ADMIN).to_document())
        await storage.insert_one(Collections.USERS, User(email="a@x.com").to_document())

        ctx = await get_auth_context(identity("a@x.com"), storage)

        assert not ctx.is_admin
        assert not ctx.owns("root@x.com")
