"""
Shared fixtures: an app over in-memory storage with a fake payment provider.
"""

import asyncio
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from mnews.api.app import create_app
from mnews.auth.jwt import create_token
from mnews.config import Settings
from mnews.core.errors import InvalidArgument
from mnews.core.models import Article, ArticleStatus, AuthorRef, PublisherRef, Role, User
from mnews.core.utils import utc_now
from mnews.integrations.payments import PaymentIntent, PaymentProvider
from mnews.storage import Collections, InMemoryDocumentStorage


ADMIN = "admin@mnews.com"
ALICE = "alice@example.com"
BOB = "bob@example.com"


class FakePaymentProvider(PaymentProvider):
    """Remembers calls; one intent per idempotency key. Intents succeed on confirm()."""

    def __init__(self):
        self.calls: list[dict] = []
        self.intents: dict[str, PaymentIntent] = {}
        self._by_key: dict[str, PaymentIntent] = {}

    async def create_payment_intent(self, amount_cents, currency, idempotency_key=None, metadata=None):
        self.calls.append({
            "amount_cents": amount_cents,
            "currency": currency,
            "idempotency_key": idempotency_key,
            "metadata": metadata,
        })
        if idempotency_key and idempotency_key in self._by_key:
            return self._by_key[idempotency_key]

        n = len(self.calls)
        intent = PaymentIntent(
            id=f"pi_{n}",
            client_secret=f"pi_{n}_secret",
            status="requires_payment_method",
            amount=amount_cents,
            currency=currency,
            metadata=metadata or {},
        )
        self.intents[intent.id] = intent
        if idempotency_key:
            self._by_key[idempotency_key] = intent
        return intent

    async def retrieve_payment_intent(self, intent_id):
        if intent_id not in self.intents:
            raise InvalidArgument(f"Unknown payment intent: {intent_id}")
        return self.intents[intent_id].model_copy()

    def confirm(self, intent_id: str) -> None:
        self.intents[intent_id].status = "succeeded"


# =============================================================================
# Helpers
# =============================================================================


def run(coro):
    """Drive an in-memory storage call from synchronous test code."""
    return asyncio.run(coro)


def make_article(
    title: str,
    author: str = ALICE,
    status: str = ArticleStatus.PUBLISHED.value,
    tags: list[str] | None = None,
    publisher: str | None = None,
    premium: bool = False,
    age_minutes: int = 0,
    views: int = 0,
) -> dict:
    created = utc_now() - timedelta(minutes=age_minutes)
    return Article(
        title=title,
        body=f"Body of {title}",
        author=AuthorRef(name=author.split("@")[0], email=author),
        publisher=PublisherRef(name=publisher) if publisher else None,
        tags=tags or [],
        status=status,
        is_premium=premium,
        views=views,
        created_at=created,
        updated_at=created,
    ).to_document()


def make_user(email: str, role: Role = Role.USER, premium: bool = False, **kwargs) -> dict:
    return User(email=email, name=email.split("@")[0], role=role, is_premium=premium, **kwargs).to_document()


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings():
    return Settings(
        environment="development",
        jwt_secret_key="test-secret",
        storage_backend="memory",
        sentry_dsn="",
        stripe_secret_key="",
    )


@pytest.fixture
def storage():
    """Fresh store with an admin and two plain users."""
    store = InMemoryDocumentStorage()
    run(store.insert_one(Collections.USERS, make_user(ADMIN, role=Role.ADMIN)))
    run(store.insert_one(Collections.USERS, make_user(ALICE)))
    run(store.insert_one(Collections.USERS, make_user(BOB)))
    return store


@pytest.fixture
def payments():
    return FakePaymentProvider()


@pytest.fixture
def app(settings, storage, payments):
    return create_app(settings=settings, storage=storage, payment_provider=payments)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def login(client, settings):
    """Switch the client's cookie to the given user (None = anonymous)."""

    def _login(email: str | None):
        client.cookies.clear()
        if email:
            client.cookies.set(settings.cookie_name, create_token(email, settings=settings))
        return client

    return _login
