import os
import time

# must be set before the app (and its settings) is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ["TELEMETRY_ENABLED"] = "false"
os.environ["AUTH_ISSUER"] = "https://idp.test/"
os.environ["AUTH_AUDIENCE"] = "https://api.marketplace.test"
os.environ.pop("CONTENT_CHECK_URL", None)

import httpx
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from marketplace.core.config import settings
from marketplace.core.db import get_db
from marketplace.core.security import TokenVerifier, get_token_verifier
from marketplace.main import app
from marketplace.models import Base
from marketplace.services.http_client import ServiceHttpClient
from marketplace.services.identity_admin import IdentityAdminClient, get_identity_admin
from marketplace.services.moderation_gateway import GatewayConfig, ModerationGateway, get_moderation_gateway
from tests.fixtures_seed import seed_admin, seed_buyer, seed_other_seller, seed_seller  # noqa: F401

KID = "test-key"


def _test_db_url() -> str:
    return os.getenv("DATABASE_URL_TEST") or "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def async_engine():
    url = _test_db_url()
    kwargs = {}
    if url.startswith("sqlite"):
        # one shared in-memory database for every connection of the test
        kwargs = {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    engine = create_async_engine(url, **kwargs)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def db_session(async_engine):
    session_factory = async_sessionmaker(bind=async_engine, expire_on_commit=False, class_=AsyncSession)
    async with session_factory() as session:
        yield session


@pytest.fixture(scope="session")
def signing_key():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    public_pem = key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()

    public_jwk = jwk.construct(public_pem, "RS256").to_dict()
    public_jwk["kid"] = KID
    return {"private_pem": private_pem, "jwks": {"keys": [public_jwk]}}


@pytest.fixture
def make_token(signing_key):
    def _make(subject: str, **overrides) -> str:
        now = int(time.time())
        claims = {
            "sub": subject,
            "iss": settings.auth_issuer,
            "aud": settings.auth_audience,
            "iat": now,
            "exp": now + 3600,
        }
        claims.update(overrides)
        return jwt.encode(claims, signing_key["private_pem"], algorithm="RS256", headers={"kid": KID})

    return _make


@pytest.fixture
def auth_headers(make_token):
    def _headers(subject: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(subject)}"}

    return _headers


@pytest.fixture
def token_verifier(signing_key):
    return TokenVerifier(
        issuer=settings.auth_issuer,
        audience=settings.auth_audience,
        jwks=signing_key["jwks"],
    )


@pytest.fixture
def gateway():
    """Local heuristic only; tests that need the external path build their own."""
    return ModerationGateway(GatewayConfig())


@pytest.fixture
def idp_requests():
    return []


@pytest.fixture
def idp_handler():
    """Default identity provider: token grant plus 200 on every user call."""

    def _handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth/token":
            return httpx.Response(200, json={"access_token": "mgmt-token", "expires_in": 3600})
        if request.method == "GET":
            return httpx.Response(200, json={"identities": [{"provider": "auth0"}]})
        return httpx.Response(200, json={})

    return _handler


@pytest_asyncio.fixture
async def identity_admin(idp_handler, idp_requests):
    def _recording(request: httpx.Request) -> httpx.Response:
        idp_requests.append(request)
        return idp_handler(request)

    client = IdentityAdminClient(
        domain="idp.test",
        client_id="cid",
        client_secret="secret",
        audience="https://idp.test/api/v2/",
        http=ServiceHttpClient(transport=httpx.MockTransport(_recording)),
    )
    try:
        yield client
    finally:
        await client.aclose()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, token_verifier, gateway, identity_admin):
    """
    HTTP client that uses the test DB session and test doubles via dependency override.
    """
    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_token_verifier] = lambda: token_verifier
    app.dependency_overrides[get_moderation_gateway] = lambda: gateway
    app.dependency_overrides[get_identity_admin] = lambda: identity_admin

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
