"""Test fixtures — a throwaway SQLite database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own aiosqlite file database under tmp_path, with the
   schema created from the models. Nothing leaks between tests.
2. get_db is overridden to open a fresh session per request, the same way
   production does, so code paths that commit behave for real.
3. A file (not :memory:) database lets several sessions run at once, which
   the concurrent sign-in tests need.

Credentials are real: wallets are eth_account keys that sign actual SIWE
messages, and federated tokens are RS256 JWTs signed by a locally generated
key whose certificate is served by a fake key-set fetcher.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import pytest
import pytest_asyncio
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from eth_account import Account as EthAccount
from eth_account.messages import encode_defunct
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from headacher.api.auth import get_federated_keys
from headacher.auth.federated import KeySetCache
from headacher.auth.siwe import SiweMessage
from headacher.config import settings
from headacher.db.engine import get_db
from headacher.db.models import Base
from headacher.main import app

PROJECT_ID = "headacher-test"
ISSUER_BASE = "https://securetoken.google.com"


# ═══════════════════════════════════════════════════════════
# Database
# ═══════════════════════════════════════════════════════════


@pytest_asyncio.fixture()
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# ═══════════════════════════════════════════════════════════
# Settings
# ═══════════════════════════════════════════════════════════


@pytest.fixture(autouse=True)
def auth_settings(monkeypatch):
    """Pin the auth settings every test relies on."""
    monkeypatch.setattr(settings, "federated_project_id", PROJECT_ID)
    monkeypatch.setattr(settings, "federated_issuer_base", ISSUER_BASE)
    monkeypatch.setattr(settings, "siwe_domain", None)
    monkeypatch.setattr(settings, "nonce_ttl_seconds", 300)
    return settings


# ═══════════════════════════════════════════════════════════
# Wallets (SIWE)
# ═══════════════════════════════════════════════════════════


def siwe_text(
    address: str,
    nonce: str,
    domain: str = "localhost:5173",
    issued_at: Optional[datetime] = None,
    **extra,
) -> str:
    """Render a canonical SIWE message."""
    issued_at = issued_at or datetime.now(timezone.utc)
    return SiweMessage(
        domain=domain,
        address=address,
        uri=f"http://{domain}",
        version="1",
        chain_id=1,
        nonce=nonce,
        issued_at=issued_at.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
        statement="Sign in to Headacher",
        **extra,
    ).prepare()


class Wallet:
    """A throwaway Ethereum key that signs SIWE messages."""

    def __init__(self):
        self._account = EthAccount.create()

    @property
    def address(self) -> str:
        return self._account.address

    def sign(self, text: str) -> str:
        signed = EthAccount.sign_message(encode_defunct(text=text), self._account.key)
        return "0x" + bytes(signed.signature).hex()

    def signed_message(self, nonce: str, **kwargs) -> dict:
        text = siwe_text(self.address, nonce, **kwargs)
        return {"message": text, "signature": self.sign(text)}


@pytest.fixture()
def wallet():
    return Wallet()


@pytest.fixture()
def other_wallet():
    return Wallet()


# ═══════════════════════════════════════════════════════════
# Federated provider
# ═══════════════════════════════════════════════════════════


def _self_signed_cert(key) -> str:
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "securetoken.test")])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=1))
        .sign(key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM).decode()


@dataclass
class FakeProvider:
    """Signs ID tokens and serves the matching certificates by kid."""

    keys: dict = field(default_factory=dict)
    published: dict = field(default_factory=dict)
    fetches: int = 0
    fail: bool = False

    def rotate(self, kid: str, publish: bool = True) -> None:
        key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        self.keys[kid] = key
        if publish:
            self.published[kid] = _self_signed_cert(key)

    def publish(self, kid: str) -> None:
        self.published[kid] = _self_signed_cert(self.keys[kid])

    async def fetch(self, url: str, timeout: float) -> dict:
        from headacher.auth.errors import KeySetUnavailable

        self.fetches += 1
        if self.fail:
            raise KeySetUnavailable("provider down")
        return dict(self.published)

    def mint(
        self,
        uid: Optional[str] = "firebase-uid-1",
        kid: str = "kid-1",
        audience: str = PROJECT_ID,
        issuer: Optional[str] = None,
        expires_in: int = 3600,
        **claims,
    ) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "aud": audience,
            "iss": issuer or f"{ISSUER_BASE}/{audience}",
            "iat": now - timedelta(seconds=10),
            "exp": now + timedelta(seconds=expires_in),
            **claims,
        }
        if uid is not None:
            payload["sub"] = uid
        return jwt.encode(payload, self.keys[kid], algorithm="RS256", headers={"kid": kid})


@pytest.fixture(scope="session")
def _provider_keys():
    """RSA key generation is slow; share one published key across tests."""
    provider = FakeProvider()
    provider.rotate("kid-1")
    return provider.keys["kid-1"], provider.published["kid-1"]


@pytest.fixture()
def provider(_provider_keys):
    key, cert = _provider_keys
    return FakeProvider(keys={"kid-1": key}, published={"kid-1": cert})


@pytest.fixture()
def key_cache(provider):
    return KeySetCache(
        url="https://keys.test/certs",
        ttl_seconds=3300,
        fetcher=provider.fetch,
    )


# ═══════════════════════════════════════════════════════════
# HTTP clients
# ═══════════════════════════════════════════════════════════


@pytest_asyncio.fixture()
async def client(session_factory, key_cache):
    """HTTP client backed by the per-test database and fake key set.

    Learn: Unlike a mocked identity, auth here is real: tests sign in
    through /api/auth/* and send the resulting bearer token.
    """

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_federated_keys] = lambda: key_cache

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def wallet_sign_in(client, wallet: Wallet) -> str:
    """Full nonce → sign → verify round-trip; returns the session token."""
    r = await client.get("/api/auth/nonce", params={"address": wallet.address})
    assert r.status_code == 200, r.text
    r = await client.post("/api/auth/verify", json=wallet.signed_message(r.json()["nonce"]))
    assert r.status_code == 200, r.text
    return r.json()["token"]


async def federated_sign_in(client, provider: FakeProvider, uid: str, **claims) -> str:
    r = await client.post(
        "/api/auth/federated/verify", json={"token": provider.mint(uid=uid, **claims)}
    )
    assert r.status_code == 200, r.text
    return r.json()["token"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
