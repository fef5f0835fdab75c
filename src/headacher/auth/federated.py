"""Federated ID token verification (Firebase / Google secure token).

Learn: The provider signs ID tokens with rotating RSA keys and publishes
the matching X.509 certificates as {kid: pem}. We keep one process-wide
KeySetCache:
- fresh for ~55 minutes after a fetch
- an unknown kid forces one refresh (that's how key rotation is picked up)
- concurrent refreshes are allowed (each one is an idempotent GET)

A failed fetch is an infrastructure error (KeySetUnavailable → 500), not a
credential error, and is never retried here.
"""

import time
from functools import lru_cache
from typing import Any, Awaitable, Callable, Mapping, Optional

import httpx
import jwt
import structlog
from cryptography import x509

from headacher.auth.credentials import FederatedCredential, VerifiedIdentity
from headacher.auth.errors import AuthFailed, AuthFailureReason, KeySetUnavailable
from headacher.config import settings
from headacher.db.models import IdentityProvider

logger = structlog.get_logger()

KeySetFetcher = Callable[[str, float], Awaitable[Mapping[str, str]]]


async def fetch_key_set(
    url: str,
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Mapping[str, str]:
    """GET the provider's {kid: pem certificate} document."""
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(url)
            response.raise_for_status()
            document = response.json()
    except (httpx.HTTPError, ValueError) as e:
        raise KeySetUnavailable(f"Failed to fetch provider keys: {e}") from e
    if not isinstance(document, dict):
        raise KeySetUnavailable("Provider key document is not an object")
    return document


class KeySetCache:
    """Time-bounded cache of the provider's public keys, keyed by kid."""

    def __init__(
        self,
        url: str,
        ttl_seconds: float,
        timeout_seconds: float = 5.0,
        fetcher: Optional[KeySetFetcher] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.url = url
        self.ttl_seconds = ttl_seconds
        self.timeout_seconds = timeout_seconds
        self._fetcher = fetcher or fetch_key_set
        self._clock = clock
        self._keys: dict[str, Any] = {}
        self._fetched_at: Optional[float] = None

    def is_fresh(self) -> bool:
        return (
            self._fetched_at is not None
            and self._clock() - self._fetched_at < self.ttl_seconds
        )

    async def refresh(self) -> None:
        document = await self._fetcher(self.url, self.timeout_seconds)
        keys: dict[str, Any] = {}
        for kid, pem in document.items():
            try:
                cert = x509.load_pem_x509_certificate(str(pem).encode())
            except ValueError as e:
                raise KeySetUnavailable(f"Unreadable certificate for kid {kid}") from e
            keys[kid] = cert.public_key()
        self._keys = keys
        self._fetched_at = self._clock()
        logger.info("federated.keys_refreshed", count=len(keys))

    async def get_key(self, kid: str) -> Optional[Any]:
        if self.is_fresh() and kid in self._keys:
            return self._keys[kid]
        await self.refresh()
        return self._keys.get(kid)


@lru_cache(maxsize=1)
def get_key_set_cache() -> KeySetCache:
    """Process-wide key cache, built on first use."""
    return KeySetCache(
        url=settings.federated_certs_url,
        ttl_seconds=settings.federated_key_ttl_seconds,
        timeout_seconds=settings.federated_fetch_timeout_seconds,
    )


class FederatedCredentialVerifier:
    """Verifies RS256 ID tokens issued for a configured project."""

    def __init__(self, keys: KeySetCache, issuer_base: str):
        self.keys = keys
        self.issuer_base = issuer_base.rstrip("/")

    async def verify(self, credential: FederatedCredential) -> VerifiedIdentity:
        audience = credential.audience

        try:
            header = jwt.get_unverified_header(credential.token)
        except jwt.PyJWTError:
            raise AuthFailed(AuthFailureReason.INVALID_TOKEN)
        kid = header.get("kid")
        if not kid or not isinstance(kid, str):
            raise AuthFailed(AuthFailureReason.INVALID_TOKEN)

        key = await self.keys.get_key(kid)
        if key is None:
            logger.warning("federated.unknown_kid", kid=kid)
            raise AuthFailed(AuthFailureReason.UNKNOWN_KEY)

        try:
            payload = jwt.decode(
                credential.token,
                key,
                algorithms=["RS256"],
                audience=audience,
                issuer=f"{self.issuer_base}/{audience}",
                options={"require": ["exp", "iat"]},
            )
        except jwt.PyJWTError as e:
            logger.warning("federated.invalid_token", error=str(e))
            raise AuthFailed(AuthFailureReason.INVALID_TOKEN)

        uid = payload.get("sub")
        if not uid:
            raise AuthFailed(AuthFailureReason.MISSING_SUBJECT)

        return VerifiedIdentity(
            provider=IdentityProvider.FEDERATED,
            identifier=str(uid),
            email=_optional_str(payload.get("email")),
            display_name=_optional_str(payload.get("name")),
        )


def _optional_str(value: Any) -> Optional[str]:
    # Profile claims are provider-controlled; anything but a string is dropped.
    return value if isinstance(value, str) else None
