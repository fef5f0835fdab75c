"""Auth service — sign-in and linking flows.

Learn: Every flow is verify → resolve/link → (mint):
- sign-in:  verifier.verify() → IdentityService.resolve() → session token
- link:     verifier.verify() → IdentityService.link(current account)

Linking re-runs the full verification. Holding a session is not proof of
controlling the credential being attached.

The wallet verifier consumes (and commits) the nonce before we resolve, so
a failure after that point still burns the challenge. The client just asks
for a new nonce.
"""

from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from headacher.auth.credentials import (
    FederatedCredential,
    VerifiedIdentity,
    WalletCredential,
)
from headacher.auth.errors import FederatedNotConfigured
from headacher.auth.federated import (
    FederatedCredentialVerifier,
    KeySetCache,
    get_key_set_cache,
)
from headacher.auth.jwt import claims_for, create_session_token
from headacher.auth.nonces import NonceStore
from headacher.auth.siwe import normalize_address
from headacher.auth.wallet import WalletCredentialVerifier
from headacher.config import settings
from headacher.services.identity_service import IdentityService

logger = structlog.get_logger()


class AuthService:
    """Orchestrates credential verification, account resolution and linking."""

    def __init__(self, db: AsyncSession, key_cache: Optional[KeySetCache] = None):
        self.db = db
        self.nonces = NonceStore(db)
        self.identities = IdentityService(db)
        self.key_cache = key_cache

    # ─── Verifiers ──────────────────────────────────────

    def wallet_verifier(self) -> WalletCredentialVerifier:
        return WalletCredentialVerifier(
            self.nonces,
            nonce_ttl_seconds=settings.nonce_ttl_seconds,
            expected_domain=settings.siwe_domain,
        )

    def federated_verifier(self) -> FederatedCredentialVerifier:
        return FederatedCredentialVerifier(
            self.key_cache or get_key_set_cache(),
            issuer_base=settings.federated_issuer_base,
        )

    def _federated_credential(self, token: str) -> FederatedCredential:
        # The audience is server configuration, never client input.
        if not settings.federated_project_id:
            raise FederatedNotConfigured("federated_project_id is not set")
        return FederatedCredential(token=token, audience=settings.federated_project_id)

    async def _verify_wallet(self, message: str, signature: str) -> VerifiedIdentity:
        return await self.wallet_verifier().verify(
            WalletCredential(message=message, signature=signature)
        )

    async def _verify_federated(self, token: str) -> VerifiedIdentity:
        credential = self._federated_credential(token)
        return await self.federated_verifier().verify(credential)

    # ─── Nonces ─────────────────────────────────────────

    async def issue_nonce(self, address: str) -> str:
        """Issue a challenge for address. Raises ValueError on a bad address."""
        return await self.nonces.issue(normalize_address(address))

    # ─── Sign-in ────────────────────────────────────────

    async def sign_in_with_wallet(self, message: str, signature: str) -> str:
        identity = await self._verify_wallet(message, signature)
        return await self._sign_in(identity)

    async def sign_in_with_federated(self, token: str) -> str:
        identity = await self._verify_federated(token)
        return await self._sign_in(identity)

    async def _sign_in(self, identity: VerifiedIdentity) -> str:
        account_id = await self.identities.resolve(identity)
        logger.info(
            "auth.signed_in",
            account_id=account_id,
            provider=identity.provider.value,
        )
        return create_session_token(claims_for(account_id, identity))

    # ─── Linking ────────────────────────────────────────

    async def link_wallet(self, account_id: str, message: str, signature: str) -> bool:
        identity = await self._verify_wallet(message, signature)
        return await self.identities.link(account_id, identity)

    async def link_federated(self, account_id: str, token: str) -> bool:
        identity = await self._verify_federated(token)
        return await self.identities.link(account_id, identity)
