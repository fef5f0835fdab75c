"""Wallet credential verification (Sign-In with Ethereum).

Learn: The check order matters and is fixed:
1. parse the message                → MALFORMED_MESSAGE
2. look up the live nonce           → NONCE_NOT_FOUND
3. compare nonce values             → NONCE_MISMATCH
4. 5-minute window since issuance   → NONCE_EXPIRED
5. message expiry / domain binding  → MESSAGE_EXPIRED / DOMAIN_MISMATCH
6. recover the EIP-191 signer       → BAD_SIGNATURE
7. consume the nonce                → NONCE_NOT_FOUND if someone beat us to it

Only after step 7 does the caller get a VerifiedIdentity.
"""

from datetime import datetime, timedelta
from typing import Optional

import structlog
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_keys.exceptions import BadSignature
from eth_keys.exceptions import ValidationError as KeyValidationError
from eth_utils import ValidationError

from headacher.auth.credentials import VerifiedIdentity, WalletCredential
from headacher.auth.errors import AuthFailed, AuthFailureReason
from headacher.auth.nonces import NonceStore
from headacher.auth.siwe import SiweMessage, SiweMessageError
from headacher.db.models import IdentityProvider, ensure_utc, utcnow

logger = structlog.get_logger()

# What eth-account raises for a signature that is not 65 well-formed bytes.
SIGNATURE_ERRORS = (
    ValueError,
    TypeError,
    IndexError,
    BadSignature,
    KeyValidationError,
    ValidationError,
)


def recover_signer(message: str, signature: str) -> str:
    """Recover the checksum address that produced an EIP-191 personal signature."""
    return Account.recover_message(encode_defunct(text=message), signature=signature)


class WalletCredentialVerifier:
    """Verifies a signed SIWE message against the stored nonce."""

    def __init__(
        self,
        nonces: NonceStore,
        nonce_ttl_seconds: int = 300,
        expected_domain: Optional[str] = None,
    ):
        self.nonces = nonces
        self.nonce_ttl = timedelta(seconds=nonce_ttl_seconds)
        self.expected_domain = expected_domain

    async def verify(
        self, credential: WalletCredential, now: Optional[datetime] = None
    ) -> VerifiedIdentity:
        now = now or utcnow()

        try:
            message = SiweMessage.parse(credential.message)
        except SiweMessageError as e:
            logger.warning("wallet.malformed_message", error=str(e))
            raise AuthFailed(AuthFailureReason.MALFORMED_MESSAGE)

        address = message.address
        log = logger.bind(address=address)

        stored = await self.nonces.get(address)
        if stored is None:
            raise AuthFailed(AuthFailureReason.NONCE_NOT_FOUND)
        if message.nonce != stored.value:
            raise AuthFailed(AuthFailureReason.NONCE_MISMATCH)
        if now - ensure_utc(stored.issued_at) > self.nonce_ttl:
            raise AuthFailed(AuthFailureReason.NONCE_EXPIRED)

        expires = message.expiration_time_dt
        not_before = message.not_before_dt
        if (expires and now >= expires) or (not_before and now < not_before):
            raise AuthFailed(AuthFailureReason.MESSAGE_EXPIRED)
        if self.expected_domain and message.domain != self.expected_domain:
            log.warning("wallet.domain_mismatch", domain=message.domain)
            raise AuthFailed(AuthFailureReason.DOMAIN_MISMATCH)

        try:
            signer = recover_signer(message.prepare(), credential.signature)
        except SIGNATURE_ERRORS as e:
            log.warning("wallet.signature_unreadable", error=str(e))
            raise AuthFailed(AuthFailureReason.BAD_SIGNATURE)
        if signer != address:
            raise AuthFailed(AuthFailureReason.BAD_SIGNATURE)

        if not await self.nonces.consume(address, stored.value):
            raise AuthFailed(AuthFailureReason.NONCE_NOT_FOUND)

        log.info("auth.wallet_verified")
        return VerifiedIdentity(provider=IdentityProvider.WALLET, identifier=address)
