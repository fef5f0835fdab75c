"""Session token creation and verification.

Learn: Session tokens are stateless HS256 JWTs.
- `sub` is the canonical account id — the only claim anything may trust
- provider context (wallet address / federated uid / email) rides along
  for display, modelled as a discriminated union on `auth_provider`
- lifetime is long (a year by default) and there is no revocation list

The HMAC key is derived once from the configured secret and cached for
the life of the process.
"""

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Annotated, Literal, Optional, Union

import jwt
from pydantic import BaseModel, Field

from headacher.auth.credentials import VerifiedIdentity
from headacher.config import settings
from headacher.db.models import IdentityProvider


class TokenError(Exception):
    """Raised when token creation/verification fails."""


class BaseClaims(BaseModel):
    sub: str = Field(..., min_length=1)


class WalletClaims(BaseClaims):
    auth_provider: Literal["WALLET"] = "WALLET"
    wallet_address: str


class FederatedClaims(BaseClaims):
    auth_provider: Literal["FEDERATED"] = "FEDERATED"
    federated_uid: str
    email: Optional[str] = None


SessionClaims = Annotated[
    Union[WalletClaims, FederatedClaims], Field(discriminator="auth_provider")
]


def claims_for(account_id: str, identity: VerifiedIdentity) -> SessionClaims:
    """Build provider-context claims for the identity that just signed in."""
    if identity.provider == IdentityProvider.WALLET:
        return WalletClaims(sub=account_id, wallet_address=identity.identifier)
    return FederatedClaims(
        sub=account_id, federated_uid=identity.identifier, email=identity.email
    )


@lru_cache(maxsize=1)
def get_signing_key() -> bytes:
    """HMAC key for session tokens, derived once per process."""
    return settings.jwt_secret.encode("utf-8")


def create_session_token(
    claims: SessionClaims,
    expires_days: Optional[int] = None,
) -> str:
    """Create a signed session token for claims.sub."""
    now = datetime.now(timezone.utc)
    expires = now + timedelta(days=expires_days or settings.session_token_expire_days)
    payload = claims.model_dump(exclude_none=True)
    payload["iat"] = now
    payload["exp"] = expires
    return jwt.encode(payload, get_signing_key(), algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Verify and decode a session token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token,
            get_signing_key(),
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "iat"]},
        )
        return payload
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")
