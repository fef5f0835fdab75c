"""Shared shape of the two sign-in paths.

Learn: Wallet and federated sign-in look different on the wire but both
end in the same place: "this caller controls (provider, identifier)".
Each verifier takes its own credential type and returns a VerifiedIdentity;
IdentityService resolves or links that tuple without caring which path
produced it.
"""

from dataclasses import dataclass
from typing import Generic, Optional, Protocol, TypeVar

from headacher.db.models import IdentityProvider


@dataclass(frozen=True)
class VerifiedIdentity:
    provider: IdentityProvider
    identifier: str
    email: Optional[str] = None
    display_name: Optional[str] = None


@dataclass(frozen=True)
class WalletCredential:
    """A signed EIP-4361 message and its 65-byte hex signature."""

    message: str
    signature: str


@dataclass(frozen=True)
class FederatedCredential:
    """A provider-issued ID token and the audience it must be issued for."""

    token: str
    audience: str


C = TypeVar("C", contravariant=True)


class CredentialVerifier(Protocol, Generic[C]):
    async def verify(self, credential: C) -> VerifiedIdentity:
        """Prove present-tense control of the credential or raise AuthFailed."""
        ...
