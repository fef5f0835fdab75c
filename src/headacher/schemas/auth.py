"""Pydantic schemas for the auth API."""

from typing import Optional

from pydantic import BaseModel, Field

from headacher.schemas._common import UtcDatetime


class NonceResponse(BaseModel):
    nonce: str


class WalletVerifyRequest(BaseModel):
    """A signed EIP-4361 message."""
    message: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)


class FederatedVerifyRequest(BaseModel):
    """A provider-issued ID token."""
    token: str = Field(..., min_length=1)


class SessionTokenResponse(BaseModel):
    token: str


class SuccessResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None


class PublicIdentity(BaseModel):
    """An identity as shown to its owner."""
    provider: str
    identifier: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    created_at: UtcDatetime

    model_config = {"from_attributes": True}


class IdentityList(BaseModel):
    identities: list[PublicIdentity]


class AccountRead(BaseModel):
    id: str
    created_at: UtcDatetime
    email: Optional[str] = None
    display_name: Optional[str] = None
    auth_provider: Optional[str] = None

    model_config = {"from_attributes": True}
