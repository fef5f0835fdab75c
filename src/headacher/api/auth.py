"""Auth API — wallet and federated sign-in, identity linking.

Learn: Routes for the dual-identity account model:
- GET  /auth/nonce?address=     → single-use SIWE challenge
- POST /auth/verify             → signed SIWE message → session token
- POST /auth/federated/verify   → provider ID token → session token
- GET  /auth/identities         → identities linked to the current account
- POST /auth/link/wallet        → attach a wallet (re-verifies the signature)
- POST /auth/link/federated     → attach a federated identity (re-verifies)
- GET  /auth/me                 → current account profile
- POST /auth/logout             → client-side only; tokens aren't revoked

Every credential failure is the same 401 body. The reason is logged,
never returned.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from headacher.auth.dependencies import CurrentAccount, get_current_account
from headacher.auth.errors import (
    AccountNotFound,
    AuthFailed,
    FederatedNotConfigured,
    IdentityConflict,
    KeySetUnavailable,
)
from headacher.auth.federated import KeySetCache, get_key_set_cache
from headacher.db.engine import get_db
from headacher.schemas.auth import (
    AccountRead,
    FederatedVerifyRequest,
    IdentityList,
    NonceResponse,
    SessionTokenResponse,
    SuccessResponse,
    WalletVerifyRequest,
)
from headacher.services.auth_service import AuthService
from headacher.services.identity_service import IdentityService

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")

AUTH_FAILED_DETAIL = "Authentication failed"

_AUTH_ERRORS = (
    AuthFailed,
    IdentityConflict,
    AccountNotFound,
    KeySetUnavailable,
    FederatedNotConfigured,
)


def get_federated_keys() -> KeySetCache:
    return get_key_set_cache()


def _auth_svc(
    db: AsyncSession = Depends(get_db),
    keys: KeySetCache = Depends(get_federated_keys),
) -> AuthService:
    return AuthService(db, key_cache=keys)


def _identity_svc(db: AsyncSession = Depends(get_db)) -> IdentityService:
    return IdentityService(db)


def _http_error(e: Exception) -> HTTPException:
    """Translate an auth-domain exception to its fixed HTTP response."""
    if isinstance(e, AuthFailed):
        logger.warning("auth.failed", reason=e.reason.value)
        return HTTPException(status_code=401, detail=AUTH_FAILED_DETAIL)
    if isinstance(e, IdentityConflict):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, AccountNotFound):
        logger.warning("auth.account_missing", account_id=e.account_id)
        return HTTPException(status_code=404, detail="Account not found")
    if isinstance(e, FederatedNotConfigured):
        logger.error("auth.federated_not_configured")
        return HTTPException(status_code=500, detail="Federated sign-in is not configured")
    logger.error("auth.key_set_unavailable", error=str(e))
    return HTTPException(status_code=500, detail="Identity provider unavailable")


# ─── Wallet sign-in ──────────────────────────────────────


@router.get("/nonce", response_model=NonceResponse)
async def get_nonce(
    address: Optional[str] = Query(None, description="0x-prefixed wallet address"),
    svc: AuthService = Depends(_auth_svc),
):
    """Issue a fresh nonce for address, replacing any outstanding one."""
    if not address:
        raise HTTPException(status_code=400, detail="address is required")
    try:
        nonce = await svc.issue_nonce(address)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return NonceResponse(nonce=nonce)


@router.post("/verify", response_model=SessionTokenResponse)
async def verify_wallet(body: WalletVerifyRequest, svc: AuthService = Depends(_auth_svc)):
    """Signed SIWE message → session token."""
    try:
        token = await svc.sign_in_with_wallet(body.message, body.signature)
    except _AUTH_ERRORS as e:
        raise _http_error(e)
    return SessionTokenResponse(token=token)


# ─── Federated sign-in ───────────────────────────────────


@router.post("/federated/verify", response_model=SessionTokenResponse)
async def verify_federated(
    body: FederatedVerifyRequest, svc: AuthService = Depends(_auth_svc)
):
    """Provider ID token → session token."""
    try:
        token = await svc.sign_in_with_federated(body.token)
    except _AUTH_ERRORS as e:
        raise _http_error(e)
    return SessionTokenResponse(token=token)


# ─── Identities & linking ────────────────────────────────


@router.get("/identities", response_model=IdentityList)
async def list_identities(
    current: CurrentAccount = Depends(get_current_account),
    svc: IdentityService = Depends(_identity_svc),
):
    """Identities linked to the current account, oldest first."""
    identities = await svc.list_identities(current.account_id)
    return {"identities": identities}


@router.post("/link/wallet", response_model=SuccessResponse)
async def link_wallet(
    body: WalletVerifyRequest,
    current: CurrentAccount = Depends(get_current_account),
    svc: AuthService = Depends(_auth_svc),
):
    """Attach a wallet to the current account.

    Learn: Returns 409 if the wallet belongs to another account. Accounts
    are never merged and identities never move.
    """
    try:
        await svc.link_wallet(current.account_id, body.message, body.signature)
    except _AUTH_ERRORS as e:
        raise _http_error(e)
    return SuccessResponse()


@router.post("/link/federated", response_model=SuccessResponse)
async def link_federated(
    body: FederatedVerifyRequest,
    current: CurrentAccount = Depends(get_current_account),
    svc: AuthService = Depends(_auth_svc),
):
    """Attach a federated identity to the current account."""
    try:
        await svc.link_federated(current.account_id, body.token)
    except _AUTH_ERRORS as e:
        raise _http_error(e)
    return SuccessResponse()


# ─── Session ─────────────────────────────────────────────


@router.get("/me", response_model=AccountRead)
async def get_me(
    current: CurrentAccount = Depends(get_current_account),
    svc: IdentityService = Depends(_identity_svc),
):
    """Get the current account's profile."""
    account = await svc.get_account(current.account_id)
    if not account:
        raise HTTPException(status_code=404, detail="Account not found")
    return AccountRead(
        id=account.id,
        created_at=account.created_at,
        email=account.email,
        display_name=account.display_name,
        auth_provider=current.auth_provider,
    )


@router.post("/logout", response_model=SuccessResponse)
async def logout():
    """Session tokens are stateless; the client discards its copy."""
    return SuccessResponse(message="Logged out successfully")
