"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the current account from the request.

One mechanism: `Authorization: Bearer <session token>`. Whatever goes
wrong (no header, wrong scheme, bad signature, expired, no subject),
the client gets the same 401. The specific reason is only logged.

The resolved account_id is the row-scoping key for every resource query.
"""

from dataclasses import dataclass, field
from typing import Optional

import structlog
from fastapi import Header, HTTPException

from headacher.auth.errors import Unauthorized, UnauthorizedReason
from headacher.auth.jwt import TokenError, verify_token

logger = structlog.get_logger()

UNAUTHORIZED_DETAIL = "Not authenticated"


@dataclass
class CurrentAccount:
    """The authenticated account making the request.

    Learn: `claims` carries the convenience claims from the token
    (auth_provider, wallet_address, ...). They are for display only;
    anything privileged must re-resolve through IdentityService.
    """

    account_id: str
    claims: dict = field(default_factory=dict)

    @property
    def auth_provider(self) -> Optional[str]:
        return self.claims.get("auth_provider")


def authenticate(authorization: Optional[str]) -> CurrentAccount:
    """Resolve the bearer header to an account. Raises Unauthorized."""
    if not authorization:
        raise Unauthorized(UnauthorizedReason.MISSING_HEADER)

    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise Unauthorized(UnauthorizedReason.MISSING_HEADER)

    try:
        payload = verify_token(token)
    except TokenError:
        raise Unauthorized(UnauthorizedReason.INVALID_OR_EXPIRED)

    subject = payload.get("sub")
    if not subject or not isinstance(subject, str):
        raise Unauthorized(UnauthorizedReason.MISSING_SUBJECT)

    return CurrentAccount(account_id=subject, claims=payload)


async def get_current_account(
    authorization: Optional[str] = Header(None),
) -> CurrentAccount:
    """Extract the current account (required — 401 if no valid token)."""
    try:
        return authenticate(authorization)
    except Unauthorized as e:
        logger.warning("auth.unauthorized", reason=e.reason.value)
        raise HTTPException(
            status_code=401,
            detail=UNAUTHORIZED_DETAIL,
            headers={"WWW-Authenticate": "Bearer"},
        )
