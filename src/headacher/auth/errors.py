"""Auth error taxonomy.

Learn: Services raise these; API routes translate them to HTTP.
- AuthFailed       → 401, one generic message for every reason
- IdentityConflict → 409, names the conflicting credential type
- Unauthorized     → 401, one generic message for every reason
- AccountNotFound  → 404, the session outlived its account
- KeySetUnavailable / FederatedNotConfigured → 500

The reason enums exist for logs and tests only. Clients never see them,
so a failed sign-in can't be used as an oracle for valid nonces or keys.
"""

import enum


class AuthFailureReason(str, enum.Enum):
    NONCE_NOT_FOUND = "nonce_not_found"
    NONCE_MISMATCH = "nonce_mismatch"
    NONCE_EXPIRED = "nonce_expired"
    BAD_SIGNATURE = "bad_signature"
    MALFORMED_MESSAGE = "malformed_message"
    MESSAGE_EXPIRED = "message_expired"
    DOMAIN_MISMATCH = "domain_mismatch"
    INVALID_TOKEN = "invalid_token"
    UNKNOWN_KEY = "unknown_key"
    MISSING_SUBJECT = "missing_subject"


class UnauthorizedReason(str, enum.Enum):
    MISSING_HEADER = "missing_header"
    INVALID_OR_EXPIRED = "invalid_or_expired"
    MISSING_SUBJECT = "missing_subject"


class AuthFailed(Exception):
    """A presented credential (signed message or ID token) was rejected."""

    def __init__(self, reason: AuthFailureReason):
        super().__init__(reason.value)
        self.reason = reason


class IdentityConflict(Exception):
    """The credential is already linked to a different account."""

    _MESSAGES = {
        "WALLET": "This wallet address is already linked to another account",
        "FEDERATED": "This federated account is already linked to another account",
    }

    def __init__(self, provider: str):
        super().__init__(
            self._MESSAGES.get(provider, "This identity is already linked to another account")
        )
        self.provider = provider


class Unauthorized(Exception):
    """The bearer session token is missing or unusable."""

    def __init__(self, reason: UnauthorizedReason):
        super().__init__(reason.value)
        self.reason = reason


class KeySetUnavailable(Exception):
    """The federated provider's public key set could not be fetched or parsed."""


class FederatedNotConfigured(Exception):
    """No expected audience (project id) is configured server-side."""


class AccountNotFound(Exception):
    """A session names an account that has no accounts row."""

    def __init__(self, account_id: str):
        super().__init__(f"Account {account_id} not found")
        self.account_id = account_id
