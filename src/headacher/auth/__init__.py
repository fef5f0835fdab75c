"""Authentication and identity.

Learn: Two ways to sign in, one account model:
1. Wallet   → signed Sign-In with Ethereum message + single-use nonce
2. Federated → provider-issued RS256 ID token checked against its key set

Both produce a VerifiedIdentity(provider, identifier, ...). IdentityService
turns that into a canonical account id, and the session token minted here
carries that id as `sub` for row-level scoping on every later request.
"""
