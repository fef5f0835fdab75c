"""Identity service — canonical accounts, linked identities, linking rules.

Learn: Service layer separates business logic from HTTP routing.
This one owns two invariants:

1. (provider, identifier) belongs to exactly one account. Resolve-or-create
   is check-then-insert; when two requests race, the loser's INSERT hits the
   unique constraint, we roll back and re-read, and both return the same id.

2. Linking never moves an identity. Linking a credential you already own is
   a no-op; linking one owned by someone else is an IdentityConflict.
"""

from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from headacher.auth.credentials import VerifiedIdentity
from headacher.auth.errors import AccountNotFound, IdentityConflict
from headacher.db.models import Account, Identity, IdentityProvider, new_account_id

logger = structlog.get_logger()


class IdentityService:
    """Resolve, create, list, and link account identities."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Lookups ────────────────────────────────────────

    async def get_identity(
        self, provider: IdentityProvider, identifier: str
    ) -> Optional[Identity]:
        result = await self.db.execute(
            select(Identity).where(
                Identity.provider == provider.value,
                Identity.identifier == identifier,
            )
        )
        return result.scalars().first()

    async def get_account(self, account_id: str) -> Optional[Account]:
        return await self.db.get(Account, account_id)

    async def list_identities(self, account_id: str) -> list[Identity]:
        """All identities owned by account_id, oldest first."""
        result = await self.db.execute(
            select(Identity)
            .where(Identity.account_id == account_id)
            .order_by(Identity.created_at, Identity.id)
        )
        return list(result.scalars().all())

    # ─── Resolve or create ──────────────────────────────

    async def resolve(self, identity: VerifiedIdentity) -> str:
        """Return the account id for a verified identity, creating it if new."""
        if identity.provider == IdentityProvider.WALLET:
            return await self.resolve_or_create_for_wallet(identity.identifier)
        return await self.resolve_or_create_for_federated(
            identity.identifier, identity.email, identity.display_name
        )

    async def resolve_or_create_for_wallet(self, address: str) -> str:
        """Wallet-first accounts reuse the checksum address as their id."""
        existing = await self.get_identity(IdentityProvider.WALLET, address)
        if existing:
            return existing.account_id

        async def create():
            # Legacy rows may already hold an account keyed by the address.
            if await self.get_account(address) is None:
                self.db.add(Account(id=address))
            self.db.add(
                Identity(
                    account_id=address,
                    provider=IdentityProvider.WALLET.value,
                    identifier=address,
                )
            )

        return await self._create_or_converge(IdentityProvider.WALLET, address, create)

    async def resolve_or_create_for_federated(
        self,
        external_uid: str,
        email: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> str:
        """Federated-first accounts get a fresh opaque id."""
        existing = await self.get_identity(IdentityProvider.FEDERATED, external_uid)
        if existing:
            return existing.account_id

        async def create():
            account = Account(id=new_account_id(), email=email, display_name=display_name)
            self.db.add(account)
            self.db.add(
                Identity(
                    account_id=account.id,
                    provider=IdentityProvider.FEDERATED.value,
                    identifier=external_uid,
                    email=email,
                    display_name=display_name,
                )
            )

        return await self._create_or_converge(
            IdentityProvider.FEDERATED, external_uid, create
        )

    async def _create_or_converge(self, provider, identifier, create) -> str:
        await create()
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            winner = await self.get_identity(provider, identifier)
            if winner is None:
                raise
            logger.info(
                "identity.create_race_lost",
                provider=provider.value,
                account_id=winner.account_id,
            )
            return winner.account_id

        created = await self.get_identity(provider, identifier)
        logger.info(
            "identity.account_created",
            provider=provider.value,
            account_id=created.account_id,
        )
        return created.account_id

    # ─── Linking ────────────────────────────────────────

    async def link(self, account_id: str, identity: VerifiedIdentity) -> bool:
        """Attach a verified identity to account_id.

        Returns True if a new row was inserted, False if it was already linked.
        Raises IdentityConflict if another account owns it, AccountNotFound if
        account_id has no accounts row.
        """
        if await self.get_account(account_id) is None:
            raise AccountNotFound(account_id)

        existing = await self.get_identity(identity.provider, identity.identifier)
        if existing:
            return self._check_owner(account_id, existing)

        self.db.add(
            Identity(
                account_id=account_id,
                provider=identity.provider.value,
                identifier=identity.identifier,
                email=identity.email,
                display_name=identity.display_name,
            )
        )
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            winner = await self.get_identity(identity.provider, identity.identifier)
            if winner is None:
                raise
            return self._check_owner(account_id, winner)

        logger.info(
            "identity.linked",
            account_id=account_id,
            provider=identity.provider.value,
        )
        return True

    def _check_owner(self, account_id: str, existing: Identity) -> bool:
        if existing.account_id != account_id:
            logger.warning(
                "auth.link_conflict",
                account_id=account_id,
                provider=existing.provider,
            )
            raise IdentityConflict(existing.provider)
        return False
