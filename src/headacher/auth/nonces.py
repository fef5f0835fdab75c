"""Nonce store — one live sign-in challenge per wallet address.

Learn: Every mutation here is a single statement:
- issue()   → INSERT ... ON CONFLICT (address) DO UPDATE
- consume() → DELETE ... WHERE address = ? AND value = ?

consume() reporting rowcount is what makes a nonce single-use even when two
verifications of the same signed message race each other.
"""

import secrets
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from headacher.db.models import Nonce, utcnow

logger = structlog.get_logger()

# EIP-4361 nonces must be alphanumeric and at least 8 characters.
NONCE_NUM_BYTES = 16

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def generate_nonce(num_bytes: int = NONCE_NUM_BYTES) -> str:
    """Generate a cryptographically secure random hex nonce."""
    return secrets.token_hex(num_bytes)


class NonceStore:
    """Persistence for wallet sign-in challenges."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def issue(self, address: str, now: Optional[datetime] = None) -> str:
        """Create a fresh nonce for address, replacing any live one."""
        value = generate_nonce()
        issued_at = now or utcnow()

        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise RuntimeError(f"Nonce upsert not supported on dialect {dialect!r}")

        stmt = insert(Nonce).values(address=address, value=value, issued_at=issued_at)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Nonce.address],
            set_={"value": stmt.excluded.value, "issued_at": stmt.excluded.issued_at},
        )
        await self.db.execute(stmt)
        await self.db.commit()

        logger.info("nonce.issued", address=address)
        return value

    async def get(self, address: str) -> Optional[Nonce]:
        result = await self.db.execute(
            select(Nonce)
            .where(Nonce.address == address)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def consume(self, address: str, value: str) -> bool:
        """Delete the nonce if it still holds value. Returns True if deleted."""
        result = await self.db.execute(
            delete(Nonce).where(Nonce.address == address, Nonce.value == value)
        )
        await self.db.commit()
        return result.rowcount == 1
