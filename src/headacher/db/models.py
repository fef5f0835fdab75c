"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Constraints and indexes are defined here so Alembic
can generate migrations by comparing these models to the actual DB.

Key concepts:
- Account is the canonical owner of every record. Its id is an opaque
  string: the checksum wallet address for wallet-first accounts (legacy
  scheme), a UUID4 for federated-first accounts.
- Identity rows link external credentials to an account. The pair
  (provider, identifier) is globally unique; that constraint is what makes
  concurrent sign-ins converge on one account.
- Column types stay portable (no JSONB/ARRAY) so the same models run on
  PostgreSQL in production and SQLite in tests.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_account_id() -> str:
    return str(uuid.uuid4())


def ensure_utc(moment: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from SQLite."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class IdentityProvider(str, enum.Enum):
    """Kinds of external credential an account can hold."""

    WALLET = "WALLET"
    FEDERATED = "FEDERATED"


# ══════════════════════════════════════════════════════════════
# Accounts & identities
# ══════════════════════════════════════════════════════════════


class Account(Base):
    """Canonical account. Every owned row references Account.id.

    Learn: Accounts are never deleted in normal operation. Profile fields
    are copied from the first federated sign-in, if any.
    """

    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    display_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    identities: Mapped[list["Identity"]] = relationship(back_populates="account")


class Identity(Base):
    """A linked external credential (wallet address or federated uid).

    Learn: Append-only. There is deliberately no unlink operation, so an
    account can never lose its last way to sign in.
    """

    __tablename__ = "identities"
    __table_args__ = (
        UniqueConstraint("provider", "identifier", name="uq_identities_provider_identifier"),
        Index("idx_identities_account", "account_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    provider: Mapped[str] = mapped_column(String(20), nullable=False)
    identifier: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    account: Mapped["Account"] = relationship(back_populates="identities")


class Nonce(Base):
    """The single live sign-in challenge for a wallet address.

    Learn: Keyed by address, so issuing a new nonce overwrites the old one.
    Expiry is checked lazily at verification time — nothing sweeps this table.
    """

    __tablename__ = "nonces"

    address: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(String(64), nullable=False)
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


# ══════════════════════════════════════════════════════════════
# Account-owned records
# ══════════════════════════════════════════════════════════════


class Headache(Base):
    """A severity entry: 0–10 plus whether an aura was present."""

    __tablename__ = "headaches"
    __table_args__ = (
        CheckConstraint("severity BETWEEN 0 AND 10", name="ck_headaches_severity"),
        CheckConstraint("aura IN (0, 1)", name="ck_headaches_aura"),
        Index("idx_headaches_account_timestamp", "account_id", "timestamp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    severity: Mapped[int] = mapped_column(Integer, nullable=False)
    aura: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class TimelineEvent(Base):
    """A free-form timeline item (medication, sleep, weather, ...)."""

    __tablename__ = "events"
    __table_args__ = (
        Index("idx_events_account_timestamp", "account_id", "timestamp"),
        Index("idx_events_account_type", "account_id", "event_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")
