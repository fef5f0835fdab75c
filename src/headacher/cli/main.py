"""Headacher CLI — run the server and handle local admin chores.

Usage:
    headacher serve --reload                  # Run the API with uvicorn
    headacher init-db                         # Create tables (dev only; prod uses alembic)
    headacher mint-token 0xAbC...             # Sign a session token for an account
    headacher health                          # Ping a running server
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8787"


def _api_url() -> str:
    return os.environ.get("HEADACHER_API_URL", DEFAULT_API_URL).rstrip("/")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. CliRunner inside an async test)
    by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _fail(message: str) -> None:
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@click.group()
def cli():
    """Headacher — headache tracker API."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default: HEADACHER_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: HEADACHER_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host, port, reload):
    """Run the API server."""
    import uvicorn

    from headacher.config import settings

    uvicorn.run(
        "headacher.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@cli.command("init-db")
def init_db():
    """Create all tables directly from the models."""
    from headacher.db.engine import engine
    from headacher.db.models import Base

    async def _create():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await engine.dispose()

    _run(_create())
    click.secho("Database tables created.", fg="green")


@cli.command("mint-token")
@click.argument("account_id")
@click.option("--days", default=None, type=int, help="Lifetime in days")
def mint_token(account_id, days):
    """Sign a session token for an existing account (development helper)."""
    from headacher.auth.credentials import VerifiedIdentity
    from headacher.auth.jwt import claims_for, create_session_token
    from headacher.db.engine import async_session_factory, engine
    from headacher.db.models import IdentityProvider
    from headacher.services.identity_service import IdentityService

    async def _identities():
        async with async_session_factory() as db:
            svc = IdentityService(db)
            account = await svc.get_account(account_id)
            identities = await svc.list_identities(account_id) if account else None
        await engine.dispose()
        return account, identities

    account, identities = _run(_identities())
    if account is None:
        _fail(f"account {account_id} not found")
    if not identities:
        _fail(f"account {account_id} has no linked identities")

    first = identities[0]
    identity = VerifiedIdentity(
        provider=IdentityProvider(first.provider),
        identifier=first.identifier,
        email=first.email,
    )
    click.echo(create_session_token(claims_for(account_id, identity), expires_days=days))


@cli.command()
def health():
    """Check a running server's /api/health."""

    async def _get():
        async with httpx.AsyncClient(base_url=_api_url(), timeout=10.0) as client:
            r = await client.get("/api/health")
            r.raise_for_status()
            return r.json()

    try:
        data = _run(_get())
    except httpx.HTTPError as e:
        _fail(f"{_api_url()} unreachable: {e}")
    click.echo(json.dumps(data, indent=2))
    if data.get("status") != "healthy":
        sys.exit(1)


def main():
    cli()


if __name__ == "__main__":
    main()
