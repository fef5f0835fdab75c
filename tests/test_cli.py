"""CLI tests — run commands against a throwaway SQLite database."""

import asyncio

import pytest
from click.testing import CliRunner
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from headacher.auth.credentials import VerifiedIdentity
from headacher.auth.jwt import verify_token
from headacher.cli.main import cli
from headacher.db import engine as db_engine
from headacher.db.models import IdentityProvider
from headacher.services.identity_service import IdentityService

ADDRESS = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


@pytest.fixture()
def cli_db(tmp_path, monkeypatch):
    """Point the CLI's engine at SQLite. NullPool so each asyncio.run gets fresh connections."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}", poolclass=NullPool)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    monkeypatch.setattr(db_engine, "engine", engine)
    monkeypatch.setattr(db_engine, "async_session_factory", factory)
    return factory


def test_help_lists_commands():
    result = CliRunner().invoke(cli, ["--help"])
    assert result.exit_code == 0
    for command in ("serve", "init-db", "mint-token", "health"):
        assert command in result.output


def test_init_db_then_mint_token(cli_db):
    runner = CliRunner()
    result = runner.invoke(cli, ["init-db"])
    assert result.exit_code == 0, result.output

    async def seed():
        async with cli_db() as db:
            await IdentityService(db).resolve(
                VerifiedIdentity(provider=IdentityProvider.WALLET, identifier=ADDRESS)
            )

    asyncio.run(seed())

    result = runner.invoke(cli, ["mint-token", ADDRESS])
    assert result.exit_code == 0, result.output
    claims = verify_token(result.output.strip())
    assert claims["sub"] == ADDRESS
    assert claims["wallet_address"] == ADDRESS


def test_mint_token_unknown_account(cli_db):
    runner = CliRunner()
    assert runner.invoke(cli, ["init-db"]).exit_code == 0

    result = runner.invoke(cli, ["mint-token", "nobody"])
    assert result.exit_code == 1
