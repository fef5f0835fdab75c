"""NonceStore tests — one live challenge per address, single use."""

from datetime import datetime, timezone

import pytest

from headacher.auth.nonces import NonceStore, generate_nonce

ADDRESS = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


def test_generated_nonces_are_siwe_compatible():
    nonce = generate_nonce()
    assert nonce.isalnum()
    assert len(nonce) >= 8
    assert generate_nonce() != nonce


@pytest.mark.asyncio
async def test_issue_and_get(db_session):
    store = NonceStore(db_session)
    value = await store.issue(ADDRESS)

    stored = await store.get(ADDRESS)
    assert stored is not None
    assert stored.value == value


@pytest.mark.asyncio
async def test_second_issue_replaces_first(db_session):
    store = NonceStore(db_session)
    first = await store.issue(ADDRESS)
    second = await store.issue(ADDRESS, now=datetime(2030, 1, 1, tzinfo=timezone.utc))

    stored = await store.get(ADDRESS)
    assert stored.value == second
    assert stored.value != first
    assert stored.issued_at.year == 2030


@pytest.mark.asyncio
async def test_consume_is_single_use(db_session):
    store = NonceStore(db_session)
    value = await store.issue(ADDRESS)

    assert await store.consume(ADDRESS, value) is True
    assert await store.consume(ADDRESS, value) is False
    assert await store.get(ADDRESS) is None


@pytest.mark.asyncio
async def test_consume_wrong_value_keeps_nonce(db_session):
    store = NonceStore(db_session)
    value = await store.issue(ADDRESS)

    assert await store.consume(ADDRESS, "not-the-value") is False
    assert (await store.get(ADDRESS)).value == value


@pytest.mark.asyncio
async def test_consume_race_has_one_winner(session_factory):
    """Two sessions consuming the same nonce: exactly one succeeds."""
    async with session_factory() as s:
        value = await NonceStore(s).issue(ADDRESS)

    async with session_factory() as a, session_factory() as b:
        first = await NonceStore(a).consume(ADDRESS, value)
        second = await NonceStore(b).consume(ADDRESS, value)

    assert [first, second].count(True) == 1
