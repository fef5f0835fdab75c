"""End-to-end: wallet sign-in → replay rejected → link federated → conflict.

Learn: This walks the whole dual-identity lifecycle through HTTP only,
the way the web client does it.
"""

import pytest

from headacher.auth.jwt import verify_token

from conftest import bearer, federated_sign_in


@pytest.mark.asyncio
async def test_full_dual_identity_flow(client, wallet, provider):
    # 1. Nonce for the wallet
    r = await client.get("/api/auth/nonce", params={"address": wallet.address})
    assert r.status_code == 200
    nonce = r.json()["nonce"]

    # 2. Sign and verify → token whose subject is the address
    signed = wallet.signed_message(nonce)
    r = await client.post("/api/auth/verify", json=signed)
    assert r.status_code == 200
    token = r.json()["token"]
    assert verify_token(token)["sub"] == wallet.address

    # 3. Replaying the same signed message fails
    r = await client.post("/api/auth/verify", json=signed)
    assert r.status_code == 401

    # 4. Link a brand-new federated uid
    r = await client.post(
        "/api/auth/link/federated",
        json={"token": provider.mint(uid="uid-e2e", email="e2e@example.com")},
        headers=bearer(token),
    )
    assert r.status_code == 200
    assert r.json()["success"] is True

    r = await client.get("/api/auth/identities", headers=bearer(token))
    providers = [i["provider"] for i in r.json()["identities"]]
    assert providers == ["WALLET", "FEDERATED"]

    # The federated identity now signs in to the same account
    via_federated = await federated_sign_in(client, provider, "uid-e2e")
    assert verify_token(via_federated)["sub"] == wallet.address

    # 5. An unrelated account can't take the federated uid
    stranger = await federated_sign_in(client, provider, "uid-stranger")
    r = await client.post(
        "/api/auth/link/federated",
        json={"token": provider.mint(uid="uid-e2e")},
        headers=bearer(stranger),
    )
    assert r.status_code == 409

    # Data written through either identity lands on the one account
    r = await client.post("/api/headaches", json={"severity": 6}, headers=bearer(via_federated))
    assert r.status_code == 201
    r = await client.get("/api/headaches", headers=bearer(token))
    assert [h["severity"] for h in r.json()["items"]] == [6]
