#!/usr/bin/env python3
"""
Headacher Quickstart — wallet sign-in and a day of tracking in one script.

Creates a throwaway wallet → nonce → signed SIWE message → session token,
then logs a headache and an event and reads the dashboard back.
Run with: python examples/quickstart.py

Requires: pip install httpx eth-account
Backend must be running: http://localhost:8787
"""

import sys
from datetime import datetime, timezone

import httpx
from eth_account import Account
from eth_account.messages import encode_defunct

BASE = "http://localhost:8787/api"
DOMAIN = "localhost:5173"


def siwe_message(address: str, nonce: str) -> str:
    issued_at = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    return (
        f"{DOMAIN} wants you to sign in with your Ethereum account:\n"
        f"{address}\n"
        "\n"
        "Sign in to Headacher\n"
        "\n"
        f"URI: http://{DOMAIN}\n"
        "Version: 1\n"
        "Chain ID: 1\n"
        f"Nonce: {nonce}\n"
        f"Issued At: {issued_at}"
    )


def main():
    client = httpx.Client(base_url=BASE, timeout=10)

    # ── Health check ──────────────────────────────────────────────
    print("Checking backend health...")
    try:
        resp = client.get("/health")
    except httpx.ConnectError:
        print(f"Backend not reachable at {BASE}")
        print("Start it with:  headacher serve --reload")
        sys.exit(1)
    health = resp.json()
    print(f"  Database: {'✓' if health['database'] == 'ok' else '✗'}")

    # ── Wallet sign-in ────────────────────────────────────────────
    wallet = Account.create()
    print(f"\n1. Signing in with throwaway wallet {wallet.address[:10]}...")

    resp = client.get("/auth/nonce", params={"address": wallet.address})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    message = siwe_message(wallet.address, resp.json()["nonce"])
    signed = Account.sign_message(encode_defunct(text=message), wallet.key)

    resp = client.post(
        "/auth/verify",
        json={"message": message, "signature": "0x" + bytes(signed.signature).hex()},
    )
    assert resp.status_code == 200, f"Failed: {resp.text}"
    client.headers["Authorization"] = f"Bearer {resp.json()['token']}"
    print("   Session token issued")

    # ── Replay is rejected ────────────────────────────────────────
    resp = client.post(
        "/auth/verify",
        json={"message": message, "signature": "0x" + bytes(signed.signature).hex()},
    )
    print(f"   Replaying the same signature → {resp.status_code} (nonce already used)")

    # ── Track ─────────────────────────────────────────────────────
    print("\n2. Logging a headache and a medication event...")
    resp = client.post("/headaches", json={"severity": 6, "aura": 1})
    assert resp.status_code == 201, f"Failed: {resp.text}"
    print(f"   Headache #{resp.json()['id']} severity {resp.json()['severity']}")

    resp = client.post("/events", json={"event_type": "medication", "value": "ibuprofen 400mg"})
    assert resp.status_code == 201, f"Failed: {resp.text}"
    print(f"   Event #{resp.json()['id']} {resp.json()['event_type']}")

    # ── Dashboard ─────────────────────────────────────────────────
    print("\n3. Last 7 days:")
    dash = client.get("/dashboard", params={"days": 7}).json()
    print(f"   {dash['start_date']} → {dash['end_date']}")
    print(f"   {len(dash['headaches'])} headache(s), {len(dash['events'])} event(s)")

    # ── Identities ────────────────────────────────────────────────
    identities = client.get("/auth/identities").json()["identities"]
    print("\n4. Linked identities:")
    for identity in identities:
        print(f"   {identity['provider']:<10} {identity['identifier']}")

    print("\nDone.")


if __name__ == "__main__":
    main()
