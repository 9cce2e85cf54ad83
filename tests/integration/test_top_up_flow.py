"""Top-up submission and admin verification (requires running PG + Redis)."""

import uuid

import pytest
from httpx import AsyncClient

from tests.integration.helpers import register_and_login

pytestmark = [pytest.mark.asyncio(loop_scope="session"), pytest.mark.integration]


def _reference() -> str:
    return f"UPI{uuid.uuid4().hex[:12].upper()}"


class TestTopUp:
    async def test_bundles_listed(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/credits/bundles")
        credits = [b["credits"] for b in resp.json()["data"]["items"]]
        assert 100 in credits

    async def test_submit_verify_credits_once(
        self, client: AsyncClient, admin_headers: dict[str, str]
    ) -> None:
        _, headers = await register_and_login(client)
        before = (await client.get("/api/v1/account/balance", headers=headers)).json()["data"]

        submitted = await client.post(
            "/api/v1/credits/top-ups",
            json={"bundle_credits": 100, "upi_reference": _reference()},
            headers=headers,
        )
        assert submitted.status_code == 201
        tx_id = submitted.json()["data"]["transaction_id"]

        # Unverified claims do not move the balance
        mid = (await client.get("/api/v1/account/balance", headers=headers)).json()["data"]
        assert mid["balance_credits"] == before["balance_credits"]

        pending = await client.get("/api/v1/admin/top-ups/pending", headers=admin_headers)
        assert tx_id in [t["id"] for t in pending.json()["data"]["items"]]

        verified = await client.post(
            f"/api/v1/admin/top-ups/{tx_id}/verify", headers=admin_headers
        )
        assert verified.json()["data"]["credited"] is True
        assert verified.json()["data"]["balance_credits"] == before["balance_credits"] + 100

        again = await client.post(f"/api/v1/admin/top-ups/{tx_id}/verify", headers=admin_headers)
        assert again.json()["data"]["credited"] is False

        after = (await client.get("/api/v1/account/balance", headers=headers)).json()["data"]
        assert after["balance_credits"] == before["balance_credits"] + 100

        audit = await client.get(
            "/api/v1/admin/audit-logs",
            params={"action_type": "TOP_UP_VERIFIED"},
            headers=admin_headers,
        )
        assert tx_id in [a["details"].get("transaction_id") for a in audit.json()["data"]["items"]]

    async def test_duplicate_reference(self, client: AsyncClient) -> None:
        _, headers = await register_and_login(client)
        body = {"bundle_credits": 50, "upi_reference": _reference()}

        await client.post("/api/v1/credits/top-ups", json=body, headers=headers)
        dup = await client.post("/api/v1/credits/top-ups", json=body, headers=headers)

        assert dup.status_code == 409

    async def test_reject(self, client: AsyncClient, admin_headers: dict[str, str]) -> None:
        _, headers = await register_and_login(client)
        submitted = await client.post(
            "/api/v1/credits/top-ups",
            json={"bundle_credits": 50, "upi_reference": _reference()},
            headers=headers,
        )
        tx_id = submitted.json()["data"]["transaction_id"]

        rejected = await client.post(f"/api/v1/admin/top-ups/{tx_id}/reject", headers=admin_headers)
        assert rejected.status_code == 200

        verify = await client.post(f"/api/v1/admin/top-ups/{tx_id}/verify", headers=admin_headers)
        assert verify.status_code == 404

    async def test_non_admin_forbidden(self, client: AsyncClient) -> None:
        _, headers = await register_and_login(client)
        resp = await client.get("/api/v1/admin/top-ups/pending", headers=headers)
        assert resp.status_code == 403
