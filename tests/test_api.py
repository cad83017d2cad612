"""HTTP-level tests: authentication, permissions, envelopes and feed events."""

from datetime import date

import pytest

from bizops.security import hash_password
from tests.conftest import auth_headers, jsonapi

API = "/api/v1"


class TestSystem:
    async def test_health(self, client):
        response = await client.get(f"{API}/system/health")
        assert response.status_code == 200
        attrs = response.json()["data"]["attributes"]
        assert attrs == {"status": "healthy", "database": "connected", "redis": "connected"}


class TestAuth:
    @pytest.fixture
    async def member(self, make_user):
        return await make_user(
            "member@example.com", role="SALE", password_hash=hash_password("correct-horse")
        )

    async def test_login_returns_token(self, client, member):
        response = await client.post(
            f"{API}/auth/login",
            json=jsonapi("credentials", email="Member@Example.com", password="correct-horse"),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["data"]["attributes"]["email"] == "member@example.com"
        token = body["meta"]["access_token"]

        me = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        allowed = me.json()["data"]["attributes"]["allowed"]
        assert "edit" in allowed["crm"]
        assert "payroll" not in allowed

    async def test_wrong_password(self, client, member):
        response = await client.post(
            f"{API}/auth/login", json=jsonapi("credentials", email=member.email, password="nope")
        )
        assert response.status_code == 401

    async def test_inactive_user_is_forbidden(self, client, make_user):
        await make_user(
            "gone@example.com", is_active=False, password_hash=hash_password("correct-horse")
        )
        response = await client.post(
            f"{API}/auth/login",
            json=jsonapi("credentials", email="gone@example.com", password="correct-horse"),
        )
        assert response.status_code == 403

    async def test_missing_and_bad_tokens(self, client):
        assert (await client.get(f"{API}/auth/me")).status_code == 401
        response = await client.get(f"{API}/auth/me", headers={"Authorization": "Bearer junk"})
        assert response.status_code == 401

    async def test_deactivated_user_token_stops_working(self, client, make_user):
        user = await make_user("later@example.com", is_active=False)
        response = await client.get(f"{API}/auth/me", headers=auth_headers(user))
        assert response.status_code == 401


class TestPermissions:
    async def test_staff_cannot_manage_payroll_or_settings(self, client, staff):
        headers = auth_headers(staff)
        assert (await client.get(f"{API}/payroll", params={"month": "2026-10"}, headers=headers)).status_code == 403
        assert (await client.get(f"{API}/settings/backups", headers=headers)).status_code == 403
        assert (await client.get(f"{API}/dashboard/summary", headers=headers)).status_code == 403
        # Reading settings is open to everyone signed in.
        assert (await client.get(f"{API}/settings", headers=headers)).status_code == 200

    async def test_per_user_flag_grants_lead_access(self, client, make_user):
        plain = await make_user("plain@example.com", role="SALE")
        flagged = await make_user(
            "flagged@example.com", role="SALE", permissions={"leads": {"view": True}}
        )
        assert (await client.get(f"{API}/leads", headers=auth_headers(plain))).status_code == 403
        assert (await client.get(f"{API}/leads", headers=auth_headers(flagged))).status_code == 200

    async def test_flags_cannot_grant_admin_only_actions(self, client, make_user):
        user = await make_user("sneaky@example.com", permissions={"payroll": {"manage": True}})
        response = await client.get(f"{API}/payroll", params={"month": "2026-10"}, headers=auth_headers(user))
        assert response.status_code == 403

    async def test_admin_cannot_delete_self(self, client, admin):
        response = await client.delete(f"{API}/users/{admin.id}", headers=auth_headers(admin))
        assert response.status_code == 409


class TestLeadsApi:
    async def test_public_ingest_publishes_event(self, client, fake_redis):
        response = await client.post(
            f"{API}/leads/ingest", json={"fullname": "Web Visitor", "mobile": "0911", "source": "landing"}
        )
        assert response.status_code == 201
        attrs = response.json()["data"]["attributes"]
        assert attrs["name"] == "Web Visitor"
        assert attrs["status"] == "NEW"

        events = fake_redis.events("leads")
        assert len(events) == 1
        assert events[0]["type"] == "created"
        assert events[0]["data"]["phone"] == "0911"

    async def test_distribute_without_staff_is_conflict(self, client, admin):
        await client.post(f"{API}/leads/ingest", json={"name": "x", "phone": "1"})
        response = await client.post(
            f"{API}/leads/distribute", json=jsonapi("lead-distributions", course="ALL"), headers=auth_headers(admin)
        )
        assert response.status_code == 409
        assert response.json()["detail"] == "No active sales staff"

    async def test_distribute_records_audit(self, client, admin, seller, fake_redis):
        await client.post(f"{API}/leads/ingest", json={"name": "x", "phone": "1"})
        headers = auth_headers(admin)
        response = await client.post(
            f"{API}/leads/distribute", json=jsonapi("lead-distributions", course="ALL"), headers=headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["attributes"] == {
            "assigned": 1,
            "by_seller": {seller.email: 1},
        }
        assert fake_redis.events("leads")[-1]["type"] == "updated"

        audit = await client.get(f"{API}/settings/audit", params={"resource": "leads"}, headers=headers)
        assert [entry["attributes"]["action"] for entry in audit.json()["data"]] == ["leads_distributed"]

    async def test_bad_period(self, client, admin):
        response = await client.get(f"{API}/leads", params={"period": "decade"}, headers=auth_headers(admin))
        assert response.status_code == 422


class TestCrmApi:
    async def test_booking_and_payment_publish_ledger_events(self, client, seller, fake_redis):
        headers = auth_headers(seller)
        response = await client.post(
            f"{API}/crm/customers",
            json=jsonapi(
                "customers", name="Hoa", phone="0901", course="K36",
                full_price="5.000.000", paid_amount="1.000.000",
            ),
            headers=headers,
        )
        assert response.status_code == 201
        customer = response.json()["data"]
        assert customer["attributes"]["debt_amount"] == 4_000_000
        assert customer["attributes"]["status"] == "DEPOSIT"

        response = await client.post(
            f"{API}/crm/customers/{customer['id']}/payments",
            json=jsonapi("payments", amount=9_000_000),
            headers=headers,
        )
        assert response.status_code == 422

        response = await client.post(
            f"{API}/crm/customers/{customer['id']}/payments",
            json=jsonapi("payments", amount=4_000_000),
            headers=headers,
        )
        assert response.status_code == 201

        assert [e["type"] for e in fake_redis.events("customers")] == ["created", "updated"]
        assert len(fake_redis.events("transactions")) == 2

    async def test_negative_amounts_are_rejected(self, client, seller, fake_redis):
        headers = auth_headers(seller)
        response = await client.post(
            f"{API}/crm/customers",
            json=jsonapi("customers", name="Lan", phone="0902", course="K36", full_price="5.000.000"),
            headers=headers,
        )
        customer_id = response.json()["data"]["id"]

        response = await client.post(
            f"{API}/crm/customers/{customer_id}/payments",
            json=jsonapi("payments", amount="-1.000.000"),
            headers=headers,
        )
        assert response.status_code == 422
        response = await client.post(
            f"{API}/crm/customers",
            json=jsonapi("customers", name="Mai", phone="0903", course="K36", full_price="-5.000.000"),
            headers=headers,
        )
        assert response.status_code == 422
        assert fake_redis.events("transactions") == []

    async def test_seller_cannot_delete_customers(self, client, seller):
        response = await client.delete(f"{API}/crm/customers/anything", headers=auth_headers(seller))
        assert response.status_code == 403


class TestExpensesApi:
    async def test_approve_creates_transaction(self, client, staff, admin, fake_redis):
        response = await client.post(
            f"{API}/expenses",
            json=jsonapi(
                "expenses", spent_on=date(2026, 10, 5).isoformat(), category="Other",
                content="Ink", amount=120_000,
            ),
            headers=auth_headers(staff),
        )
        assert response.status_code == 201
        expense_id = response.json()["data"]["id"]

        forbidden = await client.post(
            f"{API}/expenses/{expense_id}/approve", json=jsonapi("reviews"), headers=auth_headers(staff)
        )
        assert forbidden.status_code == 403

        approved = await client.post(
            f"{API}/expenses/{expense_id}/approve", json=jsonapi("reviews", note="ok"), headers=auth_headers(admin)
        )
        assert approved.status_code == 200
        assert approved.json()["data"]["attributes"]["status"] == "APPROVED"
        assert fake_redis.events("transactions")[0]["data"]["type"] == "EXPENSE"

        again = await client.post(
            f"{API}/expenses/{expense_id}/reject", json=jsonapi("reviews"), headers=auth_headers(admin)
        )
        assert again.status_code == 409


class TestSettingsApi:
    async def test_reset_needs_matching_confirmation(self, client, admin, fake_redis):
        headers = auth_headers(admin)
        await client.post(f"{API}/ads", json=jsonapi("ads", course="K36", spent=1000), headers=headers)

        mismatch = await client.post(
            f"{API}/settings/reset/ads", json=jsonapi("resets", confirm="yes"), headers=headers
        )
        assert mismatch.status_code == 422

        response = await client.post(
            f"{API}/settings/reset/ads", json=jsonapi("resets", confirm="ads"), headers=headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["attributes"] == {"deleted": 1}
        assert fake_redis.events("ads")[-1]["type"] == "reset"

    async def test_add_course(self, client, admin):
        response = await client.post(
            f"{API}/settings/items",
            json=jsonapi("setting-items", section="global", key="courses", value="K40"),
            headers=auth_headers(admin),
        )
        assert response.status_code == 201
        assert "K40" in response.json()["data"]["attributes"]["global"]["courses"]

    async def test_restore_checks_confirmation_then_existence(self, client, admin, fake_redis):
        headers = auth_headers(admin)
        response = await client.post(
            f"{API}/settings/backups", json=jsonapi("backups", note="before"), headers=headers
        )
        assert response.status_code == 201
        backup_id = response.json()["data"]["id"]

        mismatch = await client.post(
            f"{API}/settings/backups/{backup_id}/restore",
            json=jsonapi("restores", confirm="yes"),
            headers=headers,
        )
        assert mismatch.status_code == 422

        missing_id = "00000000-0000-0000-0000-000000000000"
        missing = await client.post(
            f"{API}/settings/backups/{missing_id}/restore",
            json=jsonapi("restores", confirm=missing_id),
            headers=headers,
        )
        assert missing.status_code == 404
        assert fake_redis.events("settings") == []

        response = await client.post(
            f"{API}/settings/backups/{backup_id}/restore",
            json=jsonapi("restores", confirm=backup_id),
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["attributes"]["restored"][-1] == "settings"


class TestAdsApi:
    async def test_list_carries_row_metrics_and_summary(self, client, admin):
        headers = auth_headers(admin)
        await client.post(
            f"{API}/ads",
            json=jsonapi("ads", course="K36", date="2026-09-01", spent=2_000_000, mess=20, orders_mong=1),
            headers=headers,
        )
        await client.post(
            f"{API}/ads", json=jsonapi("ads", course="K37", date="2026-09-02", spent=1000), headers=headers
        )

        response = await client.get(f"{API}/ads", params={"course": "K36"}, headers=headers)
        assert response.status_code == 200
        body = response.json()
        assert [row["attributes"]["course"] for row in body["data"]] == ["K36"]
        metrics = body["data"][0]["attributes"]["metrics"]
        assert metrics["total_orders"] == 1
        assert metrics["revenue"] == 3_500_000
        assert metrics["profit"] == 1_500_000
        assert metrics["price_per_mess"] == 100_000
        assert metrics["close_rate"] == 5
        assert body["meta"]["summary"]["spent"] == 2_000_000

    async def test_summary_endpoint_honors_date_range(self, client, admin):
        headers = auth_headers(admin)
        for day, spent in (("2026-09-01", 1000), ("2026-09-15", 2000), ("2026-10-01", 4000)):
            await client.post(
                f"{API}/ads", json=jsonapi("ads", course="K36", date=day, spent=spent), headers=headers
            )

        response = await client.get(
            f"{API}/ads/summary",
            params={"date_from": "2026-09-01", "date_to": "2026-09-30"},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["type"] == "ads-summary"
        assert response.json()["data"]["attributes"]["spent"] == 3000


class TestDashboardApi:
    async def test_summary_for_leader(self, client, make_user):
        leader = await make_user("leader@example.com", role="LEADER")
        response = await client.get(
            f"{API}/dashboard/summary", params={"month": "2026-10"}, headers=auth_headers(leader)
        )
        assert response.status_code == 200
        attrs = response.json()["data"]["attributes"]
        assert attrs["month"] == "2026-10"
        assert attrs["net"] == 0


class TestTasksApi:
    async def test_staff_cannot_create_tasks_or_goals(self, client, staff):
        headers = auth_headers(staff)
        response = await client.post(f"{API}/tasks", json=jsonapi("tasks", title="Mine"), headers=headers)
        assert response.status_code == 403
        response = await client.post(
            f"{API}/tasks/goals", json=jsonapi("goals", name="Revenue", target=100), headers=headers
        )
        assert response.status_code == 403

    async def test_leader_manages_goals(self, client, make_user):
        leader = await make_user("lead@example.com", role="LEADER", team="OPS")
        headers = auth_headers(leader)
        response = await client.post(
            f"{API}/tasks/goals", json=jsonapi("goals", name="Revenue", target=100), headers=headers
        )
        assert response.status_code == 201
        goal_id = response.json()["data"]["id"]
        response = await client.delete(f"{API}/tasks/goals/{goal_id}", headers=headers)
        assert response.status_code == 204

    async def test_hidden_task_cannot_be_patched(self, client, make_user):
        leader = await make_user("lead@example.com", role="LEADER", team="OPS")
        outsider = await make_user("mkt@example.com", role="STAFF", team="MKT")
        response = await client.post(
            f"{API}/tasks", json=jsonapi("tasks", title="Close books"), headers=auth_headers(leader)
        )
        assert response.status_code == 201
        task_id = response.json()["data"]["id"]

        headers = auth_headers(outsider)
        assert (await client.get(f"{API}/tasks/{task_id}", headers=headers)).status_code == 404
        response = await client.patch(
            f"{API}/tasks/{task_id}",
            json=jsonapi("tasks", title="Hijacked", status="DONE"),
            headers=headers,
        )
        assert response.status_code == 404

        task = await client.get(f"{API}/tasks/{task_id}", headers=auth_headers(leader))
        assert task.json()["data"]["attributes"]["title"] == "Close books"
        assert task.json()["data"]["attributes"]["status"] == "TODO"

    async def test_goal_rows_carry_progress_and_forecast(self, client, make_user):
        leader = await make_user("lead@example.com", role="LEADER", team="OPS")
        headers = auth_headers(leader)
        for name, current in (("Revenue", 150), ("Leads", 0)):
            response = await client.post(
                f"{API}/tasks/goals",
                json=jsonapi("goals", name=name, target=100, current=current, month="2026-01"),
                headers=headers,
            )
            assert response.status_code == 201

        response = await client.get(f"{API}/tasks/goals", params={"month": "2026-01"}, headers=headers)
        rows = {row["attributes"]["name"]: row["attributes"] for row in response.json()["data"]}
        assert (rows["Revenue"]["progress"], rows["Revenue"]["forecast"]) == (100, "EXCELLENT")
        assert (rows["Leads"]["progress"], rows["Leads"]["forecast"]) == (0, "AT_RISK")
