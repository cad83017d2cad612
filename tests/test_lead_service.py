"""Tests for lead intake, visibility and round-robin distribution."""

from datetime import datetime, timedelta, timezone

import pytest

from bizops.errors import ConflictError
from bizops.permissions import Principal
from bizops.services.lead_service import LeadService
from bizops.services.settings_service import SettingsService
from tests.conftest import principal_of


@pytest.fixture
async def sellers(make_user):
    return [
        await make_user("an@example.com", role="SALE", name="An"),
        await make_user("binh@example.com", role="SALE_LEADER", name="Binh"),
        await make_user("chi@example.com", role="SALE", name="Chi", is_active=False),
    ]


class TestIngest:
    async def test_fallback_fields(self, db):
        lead = await LeadService(db).ingest(fullname=" Tran Thi B ", mobile="0909", course="")
        assert lead.name == "Tran Thi B"
        assert lead.phone == "0909"
        assert lead.course == "Other"
        assert lead.status == "NEW"
        assert lead.sale_id is None

    async def test_blank_lead_gets_placeholders(self, db):
        lead = await LeadService(db).ingest()
        assert lead.name == "Unnamed"
        assert lead.phone == "---"

    async def test_auto_assign_rotates_across_active_sellers(self, db, sellers):
        await SettingsService(db).set_auto_assign(True)
        service = LeadService(db)

        first = await service.ingest(name="One", phone="1")
        second = await service.ingest(name="Two", phone="2")
        third = await service.ingest(name="Three", phone="3")

        assert [first.sale_id, second.sale_id, third.sale_id] == [
            "an@example.com",
            "binh@example.com",
            "an@example.com",
        ]
        assert first.status == "CALLING"
        assert (await SettingsService(db).lead_rotation()) == (True, 1)

    async def test_auto_assign_without_staff_leaves_lead_unassigned(self, db):
        await SettingsService(db).set_auto_assign(True)
        lead = await LeadService(db).ingest(name="Lonely", phone="1")
        assert lead.sale_id is None


class TestDistribute:
    async def test_oldest_first_and_cursor_persists(self, db, sellers):
        service = LeadService(db)
        base = datetime(2026, 10, 1, tzinfo=timezone.utc)
        for offset, name in enumerate(["old", "mid", "new"]):
            await service.ingest(name=name, phone=str(offset), time=base + timedelta(hours=offset))

        leads, counts = await service.distribute()
        assert [lead.name for lead in leads] == ["old", "mid", "new"]
        assert [lead.sale_id for lead in leads] == [
            "an@example.com",
            "binh@example.com",
            "an@example.com",
        ]
        assert counts == {"an@example.com": 2, "binh@example.com": 1}

        await service.ingest(name="later", phone="9", time=base + timedelta(days=1))
        leads, _ = await service.distribute()
        assert leads[0].sale_id == "binh@example.com"

    async def test_course_filter(self, db, sellers):
        service = LeadService(db)
        await service.ingest(name="a", phone="1", course="K36")
        await service.ingest(name="b", phone="2", course="K37")
        leads, _ = await service.distribute("K37")
        assert [lead.name for lead in leads] == ["b"]

    async def test_nothing_to_distribute(self, db, sellers):
        with pytest.raises(ConflictError, match="No unassigned leads"):
            await LeadService(db).distribute()

    async def test_no_staff(self, db):
        await LeadService(db).ingest(name="a", phone="1")
        with pytest.raises(ConflictError, match="No active sales staff"):
            await LeadService(db).distribute()


class TestVisibility:
    async def test_seller_sees_own_and_unassigned(self, db, sellers, make_user):
        service = LeadService(db)
        await SettingsService(db).set_auto_assign(True)
        await service.ingest(name="for-an", phone="1")
        await service.ingest(name="for-binh", phone="2")
        await SettingsService(db).set_auto_assign(False)
        await service.ingest(name="open", phone="3")

        an = principal_of(sellers[0])
        names = {lead.name for lead in await service.list_leads(an)}
        assert names == {"for-an", "open"}

        leader = principal_of(sellers[1])
        assert len(await service.list_leads(leader)) == 3

    async def test_period_and_search(self, db, admin):
        service = LeadService(db)
        now = datetime(2026, 10, 21, 12, tzinfo=timezone.utc)
        await service.ingest(name="Recent Lead", phone="0901", time=now - timedelta(hours=1))
        await service.ingest(name="Old Lead", phone="0902", time=now - timedelta(days=40))

        principal = principal_of(admin)
        recent = await service.list_leads(principal, period="month", now=now)
        assert [lead.name for lead in recent] == ["Recent Lead"]
        found = await service.list_leads(principal, q="0902", now=now)
        assert [lead.name for lead in found] == ["Old Lead"]

    async def test_seller_cannot_edit_someone_elses_lead(self, db, sellers):
        service = LeadService(db)
        await SettingsService(db).set_auto_assign(True)
        lead = await service.ingest(name="for-an", phone="1")

        other = Principal(id="x", email="other@example.com", name="Other", role="SALE", team="CHUNG")
        with pytest.raises(PermissionError):
            await service.update_lead(other, lead.id, note="mine now")

    async def test_reassign_needs_assign_permission(self, db, sellers):
        service = LeadService(db)
        lead = await service.ingest(name="open", phone="1")

        with pytest.raises(PermissionError):
            await service.update_lead(principal_of(sellers[0]), lead.id, sale_id="binh@example.com")

        updated = await service.update_lead(principal_of(sellers[1]), lead.id, sale_id="an@example.com")
        assert updated.sale_name == "An"
