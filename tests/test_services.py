"""Service-layer tests against an in-memory SQLite database."""

from datetime import date, datetime, timezone

import pytest
from sqlalchemy import func, select

from bizops.errors import ConflictError, NotFoundError
from bizops.models import ActivityLog, AdCampaign, Customer, FinanceTransaction
from bizops.schemas.pagination import encode_cursor
from bizops.services.activity_service import ActivityService
from bizops.services.ads_service import AdsService
from bizops.services.backup_service import BackupService
from bizops.services.customer_service import CustomerService, new_reference
from bizops.services.expense_service import ExpenseService
from bizops.services.payroll_service import PayrollService
from bizops.services.report_service import GoalService, ReportService
from bizops.services.resource_service import ResourceService
from bizops.services.settings_service import SettingsService
from bizops.services.task_service import TaskService
from bizops.services.training_service import TrainingService
from bizops.services.user_service import UserService
from tests.conftest import principal_of


def current_month() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m")


class TestSettingsService:
    async def test_first_read_creates_defaults(self, db):
        config = await SettingsService(db).get_config()
        assert config["global"]["courses"] == ["K35", "K36", "K37", "K38"]
        assert config["leads"] == {"auto_assign": False, "next_index": 0}

    async def test_add_and_remove_items(self, db):
        service = SettingsService(db)
        config = await service.add_item("global", "courses", " K39 ")
        assert config["global"]["courses"][-1] == "K39"

        with pytest.raises(ConflictError):
            await service.add_item("global", "courses", "K39")
        with pytest.raises(ValueError):
            await service.add_item("global", "courses", "   ")

        config = await service.remove_item("global", "courses", "K39")
        assert "K39" not in config["global"]["courses"]
        with pytest.raises(NotFoundError):
            await service.remove_item("global", "courses", "K39")

    async def test_replace_keeps_rotation_cursor(self, db):
        service = SettingsService(db)
        await service.set_lead_cursor(3)
        await db.commit()

        config = await service.replace({"leads": {"auto_assign": True, "next_index": 0}})
        assert config["leads"] == {"auto_assign": True, "next_index": 3}
        # Sections left out fall back to defaults.
        assert config["tasks"]["teams"] == ["CHUNG"]


class TestUserService:
    async def test_bootstrap_admin_only_on_empty_table(self, db):
        service = UserService(db)
        admin = await service.bootstrap_admin("Boss@Example.com", None, "Boss")
        assert admin.email == "boss@example.com"
        assert admin.role == "ADMIN"
        assert await service.bootstrap_admin("second@example.com", None, "Second") is None

    async def test_duplicate_email(self, db):
        service = UserService(db)
        await service.create_user("dup@example.com")
        with pytest.raises(ConflictError):
            await service.create_user("DUP@example.com")

    async def test_sales_team_excludes_inactive_and_other_roles(self, db, make_user):
        await make_user("a@example.com", role="SALE")
        await make_user("b@example.com", role="SALE", is_active=False)
        await make_user("c@example.com", role="LEADER")
        await make_user("d@example.com", role="SALE_LEADER")
        team = await UserService(db).list_sales_team()
        assert [user.email for user in team] == ["a@example.com", "d@example.com"]


class TestCustomerService:
    async def test_booking_records_first_payment(self, db, seller):
        customer, tx = await CustomerService(db).create_customer(
            principal_of(seller), "Hoa", "0901", "K36", full_price=5_000_000, paid_amount=2_000_000
        )
        assert customer.status == "DEPOSIT"
        assert customer.debt_amount == 3_000_000
        assert customer.sale_name == "An"
        assert tx.type == "INCOME"
        assert tx.amount == 2_000_000
        assert tx.reference.startswith("TRX_")

    async def test_booking_without_payment_has_no_transaction(self, db, seller):
        customer, tx = await CustomerService(db).create_customer(
            principal_of(seller), "Hoa", "0901", "K36", paid_amount=0
        )
        assert customer.status == "NEW"
        assert tx is None

    async def test_seller_cannot_book_for_someone_else(self, db, seller, admin):
        customer, _ = await CustomerService(db).create_customer(
            principal_of(seller), "Hoa", "0901", "K36", sale_id=admin.email
        )
        assert customer.sale_id == seller.email

    async def test_payments_settle_and_reject_overpayment(self, db, seller):
        service = CustomerService(db)
        customer, _ = await service.create_customer(
            principal_of(seller), "Hoa", "0901", "K36", full_price=5_000_000, paid_amount=2_000_000
        )
        customer, tx = await service.add_payment(customer.id, 3_000_000)
        assert customer.status == "PAID"
        assert customer.debt_amount == 0
        assert tx.note == "Additional payment"

        with pytest.raises(ValueError):
            await service.add_payment(customer.id, 1)
        assert len(await service.list_customer_transactions(customer.id)) == 2

    async def test_overpaid_booking_is_rejected(self, db, seller):
        with pytest.raises(ValueError):
            await CustomerService(db).create_customer(
                principal_of(seller), "Hoa", "0901", "K36", full_price=100, paid_amount=200
            )

    async def test_manual_status_is_sticky(self, db, seller):
        service = CustomerService(db)
        customer, _ = await service.create_customer(
            principal_of(seller), "Hoa", "0901", "K36", full_price=100, manual_status="RESERVED"
        )
        customer, _ = await service.add_payment(customer.id, 100)
        assert customer.status == "RESERVED"

        customer = await service.update_customer(principal_of(seller), customer.id, manual_status="AUTO")
        assert customer.status == "PAID"

    async def test_debt_filter(self, db, seller):
        service = CustomerService(db)
        principal = principal_of(seller)
        await service.create_customer(principal, "Owes", "1", "K36", full_price=100, paid_amount=10)
        await service.create_customer(principal, "Paid", "2", "K36", full_price=100, paid_amount=100)
        await service.create_customer(
            principal, "Gone", "3", "K36", full_price=100, manual_status="CANCEL"
        )
        debtors = await service.list_customers(status="DEBT")
        assert [c.name for c in debtors] == ["Owes"]

    async def test_search_treats_wildcards_literally(self, db, seller):
        service = CustomerService(db)
        principal = principal_of(seller)
        await service.create_customer(principal, "Hoa", "0901", "K36")
        await service.create_customer(principal, "Nam_2", "0902", "K36")
        assert [c.name for c in await service.list_customers(q="_")] == ["Nam_2"]
        assert await service.list_customers(q="%") == []
        assert [c.name for c in await service.list_customers(q="HOA")] == ["Hoa"]

    def test_references_are_unique(self):
        refs = {new_reference() for _ in range(200)}
        assert len(refs) == 200


class TestExpenseService:
    async def test_review_flow(self, db, staff, admin):
        service = ExpenseService(db)
        expense = await service.create_expense(
            principal_of(staff), date(2026, 10, 5), "Other", "Printer ink", 450_000
        )
        assert expense.status == "PENDING"

        with pytest.raises(PermissionError):
            await service.review(principal_of(staff), expense.id, approve=True)

        expense, tx = await service.review(principal_of(admin), expense.id, approve=True, note="ok")
        assert expense.status == "APPROVED"
        assert expense.reviewed_by == admin.email
        assert tx.type == "EXPENSE"
        assert tx.amount == 450_000

        with pytest.raises(ConflictError):
            await service.review(principal_of(admin), expense.id, approve=False)

    async def test_filing_logs_formatted_amount(self, db, staff, caplog):
        caplog.set_level("INFO", logger="bizops.services.expense_service")
        await ExpenseService(db).create_expense(
            principal_of(staff), date(2026, 10, 5), "Other", "Printer ink", 1_450_000
        )
        assert "for 1.450.000 VND" in caplog.text

    async def test_unknown_category(self, db, staff):
        with pytest.raises(ValueError):
            await ExpenseService(db).create_expense(
                principal_of(staff), date(2026, 10, 5), "Yachts", "Boat", 1
            )

    async def test_rejection_writes_no_ledger_entry(self, db, staff, admin):
        service = ExpenseService(db)
        expense = await service.create_expense(
            principal_of(staff), date(2026, 10, 5), "Other", "Snacks", 10_000
        )
        expense, tx = await service.review(principal_of(admin), expense.id, approve=False)
        assert expense.status == "REJECTED"
        assert tx is None
        count = await db.scalar(select(func.count()).select_from(FinanceTransaction))
        assert count == 0

    async def test_non_admins_only_see_their_own(self, db, staff, seller):
        service = ExpenseService(db)
        await service.create_expense(principal_of(staff), date(2026, 10, 5), "Other", "Mine", 1)
        await service.create_expense(principal_of(seller), date(2026, 10, 5), "Other", "Theirs", 1)
        visible = await service.list_expenses(principal_of(staff))
        assert [e.content for e in visible] == ["Mine"]


class TestPayrollService:
    async def test_generate_from_collected_income(self, db, seller):
        month = current_month()
        await CustomerService(db).create_customer(
            principal_of(seller), "Hoa", "0901", "K36", full_price=5_000_000, paid_amount=2_000_000
        )
        service = PayrollService(db)
        entries = await service.generate(month)
        assert len(entries) == 1
        entry = entries[0]
        assert entry.staff_email == seller.email
        assert entry.sales_amount == 2_000_000
        assert entry.orders == 1
        assert entry.base_salary == 5_000_000

        await service.update_entry(entry.id, base_salary=7_000_000, note="raise")
        regenerated = await service.generate(month)
        assert regenerated[0].id == entry.id
        assert regenerated[0].base_salary == 7_000_000
        assert regenerated[0].note == "raise"

    async def test_duplicate_line(self, db):
        service = PayrollService(db)
        await service.create_entry("2026-10", "An", "an@example.com")
        with pytest.raises(ConflictError):
            await service.create_entry("2026-10", "An", "AN@example.com")


class TestBackupService:
    async def test_restore_brings_back_deleted_rows(self, session_factory, seller):
        async with session_factory() as db:
            ad = await AdsService(db).create_ad(course="K36", spent=1000)
            await CustomerService(db).create_customer(
                principal_of(seller), "Hoa", "0901", "K36", paid_amount=100
            )
            backup = await BackupService(db).create_backup()
            assert backup.counts["ads"] == 1
            assert backup.counts["transactions"] == 1
            await AdsService(db).delete_ad(ad.id)

        async with session_factory() as db:
            with pytest.raises(ValueError):
                await BackupService(db).restore_backup(backup.id, confirm="nope")
            restored = await BackupService(db).restore_backup(backup.id, confirm=backup.id)
            assert "ads" in restored
            assert restored[-1] == "settings"

        async with session_factory() as db:
            ads = (await db.execute(select(AdCampaign))).scalars().all()
            assert [a.id for a in ads] == [ad.id]
            assert ads[0].date == ad.date
            assert await db.scalar(select(func.count()).select_from(Customer)) == 1

    async def test_reset_requires_confirmation(self, db):
        await AdsService(db).create_ad(course="K36")
        service = BackupService(db)
        with pytest.raises(ValueError):
            await service.reset("ads", confirm="yes")
        with pytest.raises(ValueError):
            await service.reset("users", confirm="users")
        assert await service.reset("ads", confirm="ads") == 1

    async def test_listing_defers_payload(self, db):
        service = BackupService(db)
        await service.create_backup("first")
        backups = await service.list_backups()
        assert [b.note for b in backups] == ["first"]


class TestAdsService:
    async def test_create_defaults_to_last_course_and_today(self, db):
        ad = await AdsService(db).create_ad(spent=1000)
        assert ad.course == "K38"
        assert ad.date == datetime.now(timezone.utc).date()

    async def test_filters_by_course_and_date_range(self, db):
        service = AdsService(db)
        await service.create_ad(course="K36", date=date(2026, 9, 1), spent=1_000_000, mess=10)
        await service.create_ad(course="K36", date=date(2026, 9, 20), spent=3_000_000, mess=30)
        await service.create_ad(course="K37", date=date(2026, 9, 5), spent=500_000, mess=5)

        assert len(await service.list_ads("ALL")) == 3
        k36 = await service.list_ads("K36")
        assert [a.date for a in k36] == [date(2026, 9, 20), date(2026, 9, 1)]
        window = await service.list_ads("ALL", date(2026, 9, 2), date(2026, 9, 19))
        assert [a.course for a in window] == ["K37"]

    async def test_summary_derives_ratios_from_totals(self, db):
        service = AdsService(db)
        await service.create_ad(
            course="K36", date=date(2026, 9, 1), spent=1_000_000, mess=10, orders_mong=1, orders_thanh=1
        )
        await service.create_ad(
            course="K36", date=date(2026, 9, 2), spent=3_000_000, mess=30, orders_mong=2
        )
        await service.create_ad(course="K37", date=date(2026, 9, 3), spent=9_000_000, mess=1)

        summary = await service.summary("K36")
        assert summary["spent"] == 4_000_000
        assert summary["total_orders"] == 4
        assert summary["revenue"] == 14_000_000
        assert summary["roas"] == pytest.approx(3.5)
        assert summary["close_rate"] == pytest.approx(10)
        assert summary["price_per_mess"] == pytest.approx(100_000)


class TestReportService:
    async def test_blank_lines_dropped_and_resubmission_replaces(self, db, staff):
        service = ReportService(db)
        principal = principal_of(staff)
        day = date(2026, 10, 19)

        first = await service.submit_report(
            principal,
            [{"title": "Call leads", "is_done": True}, {"title": "   "}],
            [{"title": ""}],
            report_date=day,
        )
        assert [item["title"] for item in first.done_tasks] == ["Call leads"]
        assert first.plan_tasks == []
        first_id = first.id

        second = await service.submit_report(
            principal,
            [{"title": "Edit video"}],
            [{"title": "Post clip", "note": "9am", "is_done": True}],
            issues="none",
            report_date=day,
        )
        assert second.id == first_id

        reports = await service.list_reports(report_date=day)
        assert len(reports) == 1
        assert reports[0].done_tasks == [{"title": "Edit video", "note": "", "is_done": False}]
        assert reports[0].plan_tasks == [{"title": "Post clip", "note": "9am"}]
        assert reports[0].issues == "none"

    async def test_team_status_scope(self, db, admin, staff, make_user):
        leader = await make_user("lead@example.com", role="LEADER", team="MKT")
        await make_user("mkt@example.com", role="STAFF", team="MKT")
        await make_user("gone@example.com", role="STAFF", team="MKT", is_active=False)
        service = ReportService(db)
        day = date(2026, 10, 19)
        await service.submit_report(principal_of(leader), [{"title": "Plan week"}], [], report_date=day)

        everyone = await service.team_status(principal_of(admin), day)
        assert {m["email"] for m in everyone} == {
            "admin@example.com", "staff@example.com", "lead@example.com", "mkt@example.com"
        }

        team = await service.team_status(principal_of(leader), day)
        assert {m["email"]: m["has_reported"] for m in team} == {
            "lead@example.com": True,
            "mkt@example.com": False,
        }

    async def test_team_summary_upserts_and_requires_result(self, db, make_user):
        leader = principal_of(await make_user("lead@example.com", role="LEADER", team="MKT"))
        service = ReportService(db)
        day = date(2026, 10, 19)

        with pytest.raises(ValueError):
            await service.save_team_summary(leader, day, "   ")

        first = await service.save_team_summary(leader, day, "Shipped 3 videos")
        first_id = first.id
        second = await service.save_team_summary(leader, day, "Shipped 4 videos", issues="camera")
        assert second.id == first_id

        summaries = await service.list_team_summaries(day)
        assert [(s.team, s.result, s.issues) for s in summaries] == [
            ("MKT", "Shipped 4 videos", "camera")
        ]


class TestGoalService:
    async def test_target_must_be_positive(self, db):
        with pytest.raises(ValueError):
            await GoalService(db).create_goal("Revenue", 0)

    async def test_defaults_to_current_month(self, db):
        service = GoalService(db)
        goal = await service.create_goal("Leads", 100, current=40)
        await service.create_goal("Old", 10, month="2025-01")
        assert goal.month == current_month()
        assert [g.name for g in await service.list_goals()] == ["Leads"]
        assert [g.name for g in await service.list_goals("2025-01")] == ["Old"]


class TestTaskService:
    async def test_visibility_and_delete_rights(self, db, make_user):
        mkt_lead = await make_user("mkt-lead@example.com", role="LEADER", team="MKT")
        chung = await make_user("chung@example.com", role="STAFF", team="CHUNG")
        leader = await make_user("lead@example.com", role="LEADER", team="CHUNG")
        service = TaskService(db)

        task = await service.create_task(principal_of(mkt_lead), title="Shoot video")
        assert task.department == "MKT"
        assert await service.list_tasks(principal_of(chung)) == []
        assert len(await service.list_tasks(principal_of(leader))) == 1

        with pytest.raises(PermissionError):
            await service.delete_task(principal_of(chung), task.id)
        await service.delete_task(principal_of(leader), task.id)

    async def test_only_leaders_create_tasks(self, db, staff, make_user):
        service = TaskService(db)
        with pytest.raises(PermissionError):
            await service.create_task(principal_of(staff), title="x")

        granted = await make_user(
            "planner@example.com", role="STAFF", permissions={"tasks": {"manage": True}}
        )
        task = await service.create_task(principal_of(granted), title="Plan week")
        assert task.creator == granted.email

    async def test_hidden_tasks_cannot_be_edited(self, db, admin, make_user):
        outsider = await make_user("outsider@example.com", role="STAFF", team="MKT")
        service = TaskService(db)
        task = await service.create_task(principal_of(admin), title="Close books", department="OPS")

        with pytest.raises(NotFoundError):
            await service.update_task(principal_of(outsider), task.id, title="Hijacked", status="DONE")
        await db.refresh(task)
        assert task.title == "Close books"
        assert task.status == "TODO"

    async def test_assignee_clears_own_assignment(self, db, admin, staff):
        service = TaskService(db)
        task = await service.create_task(
            principal_of(admin), title="x", assignee=staff.email, department="OPS"
        )
        task = await service.update_task(principal_of(staff), task.id, assignee=None)
        assert task.assignee is None


class TestTrainingService:
    async def test_batch_from_template(self, db):
        service = TrainingService(db)
        template = await service.create_template(
            title="Sales 101", sessions=3, preferred_days=[1, 3], time="19:30", trainer="Lan"
        )
        events = await service.create_batch(template.id, date(2026, 10, 19), batch_code="B7")
        assert [e.date for e in events] == [date(2026, 10, 19), date(2026, 10, 21), date(2026, 10, 26)]
        assert events[0].title == "Sales 101 - B7 (Session 1)"
        assert all(e.template_id == template.id for e in events)

        classes = await service.template_classes(template.id)
        assert len(classes) == 1
        assert classes[0]["count"] == 3

        week = await service.list_events(week_of=date(2026, 10, 22))
        assert len(week) == 2

    async def test_deleting_template_keeps_events(self, db):
        service = TrainingService(db)
        template = await service.create_template(title="Intro", sessions=1)
        events = await service.create_batch(template.id, date(2026, 10, 19))
        await service.delete_template(template.id)
        event = await service.get_event(events[0].id)
        assert event is not None
        assert event.template_id is None


class TestResourceService:
    async def test_delete_folder_removes_descendants(self, db):
        service = ResourceService(db)
        top = await service.create_node("docs", "FOLDER", "Scripts")
        sub = await service.create_node("docs", "FOLDER", "Calls", parent_id=top.id)
        doc = await service.create_node("docs", "FILE", "Opening", parent_id=sub.id, link="http://x")
        keep = await service.create_node("docs", "FILE", "Elsewhere", link="http://y")
        assert doc.file_type == "LINK"

        deleted = await service.delete_node(top.id)
        assert set(deleted) == {top.id, sub.id, doc.id}
        assert await service.get_node(keep.id) is not None

    async def test_parent_must_be_a_folder_in_the_same_root(self, db):
        service = ResourceService(db)
        folder = await service.create_node("docs", "FOLDER", "Scripts")
        with pytest.raises(ValueError):
            await service.create_node("tools", "FILE", "x", parent_id=folder.id)
        with pytest.raises(NotFoundError):
            await service.create_node("docs", "FILE", "x", parent_id="missing")

    async def test_search_is_case_insensitive_and_literal(self, db):
        service = ResourceService(db)
        await service.create_node("docs", "FILE", "Sales_Script", link="http://a")
        await service.create_node("docs", "FILE", "SalesXScript", link="http://b")
        await service.create_node("tools", "FILE", "Sales_Sheet", link="http://c")

        assert [n.name for n in await service.search("docs", "sales_")] == ["Sales_Script"]
        assert await service.search("docs", "%") == []


class TestActivityService:
    async def test_pages_newest_first(self, db):
        base = datetime(2026, 3, 1, 9, 0, 0)
        for minute in range(3):
            db.add(
                ActivityLog(
                    actor="admin@example.com",
                    action="data_reset",
                    resource="ads",
                    created_at=base.replace(minute=minute),
                    updated_at=base,
                )
            )
        await db.commit()
        service = ActivityService(db)

        first, meta = await service.list_activities(page_size=2)
        assert [e.created_at.minute for e in first] == [2, 1]
        assert meta.has_next

        cursor = encode_cursor(first[-1].created_at, first[-1].id)
        rest, meta = await service.list_activities(page_size=2, after=cursor)
        assert [e.created_at.minute for e in rest] == [0]
        assert not meta.has_next and meta.has_prev

    async def test_record_filters_by_actor(self, db):
        service = ActivityService(db)
        await service.record("admin@example.com", "user_created", "users", "1")
        await service.record("boss@example.com", "user_deleted", "users", "2")
        entries, _ = await service.list_activities(actor="Boss@Example.com")
        assert [e.action for e in entries] == ["user_deleted"]

    async def test_bad_cursor(self, db):
        with pytest.raises(ValueError):
            await ActivityService(db).list_activities(after="garbage")
