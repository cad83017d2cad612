"""Tests for the pure business rules in bizops.calc."""

from datetime import date, datetime, timezone

import pytest

from bizops.calc import ads, crm, dashboard, goals, leads, payroll, tasks, training
from bizops.calc.formatting import format_vnd, parse_amount


class TestFormatting:
    def test_parse_amount_strips_separators_and_units(self):
        assert parse_amount("3.500.000 VND") == 3_500_000
        assert parse_amount("") == 0
        assert parse_amount(None) == 0
        assert parse_amount(1200.6) == 1201

    def test_parse_amount_rejects_booleans(self):
        with pytest.raises(ValueError):
            parse_amount(True)

    @pytest.mark.parametrize("value", ["-1.000.000", " -500", "-0"])
    def test_parse_amount_rejects_negative_strings(self, value):
        with pytest.raises(ValueError):
            parse_amount(value)

    def test_negative_numbers_pass_through_for_range_checks(self):
        assert parse_amount(-5) == -5

    def test_format_vnd(self):
        assert format_vnd(3_500_000) == "3.500.000"
        assert format_vnd(-1500) == "-1.500"
        assert format_vnd(0) == "0"


class TestAds:
    def test_calculate_row(self):
        row = {
            "spent": 1_000_000,
            "mess": 50,
            "orders_mong": 2,
            "orders_thanh": 1,
            "price_per_course": 3_500_000,
            "base_cost": 500_000,
        }
        metrics = ads.calculate_row(row)
        assert metrics["total_orders"] == 3
        assert metrics["revenue"] == 10_500_000
        assert metrics["profit"] == 9_000_000
        assert metrics["roas"] == pytest.approx(10.5)
        assert metrics["price_per_mess"] == 20_000
        assert metrics["close_rate"] == pytest.approx(6.0)

    def test_zero_denominators_are_reported_as_zero(self):
        metrics = ads.calculate_row({"spent": 0, "mess": 0, "price_per_course": 3_500_000})
        assert metrics["roas"] == 0
        assert metrics["close_rate"] == 0
        assert metrics["price_per_mess"] == 0

    def test_summary_ratios_come_from_totals(self):
        rows = [
            {"spent": 100, "mess": 10, "orders_mong": 1, "price_per_course": 1000},
            {"spent": 900, "mess": 90, "orders_thanh": 0, "price_per_course": 1000},
        ]
        totals = ads.summarize(rows)
        assert totals["spent"] == 1000
        assert totals["revenue"] == 1000
        # Averaging the per-row ROAS (10 and 0) would give 5.
        assert totals["roas"] == pytest.approx(1.0)
        assert totals["close_rate"] == pytest.approx(1.0)

    def test_top_by_roas_skips_rows_without_spend(self):
        rows = [
            {"id": "a", "spent": 0, "orders_mong": 5, "price_per_course": 1000},
            {"id": "b", "spent": 100, "orders_mong": 1, "price_per_course": 1000},
            {"id": "c", "spent": 100, "orders_mong": 2, "price_per_course": 1000},
        ]
        top = ads.top_by_roas(rows)
        assert [row["id"] for row, _ in top] == ["c", "b"]


class TestCrm:
    @pytest.mark.parametrize(
        "paid,manual,expected",
        [(0, "AUTO", "NEW"), (1, "AUTO", "DEPOSIT"), (100, "AUTO", "PAID"), (100, "CANCEL", "CANCEL")],
    )
    def test_derive_status(self, paid, manual, expected):
        assert crm.derive_status(100, paid, manual) == expected

    def test_apply_payment_settles_debt(self):
        result = crm.apply_payment(100, 40, "DEPOSIT", 60)
        assert result == crm.PaymentResult(paid_amount=100, debt_amount=0, status="PAID")

    def test_apply_payment_keeps_reserved(self):
        assert crm.apply_payment(100, 0, "RESERVED", 50).status == "RESERVED"

    @pytest.mark.parametrize("amount", [0, -5, 61])
    def test_apply_payment_rejects_bad_amounts(self, amount):
        with pytest.raises(ValueError):
            crm.apply_payment(100, 40, "DEPOSIT", amount)

    def test_debt_filter_ignores_cancelled(self):
        owing = {"status": "DEPOSIT", "debt_amount": 10}
        cancelled = {"status": "CANCEL", "debt_amount": 10}
        assert crm.matches_status_filter(owing, "DEBT")
        assert not crm.matches_status_filter(cancelled, "DEBT")
        assert crm.matches_status_filter(cancelled, "ALL")

    def test_stats_excludes_cancelled(self):
        customers = [
            {"status": "PAID", "paid_amount": 100, "debt_amount": 0},
            {"status": "DEPOSIT", "paid_amount": 30, "debt_amount": 70},
            {"status": "CANCEL", "paid_amount": 50, "debt_amount": 50},
        ]
        assert crm.stats(customers) == {"real_revenue": 130, "total_debt": 70, "customers": 2}


class TestLeads:
    NOW = datetime(2026, 10, 21, 15, 30, tzinfo=timezone.utc)  # a Wednesday

    def test_week_starts_on_monday(self):
        assert leads.period_start("week", self.NOW) == datetime(2026, 10, 19, tzinfo=timezone.utc)

    def test_matches_period_treats_naive_as_utc(self):
        assert leads.matches_period(datetime(2026, 10, 21, 0, 0), "today", self.NOW)
        assert not leads.matches_period(datetime(2026, 10, 20, 23, 59), "today", self.NOW)
        assert leads.matches_period(datetime(2026, 1, 1), "year", self.NOW)

    def test_unknown_period(self):
        with pytest.raises(ValueError):
            leads.period_start("decade", self.NOW)

    def test_search_matches_name_or_phone(self):
        lead = {"name": "Nguyen Van A", "phone": "0901234567"}
        assert leads.matches_search(lead, "van a")
        assert leads.matches_search(lead, "1234")
        assert not leads.matches_search(lead, "tran")

    def test_round_robin_continues_from_cursor(self):
        pairs, cursor = leads.round_robin(["l1", "l2", "l3"], ["a", "b"], start=1)
        assert pairs == [("l1", "b"), ("l2", "a"), ("l3", "b")]
        assert cursor == 0

    def test_round_robin_without_staff(self):
        with pytest.raises(ValueError, match="No active sales staff"):
            leads.round_robin(["l1"], [])

    def test_stats(self):
        result = leads.stats([{"status": "NEW", "course": "K36"}, {"status": "CALLING", "course": None}])
        assert result["total"] == 2
        assert result["by_status"] == {"NEW": 1, "CALLING": 1, "CLOSED": 0}
        assert result["by_course"] == {"K36": 1, "Uncategorized": 1}


class TestPayrollAndGoals:
    def test_calculate_entry(self):
        entry = {"sales_amount": 10_000_000, "commission_rate": 0.03, "base_salary": 5_000_000}
        assert payroll.calculate_entry(entry) == {"commission": 300_000, "total": 5_300_000}

    def test_summarize(self):
        totals = payroll.summarize(
            [
                {"sales_amount": 1000, "commission_rate": 0.1, "base_salary": 50, "orders": 2},
                {"sales_amount": 0, "commission_rate": 0.1, "base_salary": 70, "orders": 0},
            ]
        )
        assert totals["total"] == 220
        assert totals["headcount"] == 2
        assert totals["orders"] == 2

    def test_goal_progress_is_capped(self):
        assert goals.progress(150, 100) == 100
        assert goals.progress(5, 0) == 100
        assert goals.progress(25, 100) == 25

    def test_forecast(self):
        mid_month = date(2026, 10, 15)
        assert goals.forecast(0, 0, mid_month) == "UNKNOWN"
        assert goals.forecast(100, 100, mid_month) == "EXCELLENT"
        assert goals.forecast(60, 100, mid_month) == "ON_TRACK"
        assert goals.forecast(10, 100, mid_month) == "AT_RISK"


class TestTasks:
    def test_overdue(self):
        today = date(2026, 10, 19)
        assert tasks.is_overdue(date(2026, 10, 18), "DOING", today)
        assert not tasks.is_overdue(date(2026, 10, 18), "DONE", today)
        assert not tasks.is_overdue(None, "TODO", today)

    def test_checklist_progress(self):
        assert tasks.checklist_progress([]) is None
        assert tasks.checklist_progress([{"done": True}, {"done": False}, {"done": True}]) == 67

    def test_clean_report_items_drops_blank_titles(self):
        items = [{"title": "  Call leads "}, {"title": "   "}, {"title": "Post ad", "is_done": True}]
        assert tasks.clean_report_items(items) == [
            {"title": "Call leads", "note": "", "is_done": False},
            {"title": "Post ad", "note": "", "is_done": True},
        ]

    def test_visibility(self):
        task = {"assignee": "a@x.com", "department": "MKT"}
        assert tasks.is_visible(task, "a@x.com", "CHUNG", False)
        assert tasks.is_visible(task, "b@x.com", "MKT", False)
        assert not tasks.is_visible(task, "b@x.com", "CHUNG", False)
        assert tasks.is_visible(task, "b@x.com", "CHUNG", True)


class TestTraining:
    def test_schedule_uses_preferred_weekdays(self):
        # 2026-10-19 is a Monday; 1 = Monday, 3 = Wednesday with Sunday = 0.
        schedule = training.generate_schedule(3, date(2026, 10, 19), [1, 3], "19:30", "Lan")
        assert [item["date"] for item in schedule] == [
            date(2026, 10, 19),
            date(2026, 10, 21),
            date(2026, 10, 26),
        ]
        assert schedule[2]["title_suffix"] == "(Session 3)"
        assert schedule[0]["time"] == "19:30"

    def test_schedule_without_preferences_is_daily(self):
        schedule = training.generate_schedule(2, date(2026, 10, 19))
        assert [item["date"] for item in schedule] == [date(2026, 10, 19), date(2026, 10, 20)]

    def test_batch_and_base_title(self):
        title = training.batch_title("Sales 101", "B12", "(Session 1)")
        assert title == "Sales 101 - B12 (Session 1)"
        assert training.base_title(title) == "Sales 101 - B12"

    def test_group_classes_newest_first(self):
        events = [
            {"title": "Sales 101 - B1 (Session 1)", "date": date(2026, 9, 1), "template_id": "t", "batch_code": "B1"},
            {"title": "Sales 101 - B2 (Session 1)", "date": date(2026, 10, 1), "template_id": "t", "batch_code": "B2"},
            {"title": "Sales 101 - B1 (Session 2)", "date": date(2026, 9, 3), "template_id": "t", "batch_code": "B1"},
            {"title": "Other", "date": date(2026, 10, 1), "template_id": "x", "batch_code": ""},
        ]
        classes = training.group_classes("t", "Sales 101", events)
        assert [c["batch_code"] for c in classes] == ["B2", "B1"]
        assert classes[1]["count"] == 2
        assert classes[1]["end_date"] == date(2026, 9, 3)


class TestDashboard:
    def test_month_bounds(self):
        assert dashboard.month_bounds("2026-12") == (date(2026, 12, 1), date(2027, 1, 1))
        with pytest.raises(ValueError):
            dashboard.month_bounds("2026/12")

    def test_build_summary(self):
        summary = dashboard.build_summary(
            "2026-10",
            ad_rows=[{"date": date(2026, 10, 3), "spent": 1000, "mess": 10, "orders_mong": 1, "price_per_course": 5000}],
            transactions=[
                {"type": "INCOME", "amount": 4000, "occurred_at": datetime(2026, 10, 9)},
                {"type": "EXPENSE", "amount": 999, "occurred_at": datetime(2026, 10, 9)},
            ],
            customers=[
                {"status": "PAID", "debt_amount": 0, "created_at": datetime(2026, 10, 9)},
                {"status": "DEPOSIT", "debt_amount": 2000, "created_at": datetime(2026, 9, 1)},
                {"status": "CANCEL", "debt_amount": 5000, "created_at": datetime(2026, 10, 2)},
            ],
            expenses=[{"status": "APPROVED", "amount": 500}, {"status": "PENDING", "amount": 100}],
            payroll_entries=[{"base_salary": 1000, "sales_amount": 0, "commission_rate": 0.03}],
        )
        assert summary["sales"]["collected"] == 4000
        assert summary["sales"]["outstanding_debt"] == 2000
        assert summary["sales"]["new_customers"] == 2
        assert summary["spending"] == {"approved_total": 500, "pending_count": 1}
        assert summary["net"] == 4000 - 1000 - 500 - 1000
        assert len(summary["trend"]) == 5
        assert summary["trend"][0]["ads_spent"] == 1000
        assert summary["trend"][1]["income"] == 4000
        assert summary["funnel"] == {"messages": 10, "orders": 1, "paid_customers": 1}
